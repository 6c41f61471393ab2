"""
Compute and performance estimation.

Transaction level: consumed vs. an estimated request, with a fixed
efficiency scale. Step level: a declared heuristic (base cost by
instruction kind, scaled by account count) used whenever the runtime did
not measure the step; every figure is tagged with its source.
"""

from __future__ import annotations

import base64
import binascii
from typing import Sequence

import base58

from backend_txtrace.analysis_engine.models import (
    ComputeUnitSource,
    EfficiencyRating,
    PerformanceReport,
    StepEfficiency,
)
from backend_txtrace.analysis_engine.programs import COMPUTE_BUDGET_PROGRAM_ID
from backend_txtrace.transaction.models import Instruction, TransactionRecord
from backend_txtrace.txtrace_logging import get_logger

logger = get_logger(__name__)

# Smallest realistic budget request; also the runtime's per-instruction default
MIN_REQUESTED_COMPUTE_UNITS = 200_000
REQUEST_HEADROOM = 1.2

# Base compute units by instruction kind; unrecognized kinds use "unknown"
BASE_STEP_UNITS = {
    "transfer": 2300,
    "createAccount": 5000,
    "createIdempotent": 6000,
    "initialize": 8000,
    "swap": 25000,
    "stake": 15000,
    "unknown": 10000,
    "compiled": 15000,
}

STEP_OPTIMAL_UNITS_PER_ACCOUNT = 5000
STEP_GOOD_UNITS_PER_ACCOUNT = 15000

EFFICIENCY_NARRATIVES = {
    EfficiencyRating.EXCELLENT: "Excellent - Highly optimized transaction with minimal compute waste",
    EfficiencyRating.GOOD: "Good - Well structured transaction with some optimization opportunities",
    EfficiencyRating.MODERATE: "Moderate - Transaction could benefit from optimization",
    EfficiencyRating.POOR: "Poor - Significant optimization needed to improve efficiency",
}

# Compute Budget program instruction discriminators
SET_COMPUTE_UNIT_LIMIT = 2
SET_COMPUTE_UNIT_PRICE = 3


def estimate_step_units(instruction_kind: str, account_count: int) -> int:
    """Heuristic cost: base units for the kind times max(1, accounts // 3)."""
    base = BASE_STEP_UNITS.get(instruction_kind, BASE_STEP_UNITS["unknown"])
    return base * max(1, account_count // 3)


def rate_step_efficiency(compute_units: int, account_count: int) -> StepEfficiency:
    ratio = compute_units / max(1, account_count)
    if ratio < STEP_OPTIMAL_UNITS_PER_ACCOUNT:
        return StepEfficiency.OPTIMAL
    if ratio < STEP_GOOD_UNITS_PER_ACCOUNT:
        return StepEfficiency.GOOD
    return StepEfficiency.POOR


def rate_efficiency(efficiency_percent: float) -> EfficiencyRating:
    if efficiency_percent > 90:
        return EfficiencyRating.EXCELLENT
    if efficiency_percent > 70:
        return EfficiencyRating.GOOD
    if efficiency_percent > 50:
        return EfficiencyRating.MODERATE
    return EfficiencyRating.POOR


def apportion_units(total: int, estimates: Sequence[int]) -> list[int]:
    """Split a measured total across steps in proportion to their estimates."""
    weight = sum(estimates)
    if weight <= 0:
        return [0 for _ in estimates]
    return [round(total * e / weight) for e in estimates]


def _b58decode(s: str) -> bytes:
    """Decode base58 instruction data to bytes; fallback to base64 for RPC variance."""
    try:
        return base58.b58decode(s)
    except ValueError:
        pass
    try:
        return base64.b64decode(s, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Could not decode instruction data (base58/base64): {e}") from e


def _decode_compute_budget(data: str) -> tuple[int, int] | None:
    """Return (discriminator, value) for limit/price instructions, else None."""
    try:
        raw = _b58decode(data)
    except ValueError as e:
        logger.debug("compute_budget_data_undecodable", error=str(e))
        return None
    if len(raw) >= 5 and raw[0] == SET_COMPUTE_UNIT_LIMIT:
        return SET_COMPUTE_UNIT_LIMIT, int.from_bytes(raw[1:5], "little")
    if len(raw) >= 9 and raw[0] == SET_COMPUTE_UNIT_PRICE:
        return SET_COMPUTE_UNIT_PRICE, int.from_bytes(raw[1:9], "little")
    return None


def _program_id_of(instruction: Instruction, account_keys: Sequence[str]) -> str | None:
    if instruction.program_id is not None:
        return instruction.program_id
    idx = instruction.program_id_index
    if idx is None or not 0 <= idx < len(account_keys):
        return None
    return account_keys[idx]


def compute_budget_requests(record: TransactionRecord) -> tuple[int | None, int | None]:
    """
    (unit limit, unit price in micro-lamports) requested by top-level
    Compute Budget instructions; None for whichever is absent.
    """
    limit: int | None = None
    price: int | None = None
    keys = record.all_account_keys
    for instruction in record.instructions:
        if instruction.data is None or _program_id_of(instruction, keys) != COMPUTE_BUDGET_PROGRAM_ID:
            continue
        decoded = _decode_compute_budget(instruction.data)
        if decoded is None:
            continue
        kind, value = decoded
        if kind == SET_COMPUTE_UNIT_LIMIT:
            limit = value
        else:
            price = value
    return limit, price


def estimate_performance(record: TransactionRecord) -> PerformanceReport:
    """
    Aggregate compute figures for one record.

    requested = max(consumed * 1.2, 200_000); efficiency is consumed over
    requested as a percentage with one decimal. Without a reported
    consumption the figures fall back to 0 used against the floor.
    """
    meta = record.meta
    consumed = meta.compute_units_consumed if meta is not None else None
    measured = consumed is not None
    used = consumed or 0
    requested = max(round(used * REQUEST_HEADROOM), MIN_REQUESTED_COMPUTE_UNITS)
    efficiency = round(used / requested * 100, 1) if requested > 0 else 0.0
    rating = rate_efficiency(efficiency)
    limit, price = compute_budget_requests(record)
    return PerformanceReport(
        compute_units_used=used,
        compute_units_requested_estimate=requested,
        fee=meta.fee if meta is not None else 0,
        slot=record.slot,
        efficiency_percent=efficiency,
        efficiency_rating=rating,
        efficiency_narrative=EFFICIENCY_NARRATIVES[rating],
        compute_units_measured=measured,
        compute_unit_limit=limit,
        compute_unit_price_micro_lamports=price,
    )


def step_units_source(measured: int | None, apportioned: int | None) -> ComputeUnitSource:
    if measured is not None:
        return ComputeUnitSource.MEASURED
    if apportioned is not None:
        return ComputeUnitSource.APPORTIONED
    return ComputeUnitSource.ESTIMATED
