"""
Data models for analysis engine output.

Trace steps, diagnostics, performance figures and the assembled report.
Every type exposes to_dict() with snake_case keys and stable order so a
report serializes byte-identically for the same input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DiagnosticKind(str, Enum):
    ACCOUNT_BALANCE_MISMATCH = "account_balance_mismatch"
    REALLOC_CONSTRAINT = "realloc_constraint"
    PROGRAM_ERROR = "program_error"
    COMPUTE_BUDGET = "compute_budget"
    RENT_VIOLATION = "rent_violation"
    ACCOUNT_SIZE_EXCEEDED = "account_size_exceeded"
    AUTHORITY_MISMATCH = "authority_mismatch"


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class StepEfficiency(str, Enum):
    OPTIMAL = "optimal"
    GOOD = "good"
    POOR = "poor"


class EfficiencyRating(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    MODERATE = "moderate"
    POOR = "poor"


class ComputeUnitSource(str, Enum):
    """Where a step's compute_units figure came from."""

    MEASURED = "measured"
    """Reported by the runtime in the program logs for this invocation."""
    APPORTIONED = "apportioned"
    """Share of the transaction's measured total, weighted by the heuristic."""
    ESTIMATED = "estimated"
    """Heuristic from instruction kind and account count only."""


@dataclass(frozen=True)
class CPIAccountRef:
    """One account referenced by a trace step, with its positional role."""

    pubkey: str
    role_label: str
    is_signer: bool
    is_writable: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "pubkey": self.pubkey,
            "role_label": self.role_label,
            "is_signer": self.is_signer,
            "is_writable": self.is_writable,
        }


@dataclass
class CPIStep:
    """
    One step of the reconstructed call trace.

    depth is 0 for top-level instructions and 1 for anything in that
    instruction's inner group; the ledger groups inner instructions flat,
    so deeper nesting is only visible through stack_height.
    """

    id: int
    program_id: str
    program_name: str
    instruction_kind: str
    depth: int
    accounts: list[CPIAccountRef]
    success: bool
    compute_units: int
    compute_units_source: ComputeUnitSource
    efficiency_rating: StepEfficiency
    suggested_optimizations: list[str] = field(default_factory=list)
    error: str | None = None
    """Serialized transaction failure object when success is False."""
    stack_height: int | None = None

    @property
    def is_estimate(self) -> bool:
        return self.compute_units_source != ComputeUnitSource.MEASURED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "program_id": self.program_id,
            "program_name": self.program_name,
            "instruction_kind": self.instruction_kind,
            "depth": self.depth,
            "stack_height": self.stack_height,
            "accounts": [a.to_dict() for a in self.accounts],
            "success": self.success,
            "error": self.error,
            "compute_units": self.compute_units,
            "compute_units_source": self.compute_units_source.value,
            "efficiency_rating": self.efficiency_rating.value,
            "suggested_optimizations": list(self.suggested_optimizations),
        }


@dataclass(frozen=True)
class Diagnostic:
    """
    One classified, user-facing explanation of a failure or risk.

    instruction_index is best-effort: it is only set when the failure
    object itself names a top-level position (InstructionError).
    """

    kind: DiagnosticKind
    severity: Severity
    message: str
    suggested_fix: str
    documentation_link: str | None = None
    estimated_fix_time: str | None = None
    code_example: str | None = None
    instruction_index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "suggested_fix": self.suggested_fix,
            "documentation_link": self.documentation_link,
            "estimated_fix_time": self.estimated_fix_time,
            "code_example": self.code_example,
            "instruction_index": self.instruction_index,
        }


@dataclass(frozen=True)
class PerformanceReport:
    """Transaction-level compute and fee figures."""

    compute_units_used: int
    compute_units_requested_estimate: int
    fee: int
    slot: int | None
    efficiency_percent: float
    efficiency_rating: EfficiencyRating
    efficiency_narrative: str
    compute_units_measured: bool
    """False when the record did not report consumption (figures are floors)."""
    compute_unit_limit: int | None = None
    """Limit requested through the Compute Budget program, if any."""
    compute_unit_price_micro_lamports: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "compute_units_used": self.compute_units_used,
            "compute_units_requested_estimate": self.compute_units_requested_estimate,
            "compute_units_measured": self.compute_units_measured,
            "compute_unit_limit": self.compute_unit_limit,
            "compute_unit_price_micro_lamports": self.compute_unit_price_micro_lamports,
            "fee": self.fee,
            "slot": self.slot,
            "efficiency_percent": self.efficiency_percent,
            "efficiency_rating": self.efficiency_rating.value,
            "efficiency_narrative": self.efficiency_narrative,
        }


@dataclass(frozen=True)
class ReportMetadata:
    accounts_modified: int
    total_instructions: int
    """Steps actually constructed; skipped instructions are not counted."""
    programs_involved: list[str]
    skipped_instructions: int = 0
    block_time: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "accounts_modified": self.accounts_modified,
            "total_instructions": self.total_instructions,
            "skipped_instructions": self.skipped_instructions,
            "programs_involved": list(self.programs_involved),
            "block_time": self.block_time,
        }


@dataclass(frozen=True)
class DebugReport:
    """The engine's single output record for one transaction."""

    signature: str
    status: str
    cpi_flow: list[CPIStep]
    errors: list[Diagnostic]
    performance: PerformanceReport
    metadata: ReportMetadata

    def to_dict(self) -> dict[str, Any]:
        return {
            "signature": self.signature,
            "status": self.status,
            "cpi_flow": [s.to_dict() for s in self.cpi_flow],
            "errors": [e.to_dict() for e in self.errors],
            "performance": self.performance.to_dict(),
            "metadata": self.metadata.to_dict(),
        }
