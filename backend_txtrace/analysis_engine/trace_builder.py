"""
Trace builder: transaction record -> ordered, depth-tagged CPI steps.

Two explicit levels. Each top-level instruction becomes a depth-0 step and
is immediately followed by one depth-1 step per instruction in its inner
group, before the next top-level instruction. An instruction that cannot
be decoded is logged and skipped; the rest of the trace is still built.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from backend_txtrace.analysis_engine.accounts import AccountRoleResolver
from backend_txtrace.analysis_engine.compute import (
    apportion_units,
    estimate_step_units,
    rate_step_efficiency,
    step_units_source,
)
from backend_txtrace.analysis_engine.error_patterns import serialize_error
from backend_txtrace.analysis_engine.models import CPIAccountRef, CPIStep
from backend_txtrace.analysis_engine.program_logs import (
    group_invocations,
    measured_units_for,
    parse_invocations,
)
from backend_txtrace.analysis_engine.programs import DEFAULT_REGISTRY, ProgramRegistry
from backend_txtrace.core.exceptions import StepDecodeError
from backend_txtrace.transaction.models import (
    VARIANT_COMPILED,
    VARIANT_PARSED,
    Instruction,
    TransactionRecord,
)
from backend_txtrace.txtrace_logging import get_logger, short_signature

logger = get_logger(__name__)

KIND_UNKNOWN = "unknown"
KIND_COMPILED = "compiled"

# Named fields in parsed instruction info that hold account pubkeys
PARSED_ACCOUNT_FIELDS = (
    ("account", "Target Account"),
    ("source", "Source Account"),
    ("destination", "Destination Account"),
    ("authority", "Authority Account"),
    ("mint", "Token Mint"),
    ("owner", "Owner Account"),
    ("newAccount", "New Account"),
    ("payer", "Payer Account"),
    ("wallet", "Wallet Account"),
    ("multisigAuthority", "Multisig Authority"),
)

MAX_ACCOUNTS_PER_INSTRUCTION = 10
OPT_REDUCE_ACCOUNTS = "Consider reducing the number of accounts in single instruction"
OPT_DIRECT_ROUTES = "Use direct routes to minimize CPI calls"
OPT_BATCH_SWAPS = "Consider batching multiple swaps"
OPT_DECODABLE_PATH = "Use parsed instructions for better debugging"


def suggest_optimizations(instruction_kind: str, account_count: int) -> list[str]:
    optimizations: list[str] = []
    if account_count > MAX_ACCOUNTS_PER_INSTRUCTION:
        optimizations.append(OPT_REDUCE_ACCOUNTS)
    if instruction_kind == "swap":
        optimizations.append(OPT_DIRECT_ROUTES)
        optimizations.append(OPT_BATCH_SWAPS)
    if instruction_kind in (KIND_UNKNOWN, KIND_COMPILED):
        optimizations.append(OPT_DECODABLE_PATH)
    return optimizations


@dataclass
class _Decoded:
    program_id: str
    instruction_kind: str
    accounts: list[CPIAccountRef]


class TraceBuilder:
    """Builds the step list for one record; holds only an immutable registry."""

    def __init__(self, program_registry: ProgramRegistry | None = None):
        self.program_registry = DEFAULT_REGISTRY if program_registry is None else program_registry

    def build(self, record: TransactionRecord) -> list[CPIStep]:
        steps, _ = self.build_with_skips(record)
        return steps

    def build_with_skips(self, record: TransactionRecord) -> tuple[list[CPIStep], int]:
        """Steps plus the number of instructions that had to be skipped."""
        resolver = AccountRoleResolver(record)
        invocation_groups = group_invocations(
            parse_invocations(record.meta.log_messages if record.meta else None)
        )
        failed = record.failed
        error_text = serialize_error(record.err) if failed else None

        steps: list[CPIStep] = []
        estimates: list[int] = []
        measured_any = False
        skipped = 0

        for index, top in enumerate(record.instructions):
            group = record.inner_instruction_groups.get(index, ())
            entries = [(0, None, top)] + [(1, j, inner) for j, inner in enumerate(group)]
            for depth, inner_position, instruction in entries:
                try:
                    decoded = self._decode(instruction, resolver)
                except StepDecodeError as e:
                    skipped += 1
                    logger.warning(
                        "trace_step_skipped",
                        signature=short_signature(record.signature),
                        index=index,
                        depth=depth,
                        reason=str(e),
                    )
                    continue
                account_count = len(decoded.accounts)
                estimate = estimate_step_units(decoded.instruction_kind, account_count)
                measured = measured_units_for(
                    invocation_groups,
                    index,
                    decoded.program_id,
                    inner_position=inner_position,
                    inner_count=len(group),
                )
                measured_any = measured_any or measured is not None
                estimates.append(estimate)
                steps.append(
                    CPIStep(
                        id=len(steps),
                        program_id=decoded.program_id,
                        program_name=self.program_registry.name_of(decoded.program_id),
                        instruction_kind=decoded.instruction_kind,
                        depth=depth,
                        accounts=decoded.accounts,
                        success=not failed,
                        error=error_text,
                        compute_units=measured if measured is not None else estimate,
                        compute_units_source=step_units_source(measured, None),
                        efficiency_rating=rate_step_efficiency(
                            measured if measured is not None else estimate, account_count
                        ),
                        suggested_optimizations=suggest_optimizations(decoded.instruction_kind, account_count),
                        stack_height=instruction.stack_height,
                    )
                )

        consumed = record.meta.compute_units_consumed if record.meta else None
        if steps and not measured_any and consumed is not None:
            for step, units in zip(steps, apportion_units(consumed, estimates)):
                step.compute_units = units
                step.compute_units_source = step_units_source(None, units)
                step.efficiency_rating = rate_step_efficiency(units, len(step.accounts))

        logger.debug(
            "trace_built",
            signature=short_signature(record.signature),
            steps=len(steps),
            skipped=skipped,
            measured=measured_any,
        )
        return steps, skipped

    def _decode(self, instruction: Instruction, resolver: AccountRoleResolver) -> _Decoded:
        variant = instruction.variant
        if variant == VARIANT_PARSED:
            if not instruction.program_id:
                raise StepDecodeError("parsed instruction has no programId")
            return _Decoded(
                program_id=instruction.program_id,
                instruction_kind=instruction.parsed_type or KIND_UNKNOWN,
                accounts=self._accounts_from_parsed(instruction.parsed_info, resolver),
            )
        if variant == VARIANT_COMPILED:
            idx = instruction.program_id_index
            program_id = resolver.key_at(idx) if idx is not None else None
            if program_id is None:
                raise StepDecodeError(f"programIdIndex {idx} out of range")
            return _Decoded(
                program_id=program_id,
                instruction_kind=KIND_COMPILED,
                accounts=self._accounts_from_compiled(instruction.accounts, resolver),
            )
        return _Decoded(
            program_id=instruction.program_id or "",
            instruction_kind=KIND_UNKNOWN,
            accounts=[
                self._account_ref(str(pubkey), f"Account {n}", resolver)
                for n, pubkey in enumerate(instruction.accounts, start=1)
            ],
        )

    @staticmethod
    def _account_ref(pubkey: str, label: str, resolver: AccountRoleResolver) -> CPIAccountRef:
        role = resolver.role_of(pubkey)
        return CPIAccountRef(
            pubkey=pubkey,
            role_label=label,
            is_signer=role.is_signer,
            is_writable=role.is_writable,
        )

    def _accounts_from_parsed(self, info: Any, resolver: AccountRoleResolver) -> list[CPIAccountRef]:
        if not info:
            return []
        return [
            self._account_ref(info[name], label, resolver)
            for name, label in PARSED_ACCOUNT_FIELDS
            if isinstance(info.get(name), str) and info.get(name)
        ]

    @staticmethod
    def _accounts_from_compiled(indices: tuple[Any, ...], resolver: AccountRoleResolver) -> list[CPIAccountRef]:
        accounts: list[CPIAccountRef] = []
        for n, idx in enumerate(indices, start=1):
            pubkey = resolver.key_at(idx)
            if pubkey is None:
                raise StepDecodeError(f"account index {idx!r} out of range")
            role = resolver.role_at(idx)
            accounts.append(
                CPIAccountRef(
                    pubkey=pubkey,
                    role_label=f"Account {n}",
                    is_signer=role.is_signer,
                    is_writable=role.is_writable,
                )
            )
        return accounts


def build_trace(record: TransactionRecord, program_registry: ProgramRegistry | None = None) -> list[CPIStep]:
    """Ordered CPI steps for a record, using the default registry unless given one."""
    return TraceBuilder(program_registry).build(record)
