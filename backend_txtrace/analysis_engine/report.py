"""
Report assembly: trace, diagnostics and performance into one DebugReport.

Pure aggregation; no inference happens here.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from backend_txtrace.analysis_engine.models import (
    CPIStep,
    DebugReport,
    Diagnostic,
    PerformanceReport,
    ReportMetadata,
)
from backend_txtrace.transaction.models import TransactionRecord

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"


def programs_involved(steps: Sequence[CPIStep]) -> list[str]:
    """Distinct program ids across steps, in order of first appearance."""
    seen: set[str] = set()
    out: list[str] = []
    for step in steps:
        if step.program_id not in seen:
            seen.add(step.program_id)
            out.append(step.program_id)
    return out


def accounts_modified(steps: Sequence[CPIStep]) -> int:
    """Distinct writable pubkeys referenced by any step."""
    return len({a.pubkey for step in steps for a in step.accounts if a.is_writable})


def _iso_block_time(block_time: int | None) -> str | None:
    if block_time is None:
        return None
    return datetime.fromtimestamp(block_time, tz=timezone.utc).isoformat()


def assemble_report(
    record: TransactionRecord,
    steps: Sequence[CPIStep],
    diagnostics: Sequence[Diagnostic],
    performance: PerformanceReport,
    skipped: int = 0,
) -> DebugReport:
    """
    Merge the three engine outputs. total_instructions counts constructed
    steps only; skipped_instructions makes any omission visible.
    """
    metadata = ReportMetadata(
        accounts_modified=accounts_modified(steps),
        total_instructions=len(steps),
        programs_involved=programs_involved(steps),
        skipped_instructions=skipped,
        block_time=_iso_block_time(record.block_time),
    )
    return DebugReport(
        signature=record.signature,
        status=STATUS_ERROR if record.failed else STATUS_SUCCESS,
        cpi_flow=list(steps),
        errors=list(diagnostics),
        performance=performance,
        metadata=metadata,
    )
