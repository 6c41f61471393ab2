"""
Trace engine: one transaction record in, one DebugReport out.

Wires the trace builder, error pattern matcher and estimator around two
injected, immutable registries (program names, error rules). Holds no
per-call state, so a single engine can serve concurrent callers.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from backend_txtrace.analysis_engine.compute import estimate_performance
from backend_txtrace.analysis_engine.error_patterns import DEFAULT_MATCHER, ErrorPatternMatcher
from backend_txtrace.analysis_engine.models import CPIStep, DebugReport, Diagnostic, PerformanceReport
from backend_txtrace.analysis_engine.programs import DEFAULT_REGISTRY, ProgramRegistry
from backend_txtrace.analysis_engine.report import assemble_report
from backend_txtrace.analysis_engine.trace_builder import TraceBuilder
from backend_txtrace.core.exceptions import MalformedTransactionError
from backend_txtrace.transaction.models import TransactionMeta, TransactionRecord
from backend_txtrace.transaction.parser import parse_record
from backend_txtrace.txtrace_logging import bind_signature


class TraceEngine:
    def __init__(
        self,
        program_registry: ProgramRegistry | None = None,
        error_matcher: ErrorPatternMatcher | None = None,
    ):
        self.program_registry = DEFAULT_REGISTRY if program_registry is None else program_registry
        self.error_matcher = DEFAULT_MATCHER if error_matcher is None else error_matcher
        self._builder = TraceBuilder(self.program_registry)

    def build_trace(self, record: TransactionRecord) -> list[CPIStep]:
        return self._builder.build(record)

    def diagnose(self, meta: TransactionMeta | None, account_keys: Sequence[str] = ()) -> list[Diagnostic]:
        return self.error_matcher.diagnose(meta, account_keys)

    def estimate(self, record: TransactionRecord) -> PerformanceReport:
        return estimate_performance(record)

    def debug_transaction(self, record: TransactionRecord | Mapping[str, Any]) -> DebugReport:
        """
        Full report for one record (or canonical record mapping).

        Raises MalformedTransactionError for unusable records; never for
        individual instructions.
        """
        if isinstance(record, Mapping):
            record = parse_record(record)
        if not isinstance(record, TransactionRecord):
            raise MalformedTransactionError(f"Expected a transaction record, got {type(record).__name__}")

        steps, skipped = self._builder.build_with_skips(record)
        diagnostics = self.diagnose(record.meta, record.all_account_keys)
        performance = self.estimate(record)
        report = assemble_report(record, steps, diagnostics, performance, skipped=skipped)
        bind_signature(record.signature).info(
            "transaction_debugged",
            status=report.status,
            steps=len(steps),
            skipped=skipped,
            errors=len(diagnostics),
            efficiency_percent=performance.efficiency_percent,
        )
        return report


_DEFAULT_ENGINE = TraceEngine()


def debug_transaction(record: TransactionRecord | Mapping[str, Any]) -> DebugReport:
    """Report for one record using the default registries."""
    return _DEFAULT_ENGINE.debug_transaction(record)
