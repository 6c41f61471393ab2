"""
Analysis engine package: trace reconstruction and diagnostics.

Consumes one TransactionRecord and produces the CPI trace, classified
diagnostics and performance figures, assembled into a DebugReport.
"""

from backend_txtrace.analysis_engine.accounts import (
    AccountRole,
    AccountRoleResolver,
    account_region,
    resolve_account_role,
)
from backend_txtrace.analysis_engine.compute import (
    estimate_performance,
    estimate_step_units,
    rate_step_efficiency,
)
from backend_txtrace.analysis_engine.engine import TraceEngine, debug_transaction
from backend_txtrace.analysis_engine.error_patterns import (
    COMPUTE_HIGH_WATER_MARK,
    DEFAULT_ERROR_RULES,
    ErrorPatternMatcher,
    ErrorRule,
)
from backend_txtrace.analysis_engine.models import (
    ComputeUnitSource,
    CPIAccountRef,
    CPIStep,
    DebugReport,
    Diagnostic,
    DiagnosticKind,
    EfficiencyRating,
    PerformanceReport,
    ReportMetadata,
    Severity,
    StepEfficiency,
)
from backend_txtrace.analysis_engine.programs import (
    UNKNOWN_PROGRAM,
    ProgramRegistry,
    load_program_registry,
)
from backend_txtrace.analysis_engine.report import assemble_report
from backend_txtrace.analysis_engine.trace_builder import TraceBuilder, build_trace

__all__ = [
    "AccountRole",
    "AccountRoleResolver",
    "account_region",
    "resolve_account_role",
    "estimate_performance",
    "estimate_step_units",
    "rate_step_efficiency",
    "TraceEngine",
    "debug_transaction",
    "COMPUTE_HIGH_WATER_MARK",
    "DEFAULT_ERROR_RULES",
    "ErrorPatternMatcher",
    "ErrorRule",
    "ComputeUnitSource",
    "CPIAccountRef",
    "CPIStep",
    "DebugReport",
    "Diagnostic",
    "DiagnosticKind",
    "EfficiencyRating",
    "PerformanceReport",
    "ReportMetadata",
    "Severity",
    "StepEfficiency",
    "UNKNOWN_PROGRAM",
    "ProgramRegistry",
    "load_program_registry",
    "assemble_report",
    "TraceBuilder",
    "build_trace",
]
