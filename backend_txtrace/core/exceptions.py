"""
Application-level exceptions.

Structural problems with the input record are raised to the caller;
per-instruction decode failures are raised internally and recovered by
the trace builder; domain diagnostics are never raised.
"""

from __future__ import annotations


class TxTraceError(Exception):
    """Base error for the trace engine; carries a stable error code."""

    code = "TXTRACE_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class MalformedTransactionError(TxTraceError):
    """The record itself is unusable (missing or invalid accountKeys / header)."""

    code = "MALFORMED_TRANSACTION"

    def __init__(self, message: str, missing_fields: list[str] | None = None):
        super().__init__(message)
        self.missing_fields = list(missing_fields or [])


class StepDecodeError(TxTraceError):
    """One instruction cannot be turned into a trace step."""

    code = "STEP_DECODE_FAILED"
