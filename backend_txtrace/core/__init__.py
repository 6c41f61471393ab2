"""
Core utilities: exceptions shared across the transaction model and engine.
"""

from backend_txtrace.core.exceptions import (
    MalformedTransactionError,
    StepDecodeError,
    TxTraceError,
)

__all__ = ["MalformedTransactionError", "StepDecodeError", "TxTraceError"]
