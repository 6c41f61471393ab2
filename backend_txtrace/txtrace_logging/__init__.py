"""
Structured logging for Backend TxTrace.

JSON logs with timestamp, level, event_type and signature context.
Use get_logger() in all engine modules.
"""

from backend_txtrace.txtrace_logging.logger import (
    bind_signature,
    configure_structlog,
    get_logger,
    short_signature,
)

__all__ = ["bind_signature", "configure_structlog", "get_logger", "short_signature"]
