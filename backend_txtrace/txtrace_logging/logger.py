"""
Structured logging for the trace engine.

Every record carries an ISO timestamp, level, event_type and logger name.
Level and renderer come from config.get_settings(), so LOG_LEVEL and
LOG_FORMAT set in the environment or in the project .env file both apply.
Engine modules call get_logger(__name__) and log a snake_case event_type
with keyword context (signature, index, depth, reason, ...).
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog

from backend_txtrace.config import Settings, get_settings


def _event_type(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Publish structlog's 'event' as event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def _renderer(fmt: str) -> Any:
    if fmt == "console":
        return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    return structlog.processors.JSONRenderer(sort_keys=True)


def configure_structlog(settings: Settings | None = None, stream: TextIO | None = None) -> None:
    """
    (Re)configure structlog from settings; defaults to get_settings().

    stream defaults to stdout. Loggers are not cached, so a later call
    takes effect for module-level loggers too.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level, logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            _event_type,
            _renderer(settings.log_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=False,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Lazy logger for a module with its name in the context; it picks up
    the configuration current at each call.

        logger = get_logger(__name__)
        logger.warning("trace_step_skipped", index=3, depth=1, reason="...")
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_signature(signature: str) -> structlog.BoundLogger:
    return get_logger("backend_txtrace").bind(signature=short_signature(signature))


def short_signature(signature: str | None) -> str:
    """First 16 characters of a signature plus an ellipsis."""
    if not signature:
        return ""
    return signature[:16] + "..." if len(signature) > 16 else signature
