"""
Application settings for the trace engine.

Typed, read-only view over the environment (see config/env.py). Engine
thresholds are not settings: they are module constants in the analysis
engine and do not vary per call.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from backend_txtrace.config.env import get_log_format, get_log_level, get_programs_path


@dataclass(frozen=True)
class Settings:
    """Resolved settings snapshot."""

    log_level: str
    """structlog level name (DEBUG, INFO, ...)."""
    log_format: str
    """json | console."""
    programs_path: Path | None
    """Optional JSON file extending the program registry."""


def get_settings() -> Settings:
    """Return the current settings, read fresh from the environment."""
    return Settings(
        log_level=get_log_level(),
        log_format=get_log_format(),
        programs_path=get_programs_path(),
    )
