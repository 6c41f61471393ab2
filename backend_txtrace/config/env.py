"""
Environment variable loading for TxTrace.

- LOG_LEVEL: structlog filtering level (default: INFO)
- LOG_FORMAT: json | console (default: json)
- TXTRACE_PROGRAMS_PATH: optional JSON object {program_id: name} merged
  into the program registry
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_txtrace/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "json"
LOG_FORMATS = ("json", "console")


def load_txtrace_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides set vars."""
    load_dotenv(_ENV_PATH, override=False)


def get_log_level() -> str:
    """Return LOG_LEVEL from env, upper-cased; unknown names fall back to INFO."""
    load_txtrace_env()
    raw = (os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()
    if raw not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        return DEFAULT_LOG_LEVEL
    return raw


def get_log_format() -> str:
    """Return LOG_FORMAT from env: json | console. Default: json."""
    load_txtrace_env()
    raw = (os.getenv("LOG_FORMAT") or DEFAULT_LOG_FORMAT).strip().lower()
    return raw if raw in LOG_FORMATS else DEFAULT_LOG_FORMAT


def get_programs_path() -> Path | None:
    """Return TXTRACE_PROGRAMS_PATH as a Path, or None when unset."""
    load_txtrace_env()
    raw = (os.getenv("TXTRACE_PROGRAMS_PATH") or "").strip()
    return Path(raw) if raw else None
