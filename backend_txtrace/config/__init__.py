"""
Configuration for Backend TxTrace.

Loads settings from environment variables and an optional .env file.
"""

from backend_txtrace.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
