"""
Program registry: program id -> human-readable name.

Static, immutable lookup built once. Extending it returns a new registry;
nothing mutates a registry after construction, so one instance can be
shared by any number of threads.
"""

from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from backend_txtrace.config import get_settings
from backend_txtrace.txtrace_logging import get_logger

logger = get_logger(__name__)

UNKNOWN_PROGRAM = "Unknown Program"

SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
COMPUTE_BUDGET_PROGRAM_ID = "ComputeBudget111111111111111111111111111111"

DEFAULT_PROGRAMS: Mapping[str, str] = MappingProxyType({
    TOKEN_PROGRAM_ID: "Token Program",
    TOKEN_2022_PROGRAM_ID: "Token-2022 Program",
    ASSOCIATED_TOKEN_PROGRAM_ID: "Associated Token Program",
    COMPUTE_BUDGET_PROGRAM_ID: "Compute Budget Program",
    SYSTEM_PROGRAM_ID: "System Program",
    "BPFLoaderUpgradeab1e11111111111111111111111": "BPF Upgradeable Loader",
    "Vote111111111111111111111111111111111111111": "Vote Program",
    "Stake11111111111111111111111111111111111111": "Stake Program",
    "MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr": "Memo Program",
    # DEX / AMM programs
    "DjVE6JNiYqPL2QXyCUUh8rNjHrbz9hXHNYt99MQ59qw1": "Dex Program",
    "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM": "AMM Program",
    "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8": "Raydium AMM Program",
    "EhpADApTrarMJx1rMHj8SBgaTKMCvvzM27RBBe8S9xwL": "Raydium CLMM Program",
    "whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc": "Orca Whirlpools Program",
})


class ProgramRegistry:
    """Immutable program-name table with an "Unknown Program" fallback."""

    def __init__(self, programs: Mapping[str, str] | None = None):
        table = DEFAULT_PROGRAMS if programs is None else programs
        self._programs: Mapping[str, str] = MappingProxyType(dict(table))

    def name_of(self, program_id: str) -> str:
        return self._programs.get(program_id, UNKNOWN_PROGRAM)

    def __contains__(self, program_id: object) -> bool:
        return program_id in self._programs

    def __len__(self) -> int:
        return len(self._programs)

    @property
    def programs(self) -> Mapping[str, str]:
        return self._programs

    def extended(self, extra: Mapping[str, str]) -> "ProgramRegistry":
        """Return a new registry with extra entries layered over this one."""
        merged = dict(self._programs)
        merged.update(extra)
        return ProgramRegistry(merged)


def _load_program_overrides(path: Path) -> dict[str, str]:
    """Load {program_id: name} from JSON. Returns empty dict on failure."""
    if not path.is_file():
        logger.debug("program_registry_file_missing", path=str(path))
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("program_registry_load_failed", path=str(path), error=str(e))
        return {}
    if not isinstance(data, dict):
        logger.warning("program_registry_not_an_object", path=str(path))
        return {}
    return {str(k).strip(): str(v).strip() for k, v in data.items() if k and v}


def load_program_registry(path: Path | str | None = None) -> ProgramRegistry:
    """
    Default registry merged with an optional JSON file.

    path defaults to TXTRACE_PROGRAMS_PATH; unset, missing or unreadable
    files leave the defaults untouched.
    """
    resolved = Path(path) if path is not None else get_settings().programs_path
    registry = ProgramRegistry()
    if resolved is None:
        return registry
    overrides = _load_program_overrides(resolved)
    if overrides:
        logger.info("program_registry_extended", path=str(resolved), added=len(overrides))
        registry = registry.extended(overrides)
    return registry


DEFAULT_REGISTRY = ProgramRegistry()
