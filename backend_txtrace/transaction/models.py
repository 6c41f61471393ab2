"""
Data models for the engine's input: one already-fetched transaction record.

Records are immutable and engine-agnostic; build them with
transaction.parser (canonical mapping or getTransaction payload).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

VARIANT_PARSED = "parsed"
VARIANT_PARTIAL = "partial"
VARIANT_COMPILED = "compiled"


@dataclass(frozen=True)
class MessageHeader:
    """
    Message header counts that partition accountKeys into four regions.

    Order: writable signers, read-only signers, writable non-signers,
    read-only non-signers.
    """

    num_required_signatures: int
    num_readonly_signed_accounts: int
    num_readonly_unsigned_accounts: int

    def to_dict(self) -> dict[str, int]:
        return {
            "num_required_signatures": self.num_required_signatures,
            "num_readonly_signed_accounts": self.num_readonly_signed_accounts,
            "num_readonly_unsigned_accounts": self.num_readonly_unsigned_accounts,
        }


@dataclass(frozen=True)
class Instruction:
    """
    One instruction, top-level or inner, in one of three encodings.

    parsed:   program_id + parsed_type / parsed_info (decoded by the node)
    partial:  program_id + account pubkeys (raw but decodable)
    compiled: program_id_index + account indices into the key list
    """

    program_id: str | None = None
    program_id_index: int | None = None
    parsed_type: str | None = None
    parsed_info: Mapping[str, Any] | None = None
    is_parsed: bool = False
    accounts: tuple[Any, ...] = ()
    """Pubkeys (partial) or integer indices (compiled); empty for parsed."""
    data: str | None = None
    """Instruction data as delivered by the node (base58 in json encodings)."""
    stack_height: int | None = None
    """Invocation height reported by the node; None on older records."""

    @property
    def variant(self) -> str:
        if self.is_parsed:
            return VARIANT_PARSED
        if self.program_id is not None:
            return VARIANT_PARTIAL
        return VARIANT_COMPILED


@dataclass(frozen=True)
class TransactionMeta:
    """Post-execution metadata."""

    err: Any = None
    """None on success; the node's failure object otherwise."""
    fee: int = 0
    compute_units_consumed: int | None = None
    log_messages: tuple[str, ...] | None = None
    pre_balances: tuple[int, ...] = ()
    post_balances: tuple[int, ...] = ()


@dataclass(frozen=True)
class TransactionRecord:
    """
    One transaction record as consumed by the engine.

    account_keys holds the static keys only; addresses loaded from lookup
    tables are kept apart because the header counts do not cover them.
    Compiled indices address static keys first, then loaded writable, then
    loaded read-only.
    """

    signature: str
    account_keys: tuple[str, ...]
    header: MessageHeader
    instructions: tuple[Instruction, ...] = ()
    inner_instruction_groups: Mapping[int, tuple[Instruction, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    meta: TransactionMeta | None = None
    slot: int | None = None
    block_time: int | None = None
    """Unix timestamp (seconds); None if unavailable."""
    loaded_writable: tuple[str, ...] = ()
    loaded_readonly: tuple[str, ...] = ()

    @property
    def all_account_keys(self) -> tuple[str, ...]:
        return self.account_keys + self.loaded_writable + self.loaded_readonly

    @property
    def err(self) -> Any:
        return self.meta.err if self.meta is not None else None

    @property
    def failed(self) -> bool:
        return self.err is not None
