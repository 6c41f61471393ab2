"""
Transaction record parser: mappings and RPC payloads to TransactionRecord.

Two entry points:
- parse_record: the engine's canonical record shape (signature, slot,
  accountKeys, header, topLevelInstructions, innerInstructionGroups, meta).
- from_rpc_response: a getTransaction-style result in json or jsonParsed
  encoding; normalized to the canonical shape, then parsed.

Record-level problems (missing accountKeys / header, counts that cannot
partition the keys) raise MalformedTransactionError. Instruction-level
oddities are carried through untouched; the trace builder skips what it
cannot decode.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

from backend_txtrace.core.exceptions import MalformedTransactionError
from backend_txtrace.transaction.models import (
    Instruction,
    MessageHeader,
    TransactionMeta,
    TransactionRecord,
)
from backend_txtrace.txtrace_logging import get_logger

logger = get_logger(__name__)

_HEADER_FIELDS = (
    "numRequiredSignatures",
    "numReadonlySignedAccounts",
    "numReadonlyUnsignedAccounts",
)


def _key_to_str(key: Any) -> str:
    """accountKeys entries are base58 strings (json) or {pubkey, ...} dicts (jsonParsed)."""
    if isinstance(key, dict):
        return str(key.get("pubkey") or "")
    return str(key)


def _int_or_none(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_header(raw: Any, num_keys: int) -> MessageHeader:
    if not isinstance(raw, Mapping):
        raise MalformedTransactionError("Transaction header is missing", missing_fields=["header"])
    missing = [f for f in _HEADER_FIELDS if f not in raw]
    if missing:
        raise MalformedTransactionError(
            f"Transaction header is missing fields: {', '.join(missing)}",
            missing_fields=[f"header.{f}" for f in missing],
        )
    counts = [raw[f] for f in _HEADER_FIELDS]
    if any(isinstance(c, bool) or not isinstance(c, int) or c < 0 for c in counts):
        raise MalformedTransactionError(f"Transaction header counts must be non-negative integers: {counts}")
    signers, readonly_signed, readonly_unsigned = counts
    if readonly_signed > signers or signers + readonly_unsigned > num_keys:
        raise MalformedTransactionError(
            "Transaction header counts do not partition accountKeys "
            f"(S={signers}, RS={readonly_signed}, RU={readonly_unsigned}, N={num_keys})"
        )
    return MessageHeader(
        num_required_signatures=signers,
        num_readonly_signed_accounts=readonly_signed,
        num_readonly_unsigned_accounts=readonly_unsigned,
    )


def parse_instruction(raw: Any) -> Instruction:
    """
    Build an Instruction from one instruction mapping.

    Never raises: shapes that fit no variant come back as an empty compiled
    instruction, which the trace builder skips.
    """
    if not isinstance(raw, Mapping):
        return Instruction()
    stack_height = _int_or_none(raw.get("stackHeight"))
    data = raw.get("data") if isinstance(raw.get("data"), str) else None

    if "parsed" in raw:
        parsed = raw.get("parsed")
        parsed_type = None
        info = None
        if isinstance(parsed, Mapping):
            parsed_type = parsed.get("type") if isinstance(parsed.get("type"), str) else None
            info = parsed.get("info") if isinstance(parsed.get("info"), Mapping) else None
        program_id = raw.get("programId")
        return Instruction(
            program_id=str(program_id) if program_id else None,
            parsed_type=parsed_type,
            parsed_info=MappingProxyType(dict(info)) if info is not None else None,
            is_parsed=True,
            stack_height=stack_height,
        )

    if raw.get("programId"):
        return Instruction(
            program_id=str(raw["programId"]),
            accounts=tuple(_key_to_str(a) for a in raw.get("accounts") or []),
            data=data,
            stack_height=stack_height,
        )

    return Instruction(
        program_id_index=_int_or_none(raw.get("programIdIndex")),
        accounts=tuple(raw.get("accounts") or []),
        data=data,
        stack_height=stack_height,
    )


def _parse_instruction_list(raw: Any, group_index: int | None = None) -> list[Instruction]:
    """Instructions from a JSON list; anything else is logged and read as empty."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning(
            "inner_group_bad_instructions" if group_index is not None else "top_level_bad_instructions",
            index=group_index,
            value_type=type(raw).__name__,
        )
        return []
    return [parse_instruction(ix) for ix in raw]


def _parse_inner_groups(raw: Any) -> Mapping[int, tuple[Instruction, ...]]:
    """
    Accept {index: [ix, ...]} (keys may be JSON strings) or the RPC list
    form [{index, instructions}, ...]. Groups sharing an index are joined.
    """
    groups: dict[int, list[Instruction]] = {}
    if isinstance(raw, Mapping):
        items = list(raw.items())
    elif isinstance(raw, list):
        items = [
            (g.get("index"), g.get("instructions"))
            for g in raw
            if isinstance(g, Mapping)
        ]
    else:
        items = []
    for key, instructions in items:
        index = _int_or_none(key)
        if index is None or index < 0:
            logger.warning("inner_group_bad_index", index=str(key))
            continue
        groups.setdefault(index, []).extend(_parse_instruction_list(instructions, index))
    return MappingProxyType({k: tuple(v) for k, v in sorted(groups.items())})


def _balances(raw: Any) -> tuple[int, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(_int_or_none(b) or 0 for b in raw)


def _loaded_keys(loaded: Mapping[str, Any], field: str) -> tuple[str, ...]:
    raw = loaded.get(field)
    if not isinstance(raw, list):
        return ()
    return tuple(_key_to_str(k) for k in raw)


def _parse_meta(raw: Any) -> TransactionMeta | None:
    if not isinstance(raw, Mapping):
        return None
    logs = raw.get("logMessages")
    return TransactionMeta(
        err=raw.get("err"),
        fee=_int_or_none(raw.get("fee")) or 0,
        compute_units_consumed=_int_or_none(raw.get("computeUnitsConsumed")),
        log_messages=tuple(str(line) for line in logs) if isinstance(logs, list) else None,
        pre_balances=_balances(raw.get("preBalances")),
        post_balances=_balances(raw.get("postBalances")),
    )


def parse_record(data: Mapping[str, Any]) -> TransactionRecord:
    """
    Parse the canonical record mapping into a TransactionRecord.

    Raises MalformedTransactionError when accountKeys or header are missing
    or cannot describe the four-region account partition.
    """
    if not isinstance(data, Mapping):
        raise MalformedTransactionError("Transaction record must be a mapping")
    keys_raw = data.get("accountKeys")
    if not isinstance(keys_raw, list) or not keys_raw:
        raise MalformedTransactionError("Transaction record has no accountKeys", missing_fields=["accountKeys"])
    if "header" not in data:
        raise MalformedTransactionError("Transaction record has no header", missing_fields=["header"])
    account_keys = tuple(_key_to_str(k) for k in keys_raw)
    header = _parse_header(data.get("header"), len(account_keys))

    loaded = data.get("loadedAddresses") or {}
    if not isinstance(loaded, Mapping):
        loaded = {}
    return TransactionRecord(
        signature=str(data.get("signature") or ""),
        account_keys=account_keys,
        header=header,
        instructions=tuple(_parse_instruction_list(data.get("topLevelInstructions"))),
        inner_instruction_groups=_parse_inner_groups(data.get("innerInstructionGroups")),
        meta=_parse_meta(data.get("meta")),
        slot=_int_or_none(data.get("slot")),
        block_time=_int_or_none(data.get("blockTime")),
        loaded_writable=_loaded_keys(loaded, "writable"),
        loaded_readonly=_loaded_keys(loaded, "readonly"),
    )


def _header_from_key_flags(keys: list[dict[str, Any]]) -> dict[str, int]:
    """
    Rebuild header counts from jsonParsed signer/writable flags.

    Only accepted when the flags already follow the four-region order, so
    the counts describe the same positions the flags do.
    """
    signer_flags = [bool(k.get("signer")) for k in keys]
    writable_flags = [bool(k.get("writable")) for k in keys]
    signers = sum(signer_flags)
    if signer_flags != [True] * signers + [False] * (len(keys) - signers):
        raise MalformedTransactionError("jsonParsed signer flags are not a prefix of accountKeys", missing_fields=["header"])
    readonly_signed = signers - sum(writable_flags[:signers])
    readonly_unsigned = (len(keys) - signers) - sum(writable_flags[signers:])
    expected = (
        [True] * (signers - readonly_signed)
        + [False] * readonly_signed
        + [True] * (len(keys) - signers - readonly_unsigned)
        + [False] * readonly_unsigned
    )
    if writable_flags != expected:
        raise MalformedTransactionError("jsonParsed writable flags do not follow region order", missing_fields=["header"])
    return {
        "numRequiredSignatures": signers,
        "numReadonlySignedAccounts": readonly_signed,
        "numReadonlyUnsignedAccounts": readonly_unsigned,
    }


def _get_message_and_meta(raw: dict[str, Any]) -> tuple[dict[str, Any] | None, dict[str, Any] | None]:
    """Return (transaction.message, meta) from getTransaction-style result."""
    tx_obj = raw.get("transaction")
    if not tx_obj or not isinstance(tx_obj, dict):
        return None, None
    message = tx_obj.get("message")
    if not message or not isinstance(message, dict):
        return None, None
    meta = raw.get("meta")
    if not isinstance(meta, dict):
        meta = None
    return message, meta


def from_rpc_response(raw: dict[str, Any] | None) -> TransactionRecord | None:
    """
    Normalize a getTransaction result (json or jsonParsed) into a record.

    Returns None when raw is None (transaction not found). Raises
    MalformedTransactionError when the message or its keys/header are
    unusable.
    """
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise MalformedTransactionError("RPC transaction payload must be a dict")
    message, meta = _get_message_and_meta(raw)
    if not message:
        raise MalformedTransactionError("RPC payload has no transaction.message", missing_fields=["transaction.message"])

    keys = message.get("accountKeys") or []
    loaded_raw = (meta or {}).get("loadedAddresses")
    loaded = dict(loaded_raw) if isinstance(loaded_raw, Mapping) else {}
    static_keys = keys
    if keys and isinstance(keys[0], dict):
        static_keys = [k for k in keys if k.get("source") != "lookupTable"]
        table_keys = [k for k in keys if k.get("source") == "lookupTable"]
        if table_keys and not loaded:
            loaded = {
                "writable": [k.get("pubkey") for k in table_keys if k.get("writable")],
                "readonly": [k.get("pubkey") for k in table_keys if not k.get("writable")],
            }

    header = message.get("header")
    if header is None and static_keys and all(isinstance(k, dict) for k in static_keys):
        header = _header_from_key_flags(static_keys)

    signatures = (raw.get("transaction") or {}).get("signatures") or []
    canonical: dict[str, Any] = {
        "signature": signatures[0] if isinstance(signatures, list) and signatures else "",
        "slot": raw.get("slot"),
        "blockTime": raw.get("blockTime"),
        "accountKeys": static_keys,
        "topLevelInstructions": message.get("instructions") or [],
        "innerInstructionGroups": (meta or {}).get("innerInstructions") or [],
        "meta": meta,
        "loadedAddresses": loaded,
    }
    if header is not None:
        canonical["header"] = header
    return parse_record(canonical)
