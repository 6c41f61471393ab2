"""
Tests for record parsing (transaction.parser).

parse_record validates the canonical mapping; from_rpc_response normalizes
getTransaction payloads in json and jsonParsed encodings.
"""

from __future__ import annotations

import pytest

from backend_txtrace.core.exceptions import MalformedTransactionError
from backend_txtrace.transaction.models import VARIANT_COMPILED, VARIANT_PARSED, VARIANT_PARTIAL
from backend_txtrace.transaction.parser import from_rpc_response, parse_instruction, parse_record

PAYER = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
RECIPIENT = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
LOADED = "4Nd1mBQtrMJVYVfKf2PJy9NZUZdTAsp7D4xWLs4gDB4T"
SYSTEM = "11111111111111111111111111111111"
SIGNATURE = "5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnbJLgp8uirBgmQpjKhoR4tjF3ZpRzrFmBV6UjKdiSZkQUW"


def _header(s=1, rs=0, ru=1) -> dict:
    return {
        "numRequiredSignatures": s,
        "numReadonlySignedAccounts": rs,
        "numReadonlyUnsignedAccounts": ru,
    }


def _record(**overrides) -> dict:
    data = {
        "signature": SIGNATURE,
        "accountKeys": [PAYER, RECIPIENT, SYSTEM],
        "header": _header(),
        "topLevelInstructions": [],
        "meta": {"err": None, "fee": 5000},
    }
    data.update(overrides)
    return data


def test_parse_record_basic(transfer_record_data):
    """Canonical mapping becomes an immutable record."""
    record = parse_record(transfer_record_data)
    assert record.signature == SIGNATURE
    assert record.account_keys == (PAYER, RECIPIENT, SYSTEM)
    assert record.header.num_required_signatures == 1
    assert record.header.num_readonly_unsigned_accounts == 1
    assert len(record.instructions) == 1
    assert record.meta.compute_units_consumed == 150
    assert record.meta.fee == 5000
    assert record.slot == 250_000_000
    assert record.block_time == 1704067200
    assert record.failed is False


@pytest.mark.parametrize("keys", [None, []])
def test_missing_account_keys(keys):
    """Missing or empty accountKeys is a structural error."""
    data = _record(accountKeys=keys)
    with pytest.raises(MalformedTransactionError) as exc_info:
        parse_record(data)
    assert exc_info.value.missing_fields == ["accountKeys"]
    assert exc_info.value.code == "MALFORMED_TRANSACTION"


def test_missing_header():
    """No header is a structural error."""
    data = _record()
    del data["header"]
    with pytest.raises(MalformedTransactionError) as exc_info:
        parse_record(data)
    assert exc_info.value.missing_fields == ["header"]


def test_header_missing_field():
    """Each absent count is named."""
    header = _header()
    del header["numReadonlyUnsignedAccounts"]
    with pytest.raises(MalformedTransactionError) as exc_info:
        parse_record(_record(header=header))
    assert exc_info.value.missing_fields == ["header.numReadonlyUnsignedAccounts"]


@pytest.mark.parametrize(
    "header",
    [
        _header(s=1, rs=2, ru=0),
        _header(s=2, rs=0, ru=2),
        _header(s=-1, rs=0, ru=0),
        _header(s=True, rs=0, ru=0),
        _header(s="1", rs=0, ru=0),
    ],
)
def test_header_counts_must_partition_keys(header):
    """RS > S, S + RU > N, negative or non-int counts are rejected."""
    with pytest.raises(MalformedTransactionError):
        parse_record(_record(header=header))


def test_not_a_mapping():
    """Non-mapping input is rejected."""
    with pytest.raises(MalformedTransactionError):
        parse_record(["not", "a", "record"])


def test_instruction_variants():
    """parsed, partial and compiled shapes are told apart."""
    parsed = parse_instruction({"programId": SYSTEM, "parsed": {"type": "transfer", "info": {"source": PAYER}}})
    partial = parse_instruction({"programId": SYSTEM, "accounts": [PAYER], "data": "3Bxs"})
    compiled = parse_instruction({"programIdIndex": 2, "accounts": [0, 1], "data": "3Bxs", "stackHeight": 1})
    assert parsed.variant == VARIANT_PARSED
    assert parsed.parsed_type == "transfer"
    assert parsed.parsed_info["source"] == PAYER
    assert partial.variant == VARIANT_PARTIAL
    assert partial.accounts == (PAYER,)
    assert compiled.variant == VARIANT_COMPILED
    assert compiled.program_id_index == 2
    assert compiled.accounts == (0, 1)
    assert compiled.stack_height == 1


def test_unusable_instruction_becomes_empty_compiled():
    """Non-mapping instructions never raise at parse time."""
    instruction = parse_instruction("garbage")
    assert instruction.variant == VARIANT_COMPILED
    assert instruction.program_id_index is None


def test_inner_groups_string_keys_and_list_form():
    """Inner groups accept JSON string keys and the RPC list form."""
    ix = {"programIdIndex": 2, "accounts": [0]}
    by_key = parse_record(_record(innerInstructionGroups={"0": [ix], "2": [ix, ix]}))
    as_list = parse_record(
        _record(innerInstructionGroups=[{"index": 0, "instructions": [ix]}, {"index": 2, "instructions": [ix, ix]}])
    )
    assert sorted(by_key.inner_instruction_groups) == [0, 2]
    assert len(by_key.inner_instruction_groups[2]) == 2
    assert dict(by_key.inner_instruction_groups) == dict(as_list.inner_instruction_groups)


def test_inner_groups_bad_index_dropped():
    """Unusable group indices are dropped, not fatal."""
    record = parse_record(_record(innerInstructionGroups={"x": [{"programIdIndex": 2}], "-1": []}))
    assert dict(record.inner_instruction_groups) == {}


def test_missing_meta_is_allowed():
    """Records without meta parse; the engine treats them as successful."""
    data = _record()
    del data["meta"]
    record = parse_record(data)
    assert record.meta is None
    assert record.failed is False


def test_from_rpc_response_none():
    """Transaction not found."""
    assert from_rpc_response(None) is None


def test_from_rpc_response_json_encoding():
    """json encoding: string keys, explicit header, loaded addresses from meta."""
    raw = {
        "slot": 300,
        "blockTime": 1704067200,
        "transaction": {
            "signatures": [SIGNATURE],
            "message": {
                "accountKeys": [PAYER, RECIPIENT, SYSTEM],
                "header": _header(),
                "instructions": [{"programIdIndex": 2, "accounts": [0, 1], "data": "3Bxs4h24hBtQy9rw"}],
            },
        },
        "meta": {
            "err": None,
            "fee": 5000,
            "computeUnitsConsumed": 150,
            "innerInstructions": [],
            "loadedAddresses": {"writable": [LOADED], "readonly": []},
        },
    }
    record = from_rpc_response(raw)
    assert record.signature == SIGNATURE
    assert record.slot == 300
    assert record.account_keys == (PAYER, RECIPIENT, SYSTEM)
    assert record.loaded_writable == (LOADED,)
    assert record.all_account_keys[-1] == LOADED
    assert record.instructions[0].program_id_index == 2


def test_from_rpc_response_json_parsed_encoding():
    """jsonParsed: header rebuilt from flags; lookup-table keys split out."""
    raw = {
        "slot": 301,
        "transaction": {
            "signatures": [SIGNATURE],
            "message": {
                "accountKeys": [
                    {"pubkey": PAYER, "signer": True, "writable": True, "source": "transaction"},
                    {"pubkey": RECIPIENT, "signer": False, "writable": True, "source": "transaction"},
                    {"pubkey": SYSTEM, "signer": False, "writable": False, "source": "transaction"},
                    {"pubkey": LOADED, "signer": False, "writable": True, "source": "lookupTable"},
                ],
                "instructions": [
                    {
                        "programId": SYSTEM,
                        "program": "system",
                        "parsed": {"type": "transfer", "info": {"source": PAYER, "destination": RECIPIENT}},
                    }
                ],
            },
        },
        "meta": {"err": None, "fee": 5000},
    }
    record = from_rpc_response(raw)
    assert record.account_keys == (PAYER, RECIPIENT, SYSTEM)
    assert record.loaded_writable == (LOADED,)
    assert record.header.num_required_signatures == 1
    assert record.header.num_readonly_signed_accounts == 0
    assert record.header.num_readonly_unsigned_accounts == 1
    assert record.instructions[0].parsed_type == "transfer"


def test_from_rpc_response_flags_out_of_order():
    """Flags that cannot come from a region-ordered key list are rejected."""
    raw = {
        "transaction": {
            "signatures": [SIGNATURE],
            "message": {
                "accountKeys": [
                    {"pubkey": PAYER, "signer": True, "writable": True},
                    {"pubkey": SYSTEM, "signer": False, "writable": False},
                    {"pubkey": RECIPIENT, "signer": False, "writable": True},
                ],
                "instructions": [],
            },
        },
        "meta": None,
    }
    with pytest.raises(MalformedTransactionError):
        from_rpc_response(raw)


def test_from_rpc_response_without_message():
    """A payload without transaction.message is structural."""
    with pytest.raises(MalformedTransactionError) as exc_info:
        from_rpc_response({"slot": 1, "transaction": {"signatures": [SIGNATURE]}})
    assert exc_info.value.missing_fields == ["transaction.message"]


@pytest.mark.parametrize("value", [5, "ix", {"programIdIndex": 2}])
def test_inner_group_not_a_list_is_empty(value):
    """A non-list inner group is dropped instead of raising."""
    record = parse_record(_record(innerInstructionGroups={"0": value}))
    assert record.inner_instruction_groups.get(0, ()) == ()


def test_inner_group_list_form_bad_instructions():
    """The RPC list form tolerates a non-list instructions value."""
    record = parse_record(_record(innerInstructionGroups=[{"index": 1, "instructions": 7}]))
    assert record.inner_instruction_groups.get(1, ()) == ()


@pytest.mark.parametrize("value", [7, "abc", {"programIdIndex": 2}])
def test_top_level_instructions_not_a_list(value):
    """Non-list topLevelInstructions parse as no instructions."""
    record = parse_record(_record(topLevelInstructions=value))
    assert record.instructions == ()


def test_non_list_balances_and_loaded_addresses():
    """Odd balance and lookup fields are read as empty."""
    record = parse_record(
        _record(
            meta={"err": None, "fee": 5000, "preBalances": 5, "postBalances": "x"},
            loadedAddresses={"writable": 3, "readonly": None},
        )
    )
    assert record.meta.pre_balances == ()
    assert record.meta.post_balances == ()
    assert record.loaded_writable == ()
    assert record.loaded_readonly == ()
