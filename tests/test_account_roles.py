"""
Tests for positional account role resolution (analysis_engine.accounts).

Roles come from the four-region partition of accountKeys described by the
message header; lookup-table addresses follow the static keys.
"""

from __future__ import annotations

import pytest

from backend_txtrace.analysis_engine.accounts import (
    REGION_READONLY_NONSIGNER,
    REGION_READONLY_SIGNER,
    REGION_WRITABLE_NONSIGNER,
    REGION_WRITABLE_SIGNER,
    UNKNOWN_ROLE,
    AccountRole,
    AccountRoleResolver,
    account_region,
    resolve_account_role,
)
from backend_txtrace.transaction.models import MessageHeader, TransactionRecord


def _keys(n: int) -> tuple[str, ...]:
    return tuple(f"Key{i}" for i in range(n))


def _header(s: int, rs: int, ru: int) -> MessageHeader:
    return MessageHeader(
        num_required_signatures=s,
        num_readonly_signed_accounts=rs,
        num_readonly_unsigned_accounts=ru,
    )


def test_payer_and_readonly_program_roles():
    """S=1, RS=0, RU=2 over four keys: index 0 signs and writes, index 3 does neither."""
    keys = _keys(4)
    header = _header(1, 0, 2)
    assert resolve_account_role(keys, header, 0) == AccountRole(is_signer=True, is_writable=True)
    assert resolve_account_role(keys, header, 1) == AccountRole(is_signer=False, is_writable=True)
    assert resolve_account_role(keys, header, 2) == AccountRole(is_signer=False, is_writable=False)
    assert resolve_account_role(keys, header, 3) == AccountRole(is_signer=False, is_writable=False)


def test_readonly_signer_region():
    """Signers past S-RS are read-only."""
    keys = _keys(5)
    header = _header(3, 1, 1)
    assert resolve_account_role(keys, header, 1) == AccountRole(is_signer=True, is_writable=True)
    assert resolve_account_role(keys, header, 2) == AccountRole(is_signer=True, is_writable=False)
    assert resolve_account_role(keys, header, 3) == AccountRole(is_signer=False, is_writable=True)


@pytest.mark.parametrize("s,rs,ru,n", [(1, 0, 0, 1), (1, 0, 2, 4), (2, 1, 1, 5), (3, 3, 0, 3), (2, 0, 3, 5)])
def test_partition_counts_match_header(s, rs, ru, n):
    """Exactly S signers and (S-RS) + (N-S-RU) writable accounts."""
    keys = _keys(n)
    header = _header(s, rs, ru)
    roles = [resolve_account_role(keys, header, i) for i in range(n)]
    assert sum(r.is_signer for r in roles) == s
    assert sum(r.is_writable for r in roles) == (s - rs) + (n - s - ru)
    assert not any(r.is_signer for r in roles[s:])
    assert all(account_region(keys, header, i) is not None for i in range(n))


@pytest.mark.parametrize("index", [-1, 4, 100])
def test_out_of_range_is_unknown(index):
    """Out-of-range positions resolve to (False, False) and no region."""
    keys = _keys(4)
    header = _header(1, 0, 2)
    assert resolve_account_role(keys, header, index) == UNKNOWN_ROLE
    assert account_region(keys, header, index) is None


def test_account_regions():
    """Each position names the region it falls in."""
    keys = _keys(6)
    header = _header(2, 1, 2)
    regions = [account_region(keys, header, i) for i in range(6)]
    assert regions == [
        REGION_WRITABLE_SIGNER,
        REGION_READONLY_SIGNER,
        REGION_WRITABLE_NONSIGNER,
        REGION_WRITABLE_NONSIGNER,
        REGION_READONLY_NONSIGNER,
        REGION_READONLY_NONSIGNER,
    ]


def test_resolver_covers_loaded_addresses():
    """Indices past static keys address loaded writable, then loaded read-only."""
    record = TransactionRecord(
        signature="sig",
        account_keys=_keys(3),
        header=_header(1, 0, 1),
        loaded_writable=("LoadedW",),
        loaded_readonly=("LoadedR",),
    )
    resolver = AccountRoleResolver(record)
    assert resolver.key_at(3) == "LoadedW"
    assert resolver.key_at(4) == "LoadedR"
    assert resolver.key_at(5) is None
    assert resolver.role_at(3) == AccountRole(is_signer=False, is_writable=True)
    assert resolver.role_at(4) == UNKNOWN_ROLE
    assert resolver.role_of("Key0") == AccountRole(is_signer=True, is_writable=True)
    assert resolver.role_of("NotInRecord") == UNKNOWN_ROLE


def test_resolver_rejects_non_integer_indices():
    """Booleans and strings are not indices."""
    record = TransactionRecord(signature="sig", account_keys=_keys(2), header=_header(1, 0, 0))
    resolver = AccountRoleResolver(record)
    assert resolver.key_at(True) is None
    assert resolver.key_at("0") is None
    assert resolver.position_of("Key1") == 1
