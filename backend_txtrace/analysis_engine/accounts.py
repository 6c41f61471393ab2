"""
Account role resolution from position and message header counts.

accountKeys is ordered as four contiguous regions:

    [0, S-RS)      writable signers
    [S-RS, S)      read-only signers
    [S, N-RU)      writable non-signers
    [N-RU, N)      read-only non-signers

with S = numRequiredSignatures, RS = numReadonlySignedAccounts,
RU = numReadonlyUnsignedAccounts, N = len(accountKeys). Roles come from
position only; field names and flags on the keys are never consulted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from backend_txtrace.transaction.models import MessageHeader, TransactionRecord

REGION_WRITABLE_SIGNER = "writable_signer"
REGION_READONLY_SIGNER = "readonly_signer"
REGION_WRITABLE_NONSIGNER = "writable_nonsigner"
REGION_READONLY_NONSIGNER = "readonly_nonsigner"


@dataclass(frozen=True)
class AccountRole:
    is_signer: bool
    is_writable: bool


UNKNOWN_ROLE = AccountRole(is_signer=False, is_writable=False)


def resolve_account_role(
    account_keys: Sequence[str],
    header: MessageHeader,
    index: int,
) -> AccountRole:
    """
    Signer/writable status for the key at index.

    Out-of-range indices return (False, False); callers treat that as
    unknown, not as a read-only non-signer.
    """
    n = len(account_keys)
    if not 0 <= index < n:
        return UNKNOWN_ROLE
    s = header.num_required_signatures
    rs = header.num_readonly_signed_accounts
    ru = header.num_readonly_unsigned_accounts
    is_signer = index < s
    is_writable = index < s - rs or (s <= index < n - ru)
    return AccountRole(is_signer=is_signer, is_writable=is_writable)


def account_region(
    account_keys: Sequence[str],
    header: MessageHeader,
    index: int,
) -> str | None:
    """Name of the region containing index; None when out of range."""
    n = len(account_keys)
    if not 0 <= index < n:
        return None
    s = header.num_required_signatures
    rs = header.num_readonly_signed_accounts
    ru = header.num_readonly_unsigned_accounts
    if index < s - rs:
        return REGION_WRITABLE_SIGNER
    if index < s:
        return REGION_READONLY_SIGNER
    if index < n - ru:
        return REGION_WRITABLE_NONSIGNER
    return REGION_READONLY_NONSIGNER


class AccountRoleResolver:
    """
    Per-record resolver by index or pubkey.

    Indices past the static keys address lookup-table addresses: loaded
    writable keys are writable non-signers, loaded read-only keys are
    neither.
    """

    def __init__(self, record: TransactionRecord):
        self._keys = record.account_keys
        self._header = record.header
        self._loaded_writable = record.loaded_writable
        self._all_keys = record.all_account_keys
        self._positions: dict[str, int] = {}
        for i, key in enumerate(self._all_keys):
            self._positions.setdefault(key, i)

    def key_at(self, index: int) -> str | None:
        if isinstance(index, bool) or not isinstance(index, int):
            return None
        if 0 <= index < len(self._all_keys):
            return self._all_keys[index]
        return None

    def position_of(self, pubkey: str) -> int | None:
        return self._positions.get(pubkey)

    def role_at(self, index: int) -> AccountRole:
        static_count = len(self._keys)
        if index < static_count:
            return resolve_account_role(self._keys, self._header, index)
        offset = index - static_count
        if offset < len(self._loaded_writable):
            return AccountRole(is_signer=False, is_writable=True)
        return UNKNOWN_ROLE

    def role_of(self, pubkey: str) -> AccountRole:
        index = self.position_of(pubkey)
        if index is None:
            return UNKNOWN_ROLE
        return self.role_at(index)
