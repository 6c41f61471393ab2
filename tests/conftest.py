"""
Pytest fixtures for TxTrace tests. Canonical record mappings as fed to parse_record.
"""

from __future__ import annotations

import pytest

PAYER = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
RECIPIENT = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
TOKEN_ACCOUNT = "3uQzEjXkJmPfYQHqDS6wq5PBpKXgCf9Yw9c2vNJbVbm6"
MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
SYSTEM = "11111111111111111111111111111111"
TOKEN = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
ATA_PROGRAM = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

SIGNATURE = "5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnbJLgp8uirBgmQpjKhoR4tjF3ZpRzrFmBV6UjKdiSZkQUW"


def _parsed(program_id: str, kind: str, info: dict) -> dict:
    """Parsed instruction entry as delivered in jsonParsed encoding."""
    return {"programId": program_id, "parsed": {"type": kind, "info": info}}


@pytest.fixture
def transfer_record_data():
    """
    One successful System transfer: payer (writable signer) -> recipient
    (writable non-signer). The System Program logs no consumed line.
    """
    return {
        "signature": SIGNATURE,
        "slot": 250_000_000,
        "blockTime": 1704067200,
        "accountKeys": [PAYER, RECIPIENT, SYSTEM],
        "header": {
            "numRequiredSignatures": 1,
            "numReadonlySignedAccounts": 0,
            "numReadonlyUnsignedAccounts": 1,
        },
        "topLevelInstructions": [
            {
                "programId": SYSTEM,
                "parsed": {
                    "type": "transfer",
                    "info": {"source": PAYER, "destination": RECIPIENT, "lamports": 1_000_000},
                },
                "stackHeight": None,
            }
        ],
        "innerInstructionGroups": {},
        "meta": {
            "err": None,
            "fee": 5000,
            "computeUnitsConsumed": 150,
            "logMessages": [
                f"Program {SYSTEM} invoke [1]",
                f"Program {SYSTEM} success",
            ],
            "preBalances": [10_000_000, 1_000_000, 1],
            "postBalances": [8_995_000, 2_000_000, 1],
        },
    }


@pytest.fixture
def ata_record_data():
    """
    Transfer, then an idempotent associated-token-account create whose inner
    group holds System createAccount and Token initializeAccount3.
    """
    return {
        "signature": SIGNATURE,
        "slot": 250_000_001,
        "blockTime": 1704067200,
        "accountKeys": [PAYER, RECIPIENT, TOKEN_ACCOUNT, SYSTEM, ATA_PROGRAM, TOKEN, MINT],
        "header": {
            "numRequiredSignatures": 1,
            "numReadonlySignedAccounts": 0,
            "numReadonlyUnsignedAccounts": 4,
        },
        "topLevelInstructions": [
            _parsed(SYSTEM, "transfer", {"source": PAYER, "destination": RECIPIENT, "lamports": 5000}),
            _parsed(
                ATA_PROGRAM,
                "createIdempotent",
                {
                    "source": PAYER,
                    "account": TOKEN_ACCOUNT,
                    "wallet": PAYER,
                    "mint": MINT,
                    "systemProgram": SYSTEM,
                    "tokenProgram": TOKEN,
                },
            ),
        ],
        "innerInstructionGroups": {
            "1": [
                _parsed(SYSTEM, "createAccount", {"source": PAYER, "newAccount": TOKEN_ACCOUNT, "owner": TOKEN}),
                _parsed(TOKEN, "initializeAccount3", {"account": TOKEN_ACCOUNT, "mint": MINT, "owner": PAYER}),
            ]
        },
        "meta": {
            "err": None,
            "fee": 5000,
            "computeUnitsConsumed": 30_000,
            "logMessages": None,
            "preBalances": [50_000_000, 1_000_000, 0, 1, 1, 1, 1],
            "postBalances": [47_950_000, 1_005_000, 2_039_280, 1, 1, 1, 1],
        },
    }
