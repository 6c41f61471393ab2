"""
Rule-based error pattern matching for failed or risky transactions.

The failure object is serialized to canonical JSON and tested against an
ordered rule table; every matching rule contributes one diagnostic, in
table order; a failure no rule recognizes still yields one informational
program_error entry. Two structural checks run independently of the failure
object: high compute consumption and accounts left below the rent-exempt
minimum. Fully explainable: each diagnostic carries a cause, a fix and,
where known, documentation and an effort estimate.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, replace
from typing import Any, Callable, Sequence

from backend_txtrace.analysis_engine.models import Diagnostic, DiagnosticKind, Severity
from backend_txtrace.transaction.models import TransactionMeta
from backend_txtrace.txtrace_logging import get_logger

logger = get_logger(__name__)

MAX_COMPUTE_BUDGET = 1_400_000
# ~57% of the max budget; crossing it warns even on success
COMPUTE_HIGH_WATER_MARK = 800_000
# Approximate minimum balance for rent exemption of a zero-data account
MINIMUM_RENT_EXEMPTION_LAMPORTS = 890_880

COMPUTE_BUDGET_DOCS = "https://docs.solana.com/developing/programming-model/runtime#compute-budget"

REALLOC_CODE_EXAMPLE = """// Split large accounts using PDA chunking
#[derive(Accounts)]
#[instruction(chunk_id: u8)]
pub struct InitializeChunk<'info> {
    #[account(
        init,
        payer = user,
        space = 8 + 8_000, // 8KB chunks
        seeds = [b"data_chunk", user.key().as_ref(), &[chunk_id]],
        bump
    )]
    pub data_chunk: Account<'info, DataChunk>,
    // ... rest of accounts
}"""


@dataclass(frozen=True)
class ErrorRule:
    """
    One entry of the rule table: a pattern plus the diagnostic it yields.

    detail_builder, when set, receives the regex match and returns the
    message (e.g. to quote a custom error code).
    """

    name: str
    pattern: re.Pattern[str]
    kind: DiagnosticKind
    severity: Severity
    message: str
    suggested_fix: str
    documentation_link: str | None = None
    estimated_fix_time: str | None = None
    code_example: str | None = None
    detail_builder: Callable[[re.Match[str]], str] | None = None

    def to_diagnostic(self, match: re.Match[str]) -> Diagnostic:
        message = self.detail_builder(match) if self.detail_builder else self.message
        return Diagnostic(
            kind=self.kind,
            severity=self.severity,
            message=message,
            suggested_fix=self.suggested_fix,
            documentation_link=self.documentation_link,
            estimated_fix_time=self.estimated_fix_time,
            code_example=self.code_example,
        )


def _custom_error_message(match: re.Match[str]) -> str:
    dec = match.group("dec")
    code = int(dec) if dec is not None else int(match.group("hex"), 16)
    return f"Program returned custom error code {code} (0x{code:x})"


def _rule(pattern: str, **kwargs: Any) -> ErrorRule:
    return ErrorRule(pattern=re.compile(pattern, re.IGNORECASE), **kwargs)


DEFAULT_ERROR_RULES: tuple[ErrorRule, ...] = (
    _rule(
        r"insufficient.*balance|insufficient[\s_]*funds(?![\s_]*for[\s_]*rent)",
        name="insufficient_balance",
        kind=DiagnosticKind.ACCOUNT_BALANCE_MISMATCH,
        severity=Severity.CRITICAL,
        message="Account has insufficient balance for the requested operation",
        suggested_fix="Ensure the account has enough SOL or tokens before executing the transaction",
        estimated_fix_time="5-10 minutes",
        documentation_link="https://docs.solana.com/developing/programming-model/accounts#account-balance",
    ),
    _rule(
        r"realloc.*constraint|invalid[\s_]*realloc",
        name="realloc_constraint",
        kind=DiagnosticKind.REALLOC_CONSTRAINT,
        severity=Severity.CRITICAL,
        message="Account reallocation exceeded maximum allowed size limit",
        suggested_fix="Implement PDA chunking pattern to split large data across multiple accounts",
        estimated_fix_time="2-4 hours",
        documentation_link="https://docs.rs/anchor-lang/latest/anchor_lang/accounts/account/struct.Account.html#account-reallocation",
        code_example=REALLOC_CODE_EXAMPLE,
    ),
    _rule(
        r'"custom"\s*:\s*(?P<dec>\d+)|custom program error:\s*0x(?P<hex>[0-9a-f]+)',
        name="custom_program_error",
        kind=DiagnosticKind.PROGRAM_ERROR,
        severity=Severity.CRITICAL,
        message="Program returned a custom error",
        suggested_fix="Look up the error code in the failing program's error enum (IDL) and check its preconditions",
        estimated_fix_time="30-60 minutes",
        documentation_link="https://solana.com/docs/programs/debugging",
        detail_builder=_custom_error_message,
    ),
    _rule(
        r"compute.*budget.*exceeded|computational[\s_]*budget[\s_]*exceeded|exceeded[\s_]*cus?[\s_]*meter",
        name="compute_budget_exceeded",
        kind=DiagnosticKind.COMPUTE_BUDGET,
        severity=Severity.WARNING,
        message="Transaction exceeded the compute budget limit",
        suggested_fix="Optimize instruction logic or request additional compute units",
        estimated_fix_time="1-2 hours",
        documentation_link=COMPUTE_BUDGET_DOCS,
    ),
    _rule(
        r"insufficient[\s_]*funds[\s_]*for[\s_]*rent|not[\s_]*rent[\s_]*exempt",
        name="rent_violation",
        kind=DiagnosticKind.RENT_VIOLATION,
        severity=Severity.CRITICAL,
        message="An account would be left below the rent-exempt minimum",
        suggested_fix="Fund the account to the rent-exempt minimum for its data size, or close it entirely",
        estimated_fix_time="10-20 minutes",
        documentation_link="https://docs.solana.com/developing/programming-model/accounts#rent",
    ),
    _rule(
        r"account[\s_]*data[\s_]*(?:too[\s_]*small|size[\s_]*changed)"
        r"|max[\s_]*accounts?[\s_]*data[\s_]*(?:size|allocations)[\s_]*exceeded"
        r"|account[\s_]*size[\s_]*exceeded",
        name="account_size_exceeded",
        kind=DiagnosticKind.ACCOUNT_SIZE_EXCEEDED,
        severity=Severity.CRITICAL,
        message="Account data size does not fit the operation",
        suggested_fix="Allocate enough space when creating the account, or split data across several accounts",
        estimated_fix_time="1-2 hours",
        documentation_link="https://docs.solana.com/developing/programming-model/accounts#creating",
    ),
    _rule(
        r"missing[\s_]*required[\s_]*signature|illegal[\s_]*owner|owner[\s_]*does[\s_]*not[\s_]*match"
        r"|constraint[\s_]*has[\s_]*one|(?:invalid|incorrect)[\s_]*authority|unauthorized",
        name="authority_mismatch",
        kind=DiagnosticKind.AUTHORITY_MISMATCH,
        severity=Severity.CRITICAL,
        message="Signer or owner does not match the authority the program expects",
        suggested_fix="Check that the expected authority signs the transaction and that account owners match",
        estimated_fix_time="15-30 minutes",
        documentation_link="https://solana.com/docs/core/transactions#signatures",
    ),
)


def serialize_error(err: Any) -> str:
    """Canonical string form of a failure object (sorted keys, compact)."""
    return json.dumps(err, sort_keys=True, separators=(",", ":"), default=str)


def _instruction_index(err: Any) -> int | None:
    """Top-level position named by {"InstructionError": [i, ...]}, if any."""
    if not isinstance(err, dict):
        return None
    detail = err.get("InstructionError")
    if isinstance(detail, (list, tuple)) and detail:
        idx = detail[0]
        if isinstance(idx, int) and not isinstance(idx, bool) and idx >= 0:
            return idx
    return None


def _check_high_compute(meta: TransactionMeta) -> Diagnostic | None:
    consumed = meta.compute_units_consumed
    if consumed is None or consumed <= COMPUTE_HIGH_WATER_MARK:
        return None
    return Diagnostic(
        kind=DiagnosticKind.COMPUTE_BUDGET,
        severity=Severity.WARNING,
        message=f"High compute usage detected: {consumed:,} units",
        suggested_fix="Consider optimizing instruction logic or splitting into multiple transactions",
        documentation_link=COMPUTE_BUDGET_DOCS,
        estimated_fix_time="1-3 hours",
    )


def _account_label(index: int, account_keys: Sequence[str]) -> str:
    if index < len(account_keys):
        return f"{account_keys[index]} (index {index})"
    return f"at index {index}"


def _check_rent(meta: TransactionMeta, account_keys: Sequence[str] = ()) -> list[Diagnostic]:
    """
    Accounts that lost lamports and ended positive but under the rent-exempt
    minimum. Closed accounts (post balance 0) are not flagged. Balances are
    indexed like account_keys; the pubkey is named when it is known.
    """
    out: list[Diagnostic] = []
    for index, post in enumerate(meta.post_balances):
        pre = meta.pre_balances[index] if index < len(meta.pre_balances) else 0
        if 0 < post < MINIMUM_RENT_EXEMPTION_LAMPORTS and post < pre:
            out.append(
                Diagnostic(
                    kind=DiagnosticKind.RENT_VIOLATION,
                    severity=Severity.WARNING,
                    message=f"Account {_account_label(index, account_keys)} may not be rent exempt: {post} lamports",
                    suggested_fix="Ensure account has sufficient balance for rent exemption",
                    estimated_fix_time="10-20 minutes",
                )
            )
    return out


def _unrecognized_error(text: str, instruction_index: int | None) -> Diagnostic:
    """Informational entry for a failure no rule explains."""
    where = f" in instruction {instruction_index}" if instruction_index is not None else ""
    return Diagnostic(
        kind=DiagnosticKind.PROGRAM_ERROR,
        severity=Severity.INFO,
        message=f"Transaction failed{where} with an unrecognized error: {text[:200]}",
        suggested_fix="Inspect the program logs around the failing instruction for the program's own error message",
        documentation_link="https://solana.com/docs/programs/debugging",
        instruction_index=instruction_index,
    )


class ErrorPatternMatcher:
    """Applies an immutable rule table plus the structural checks to metadata."""

    def __init__(self, rules: tuple[ErrorRule, ...] | list[ErrorRule] | None = None):
        self._rules: tuple[ErrorRule, ...] = tuple(DEFAULT_ERROR_RULES if rules is None else rules)

    @property
    def rules(self) -> tuple[ErrorRule, ...]:
        return self._rules

    def extended(self, *rules: ErrorRule) -> "ErrorPatternMatcher":
        """New matcher with extra rules appended after the existing table."""
        return ErrorPatternMatcher(self._rules + tuple(rules))

    def match_error(self, err: Any) -> list[Diagnostic]:
        """Diagnostics for a failure object alone, in rule-table order."""
        if err is None:
            return []
        text = serialize_error(err)
        instruction_index = _instruction_index(err)
        out: list[Diagnostic] = []
        for rule in self._rules:
            match = rule.pattern.search(text)
            if match is None:
                continue
            diagnostic = rule.to_diagnostic(match)
            if instruction_index is not None:
                diagnostic = replace(diagnostic, instruction_index=instruction_index)
            out.append(diagnostic)
        if not out:
            logger.debug("error_patterns_unmatched", error=text[:200])
            out.append(_unrecognized_error(text, instruction_index))
        return out

    def diagnose(self, meta: TransactionMeta | None, account_keys: Sequence[str] = ()) -> list[Diagnostic]:
        """
        All diagnostics for one transaction's metadata.

        No metadata means nothing to report. The compute check runs whether
        or not the transaction failed. account_keys (the full key list,
        loaded addresses included) lets the rent check name accounts.
        """
        if meta is None:
            return []
        diagnostics = self.match_error(meta.err)
        high_compute = _check_high_compute(meta)
        if high_compute is not None:
            diagnostics.append(high_compute)
        diagnostics.extend(_check_rent(meta, account_keys))
        if diagnostics:
            logger.debug(
                "error_patterns_matched",
                kinds=[d.kind.value for d in diagnostics],
                failed=meta.err is not None,
            )
        return diagnostics


DEFAULT_MATCHER = ErrorPatternMatcher()
