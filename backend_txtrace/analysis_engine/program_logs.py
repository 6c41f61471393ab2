"""
Runtime log parsing: per-invocation compute consumption.

The runtime logs every program invocation in execution order:

    Program <id> invoke [<height>]
    Program <id> consumed <units> of <budget> compute units
    Program <id> success | Program <id> failed: <reason>

Each height-1 invocation is one top-level instruction, in order. Deeper
invocations belong to the top-level call that precedes them and appear in
the same order as that instruction's inner group. Builtin programs emit no
"consumed" line; their invocations carry None.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Sequence

_INVOKE_RE = re.compile(r"^Program (\S+) invoke \[(\d+)\]")
_CONSUMED_RE = re.compile(r"^Program (\S+) consumed (\d+) of (\d+) compute units")
_EXIT_RE = re.compile(r"^Program (\S+) (success|failed)")

TOP_LEVEL_STACK_HEIGHT = 1


@dataclass
class ProgramInvocation:
    program_id: str
    stack_height: int
    consumed: int | None = None
    succeeded: bool | None = None
    """None when the log was truncated before the invocation returned."""


@dataclass
class InvocationGroup:
    """One top-level invocation and every invocation nested under it."""

    top: ProgramInvocation
    nested: list[ProgramInvocation] = field(default_factory=list)


def parse_invocations(log_messages: Sequence[str] | None) -> list[ProgramInvocation]:
    """Ordered invocations found in the logs; empty for None or unrelated lines."""
    invocations: list[ProgramInvocation] = []
    stack: list[ProgramInvocation] = []
    for line in log_messages or ():
        m = _INVOKE_RE.match(line)
        if m:
            invocation = ProgramInvocation(program_id=m.group(1), stack_height=int(m.group(2)))
            invocations.append(invocation)
            stack.append(invocation)
            continue
        m = _CONSUMED_RE.match(line)
        if m:
            if stack and stack[-1].program_id == m.group(1):
                stack[-1].consumed = int(m.group(2))
            continue
        m = _EXIT_RE.match(line)
        if m and stack and stack[-1].program_id == m.group(1):
            stack.pop().succeeded = m.group(2) == "success"
    return invocations


def group_invocations(invocations: Sequence[ProgramInvocation]) -> list[InvocationGroup]:
    """
    Split invocations by top-level call. Nested invocations logged before
    any top-level one cannot be placed and are dropped.
    """
    groups: list[InvocationGroup] = []
    for invocation in invocations:
        if invocation.stack_height <= TOP_LEVEL_STACK_HEIGHT:
            groups.append(InvocationGroup(top=invocation))
        elif groups:
            groups[-1].nested.append(invocation)
    return groups


def measured_units_for(
    groups: Sequence[InvocationGroup],
    top_index: int,
    program_id: str,
    inner_position: int | None = None,
    inner_count: int = 0,
) -> int | None:
    """
    Consumption for one step, or None when the logs cannot vouch for it.

    A top-level step (inner_position None) takes its figure from the
    top_index-th top-level invocation. An inner step only takes a figure
    when the logs show exactly inner_count nested invocations under that
    call, so positions line up one to one. Either way the invocation must
    name the same program.
    """
    if not 0 <= top_index < len(groups):
        return None
    group = groups[top_index]
    if inner_position is None:
        invocation = group.top
    else:
        if len(group.nested) != inner_count or not 0 <= inner_position < inner_count:
            return None
        invocation = group.nested[inner_position]
    if invocation.program_id != program_id:
        return None
    return invocation.consumed
