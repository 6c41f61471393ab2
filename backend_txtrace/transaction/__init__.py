"""
Transaction record package.

Immutable input model for the engine and parsers that build it from the
canonical mapping shape or from raw getTransaction payloads.
"""

from backend_txtrace.transaction.models import (
    Instruction,
    MessageHeader,
    TransactionMeta,
    TransactionRecord,
)
from backend_txtrace.transaction.parser import (
    from_rpc_response,
    parse_instruction,
    parse_record,
)

__all__ = [
    "Instruction",
    "MessageHeader",
    "TransactionMeta",
    "TransactionRecord",
    "from_rpc_response",
    "parse_instruction",
    "parse_record",
]
