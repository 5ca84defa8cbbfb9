from __future__ import annotations
"""Escrow ledger data model: records, storage keys and events."""

from .escrow import (
    I128_MAX,
    PERCENT_TOTAL,
    U32_MAX,
    U64_MAX,
    EscrowRecord,
    EscrowStatus,
    Recipient,
)
from .events import EventType, LedgerEvent
from .keys import (
    DataKey,
    EscrowKey,
    IndexEntryKey,
    NextIdKey,
    UserCreatedKey,
    UserReceivedKey,
    decode_key,
)

__all__ = [
    "I128_MAX",
    "PERCENT_TOTAL",
    "U32_MAX",
    "U64_MAX",
    "EscrowRecord",
    "EscrowStatus",
    "Recipient",
    "EventType",
    "LedgerEvent",
    "DataKey",
    "EscrowKey",
    "IndexEntryKey",
    "NextIdKey",
    "UserCreatedKey",
    "UserReceivedKey",
    "decode_key",
]
