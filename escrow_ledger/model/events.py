from __future__ import annotations
"""
Escrow ledger event types.

Events are fire-and-forget notifications for external indexers. Each carries
a topic tuple ``("escrow", <name>, <escrow id>)`` and a small data payload:

  - created:   (sender, amount, deadline)
  - approved:  sender
  - splclaim:  (recipient, amount)      one per recipient, in declaration order
  - claimed:   [recipient, ...]         aggregate, after all split payouts
  - refunded:  sender

`seq` is assigned by the event sink when the event is emitted, so it orders
events within and across calls. Events of a call that rolls back are dropped
together with their sequence numbers.
"""


from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

TOPIC_NAMESPACE = "escrow"


class EventType(str, Enum):
    CREATED = "created"
    APPROVED = "approved"
    SPLIT_CLAIMED = "splclaim"
    CLAIMED = "claimed"
    REFUNDED = "refunded"


@dataclass(frozen=True)
class LedgerEvent:
    etype: EventType
    escrow_id: int
    data: Any
    timestamp: int
    seq: Optional[int] = None

    @property
    def topics(self) -> Tuple[str, str, int]:
        return (TOPIC_NAMESPACE, self.etype.value, self.escrow_id)

    def with_seq(self, seq: int) -> "LedgerEvent":
        return LedgerEvent(self.etype, self.escrow_id, self.data, self.timestamp, seq)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seq": self.seq,
            "topics": list(self.topics),
            "type": self.etype.value,
            "escrow_id": self.escrow_id,
            "data": _jsonable(self.data),
            "timestamp": self.timestamp,
        }

    def to_record(self) -> Dict[str, Any]:
        """Storage form: like to_dict() but keeps exact ints (CBOR carries bignums)."""
        d = self.to_dict()
        d["data"] = self.data
        return d

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "LedgerEvent":
        data = d["data"]
        return LedgerEvent(
            etype=EventType(d["type"]),
            escrow_id=int(d["escrow_id"]),
            data=tuple(data) if isinstance(data, list) else data,
            timestamp=int(d["timestamp"]),
            seq=d.get("seq"),
        )


def _jsonable(v: Any) -> Any:
    """Transport view of a payload: integers become decimal strings, as in EscrowRecord.to_json."""
    if isinstance(v, (tuple, list)):
        return [_jsonable(x) for x in v]
    if isinstance(v, int) and not isinstance(v, bool):
        return str(v)
    return v


# ---- constructors -----------------------------------------------------------

def created(escrow_id: int, sender: str, amount: int, deadline: int, *, timestamp: int) -> LedgerEvent:
    return LedgerEvent(EventType.CREATED, escrow_id, (sender, amount, deadline), timestamp)


def approved(escrow_id: int, sender: str, *, timestamp: int) -> LedgerEvent:
    return LedgerEvent(EventType.APPROVED, escrow_id, sender, timestamp)


def split_claimed(escrow_id: int, recipient: str, amount: int, *, timestamp: int) -> LedgerEvent:
    return LedgerEvent(EventType.SPLIT_CLAIMED, escrow_id, (recipient, amount), timestamp)


def claimed(escrow_id: int, recipients: Sequence[str], *, timestamp: int) -> LedgerEvent:
    return LedgerEvent(EventType.CLAIMED, escrow_id, tuple(recipients), timestamp)


def refunded(escrow_id: int, sender: str, *, timestamp: int) -> LedgerEvent:
    return LedgerEvent(EventType.REFUNDED, escrow_id, sender, timestamp)


__all__ = [
    "TOPIC_NAMESPACE",
    "EventType",
    "LedgerEvent",
    "created",
    "approved",
    "split_claimed",
    "claimed",
    "refunded",
]
