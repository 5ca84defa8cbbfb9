from __future__ import annotations
"""
Escrow record types.

An EscrowRecord is the persisted unit of custody state for one deposit. It is
created once, mutated only by the ledger's approve/claim/refund transitions,
and never deleted (it stays readable as an audit trail).

All fields are plain ints/strings so records serialize to canonical CBOR
(store) and JSON (RPC) without custom hooks.
"""


from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Any, Dict, Mapping, Sequence, Tuple, Union

U32_MAX = (1 << 32) - 1
U64_MAX = (1 << 64) - 1
I128_MAX = (1 << 127) - 1

PERCENT_TOTAL = 100

# Principals and asset names are embedded in store keys; this bounds them.
MAX_NAME_BYTES = 96

Principal = str
Amount = int  # signed 128-bit range, smallest unit of the asset
Timestamp = int  # unsigned 64-bit, consensus seconds


class EscrowStatus(IntEnum):
    PENDING = 0
    APPROVED = 1
    CLAIMED = 2
    REFUNDED = 3

    @property
    def is_terminal(self) -> bool:
        return self in (EscrowStatus.CLAIMED, EscrowStatus.REFUNDED)

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class Recipient:
    """One beneficiary and its fixed share in whole percent."""

    principal: Principal
    percentage: int

    def to_list(self) -> list:
        return [self.principal, self.percentage]

    @staticmethod
    def coerce(value: Union["Recipient", Sequence[Any], Mapping[str, Any]]) -> "Recipient":
        """Accept a Recipient, a (principal, percentage) pair, or a mapping."""
        if isinstance(value, Recipient):
            return value
        if isinstance(value, Mapping):
            return Recipient(principal=value["principal"], percentage=value["percentage"])
        principal, percentage = value
        return Recipient(principal=principal, percentage=percentage)


@dataclass(frozen=True)
class EscrowRecord:
    id: int
    sender: Principal
    recipients: Tuple[Recipient, ...]
    amount: Amount
    asset: str
    created_at: Timestamp
    deadline: Timestamp
    approved: bool = False
    status: EscrowStatus = EscrowStatus.PENDING

    @property
    def has_deadline(self) -> bool:
        return self.deadline != 0

    def principals(self) -> Tuple[Principal, ...]:
        return tuple(r.principal for r in self.recipients)

    def is_recipient(self, principal: Principal) -> bool:
        return any(r.principal == principal for r in self.recipients)

    def with_status(self, status: EscrowStatus, *, approved: bool | None = None) -> "EscrowRecord":
        return replace(
            self,
            status=status,
            approved=self.approved if approved is None else approved,
        )

    # ---- (de)serialization -------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sender": self.sender,
            "recipients": [r.to_list() for r in self.recipients],
            "amount": self.amount,
            "asset": self.asset,
            "created_at": self.created_at,
            "deadline": self.deadline,
            "approved": self.approved,
            "status": int(self.status),
        }

    def to_json(self) -> Dict[str, Any]:
        """Transport view: amounts as decimal strings (i128 exceeds JS numbers)."""
        d = self.to_dict()
        d["amount"] = str(self.amount)
        d["recipients"] = [
            {"principal": r.principal, "percentage": r.percentage} for r in self.recipients
        ]
        d["status"] = self.status.label
        return d

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "EscrowRecord":
        return EscrowRecord(
            id=int(d["id"]),
            sender=str(d["sender"]),
            recipients=tuple(Recipient.coerce(r) for r in d["recipients"]),
            amount=int(d["amount"]),
            asset=str(d["asset"]),
            created_at=int(d["created_at"]),
            deadline=int(d["deadline"]),
            approved=bool(d["approved"]),
            status=EscrowStatus(int(d["status"])),
        )


__all__ = [
    "U32_MAX",
    "U64_MAX",
    "I128_MAX",
    "PERCENT_TOTAL",
    "MAX_NAME_BYTES",
    "Principal",
    "Amount",
    "Timestamp",
    "EscrowStatus",
    "Recipient",
    "EscrowRecord",
]
