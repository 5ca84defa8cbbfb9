from __future__ import annotations
"""
Recipient validation and proportional payout math.

Shares are whole percentages that must sum to exactly 100. Each recipient is
paid ``amount * percentage // 100`` (truncating division); the shortfall from
truncation is *not* redistributed and stays in custody. Consequently

    sum(shares) <= amount  and  amount - sum(shares) < len(recipients)

Pure integer arithmetic; no floats, time or randomness.

Example
-------
>>> compute_shares(101, [Recipient("a", 50), Recipient("b", 50)])
Payout(shares=(('a', 50), ('b', 50)), remainder=1)
"""

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Tuple

from .errors import ValidationError
from .model.escrow import MAX_NAME_BYTES, PERCENT_TOTAL, U32_MAX, Principal, Recipient


@dataclass(frozen=True)
class Payout:
    shares: Tuple[Tuple[Principal, int], ...]
    remainder: int

    @property
    def total(self) -> int:
        return sum(amt for _, amt in self.shares)


def _coerce(raw: Any, index: int) -> Recipient:
    try:
        r = Recipient.coerce(raw)
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(
            "recipient must be a (principal, percentage) pair",
            details={"index": index, "value": repr(raw)},
        ) from e
    if not isinstance(r.principal, str) or not r.principal:
        raise ValidationError("recipient principal must be a non-empty string", details={"index": index})
    size = len(r.principal.encode("utf-8"))
    if size > MAX_NAME_BYTES:
        raise ValidationError(
            f"recipient principal exceeds {MAX_NAME_BYTES} bytes",
            details={"index": index, "len": size, "max": MAX_NAME_BYTES},
        )
    pct = r.percentage
    if not isinstance(pct, int) or isinstance(pct, bool) or pct < 0 or pct > U32_MAX:
        raise ValidationError(
            "recipient percentage must be a u32 integer",
            details={"index": index, "percentage": repr(pct)},
        )
    if pct > PERCENT_TOTAL:
        raise ValidationError(
            "recipient percentage must be within 0..100",
            details={"index": index, "percentage": pct},
        )
    return r


def validate_recipients(
    recipients: Iterable[Any], *, max_recipients: Optional[int] = None
) -> Tuple[Recipient, ...]:
    """
    Normalize and check a recipient list. Raises ValidationError when the
    list is empty, longer than `max_recipients`, contains a malformed entry
    or an out-of-range percentage, or does not sum to exactly 100.

    Duplicate principals are allowed; each entry is paid independently.
    """
    items = list(recipients)
    if not items:
        raise ValidationError("at least one recipient required")
    if max_recipients is not None and len(items) > max_recipients:
        raise ValidationError(
            "too many recipients",
            details={"count": len(items), "max": max_recipients},
        )
    out = tuple(_coerce(raw, i) for i, raw in enumerate(items))
    total = sum(r.percentage for r in out)
    if total != PERCENT_TOTAL:
        raise ValidationError("percentages must sum to 100", details={"total": total})
    return out


def compute_shares(amount: int, recipients: Sequence[Recipient]) -> Payout:
    """Split `amount` by percentage in declaration order, truncating each share."""
    if not isinstance(amount, int) or amount < 0:
        raise ValidationError("amount must be a non-negative int", details={"amount": repr(amount)})
    shares = tuple(
        (r.principal, amount * r.percentage // PERCENT_TOTAL) for r in recipients
    )
    paid = sum(a for _, a in shares)
    return Payout(shares=shares, remainder=amount - paid)


__all__ = ["Payout", "validate_recipients", "compute_shares"]
