from __future__ import annotations
"""
EscrowLedger: custodial escrow with approval gating, deadlines and
percentage splits.

A sender deposits value naming one or more recipients with fixed integer
percentage shares. The sender then approves the escrow, after which any
listed recipient may trigger the release of every share. If the escrow is
never claimed, the sender can take the full amount back once the deadline
has passed (or at any time when no deadline was set).

Lifecycle
---------
    create  -> PENDING
    approve    PENDING  -> APPROVED
    claim      APPROVED -> CLAIMED      (only while now <= deadline)
    refund     PENDING | APPROVED -> REFUNDED   (only once now > deadline)

CLAIMED and REFUNDED are terminal. Records are never deleted.

Design notes
------------
- Every mutating call runs inside `LedgerHost.atomic()`: the id counter,
  record writes, index appends, transfers and events of one call commit
  together or not at all. A failed transfer halfway through a claim undoes
  the shares already paid and restores the APPROVED status.
- Checks run in a fixed order per operation, so the error a caller sees for
  a request that is wrong in several ways is deterministic.
- Claim records the CLAIMED status before moving any value.
- Payout shares truncate; the remainder stays in custody for good.
"""

import contextlib
import logging
from typing import Any, Iterable, Iterator, List, Optional

from . import metrics
from .allocator import IdAllocator
from .config import EscrowConfig, load_config
from .errors import (
    AuthorizationError,
    DeadlineError,
    EscrowError,
    NotFoundError,
    StateConflictError,
    TransferFailed,
    ValidationError,
)
from .host import LedgerHost
from .logging import bind, call_scope
from .model import events as ev
from .model.escrow import I128_MAX, MAX_NAME_BYTES, U64_MAX, EscrowRecord, EscrowStatus, Principal
from .model.keys import EscrowKey, UserCreatedKey, UserReceivedKey
from .payout import Payout, compute_shares, validate_recipients
from .store.state import LedgerState

log = logging.getLogger(__name__)


def _require_principal(name: str, value: Any) -> Principal:
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{name} must be a non-empty string", details={name: repr(value)})
    size = len(value.encode("utf-8"))
    if size > MAX_NAME_BYTES:
        raise ValidationError(
            f"{name} exceeds {MAX_NAME_BYTES} bytes",
            details={"field": name, "len": size, "max": MAX_NAME_BYTES},
        )
    return value


def _require_u64(name: str, value: Any) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= U64_MAX:
        raise ValidationError(f"{name} must be a u64", details={name: repr(value)})
    return value


class EscrowLedger:
    def __init__(self, host: LedgerHost, *, config: Optional[EscrowConfig] = None) -> None:
        self.host = host
        self.config = config if config is not None else load_config()
        self.state = LedgerState(host.store)
        self.ids = IdAllocator(self.state)

    # ---- call plumbing -----------------------------------------------------

    @contextlib.contextmanager
    def _call(self, op: str, escrow_id: Optional[int] = None) -> Iterator[None]:
        fields = {"op": op} if escrow_id is None else {"op": op, "escrow_id": escrow_id}
        with call_scope(**fields):
            try:
                with self.host.atomic():
                    yield
            except EscrowError as e:
                metrics.record_failure(op, e.code)
                log.warning("%s aborted: %s", op, e.message, extra={"code": e.code, "details": e.details})
                raise
            metrics.record_transition(op)

    def _load(self, escrow_id: int) -> EscrowRecord:
        rec = self.state.get(EscrowKey(escrow_id))
        if rec is None:
            raise NotFoundError(escrow_id=escrow_id)
        return rec

    def _move(self, asset: str, frm: str, to: str, amount: int) -> None:
        try:
            self.host.transfers.transfer(asset, frm, to, amount)
        except TransferFailed:
            raise
        except Exception as e:
            raise TransferFailed(str(e) or "transfer failed", asset=asset, frm=frm, to=to, amount=amount) from e

    # ---- mutations ---------------------------------------------------------

    def create(
        self,
        sender: Principal,
        recipients: Iterable[Any],
        amount: int,
        asset: str,
        deadline: int = 0,
    ) -> int:
        """
        Lock `amount` of `asset` from `sender` into custody for `recipients`
        (pairs of principal and whole percentage). `deadline` 0 means none.
        Returns the new escrow id.
        """
        with self._call("create"):
            sender = _require_principal("sender", sender)
            self.host.auth.require_auth(sender)
            if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
                raise ValidationError("amount must be positive", details={"amount": repr(amount)})
            if amount > I128_MAX:
                raise ValidationError("amount exceeds i128 range", details={"amount": str(amount)})
            asset = _require_principal("asset", asset)
            deadline = _require_u64("deadline", deadline)
            recips = validate_recipients(recipients, max_recipients=self.config.limits.max_recipients)

            now = self.host.now()
            self._move(asset, sender, self.host.custody, amount)

            escrow_id = self.ids.next()
            bind(escrow_id=escrow_id)
            record = EscrowRecord(
                id=escrow_id,
                sender=sender,
                recipients=recips,
                amount=amount,
                asset=asset,
                created_at=now,
                deadline=deadline,
            )
            self.state.set(EscrowKey(escrow_id), record)
            self.state.append(UserCreatedKey(sender), escrow_id)
            for r in recips:
                self.state.append(UserReceivedKey(r.principal), escrow_id)

            self.host.events.emit(ev.created(escrow_id, sender, amount, deadline, timestamp=now))
            log.info(
                "escrow created",
                extra={"amount": amount, "asset": asset, "recipients": len(recips), "deadline": deadline},
            )
        return escrow_id

    def approve(self, escrow_id: int) -> None:
        """Sender locks in the arrangement: PENDING -> APPROVED."""
        with self._call("approve", escrow_id):
            rec = self._load(escrow_id)
            self.host.auth.require_auth(rec.sender)
            if rec.status != EscrowStatus.PENDING:
                raise StateConflictError("escrow is not pending", escrow_id=escrow_id, status=rec.status.label)
            if rec.approved:
                raise StateConflictError("escrow already approved", escrow_id=escrow_id, status=rec.status.label)

            now = self.host.now()
            self.state.set(EscrowKey(escrow_id), rec.with_status(EscrowStatus.APPROVED, approved=True))
            self.host.events.emit(ev.approved(escrow_id, rec.sender, timestamp=now))
            log.info("escrow approved")

    def claim(self, escrow_id: int, caller: Principal) -> Payout:
        """
        Release every share of an approved escrow. Any listed recipient may
        trigger it; all recipients are paid in declaration order.
        """
        with self._call("claim", escrow_id):
            caller = _require_principal("caller", caller)
            self.host.auth.require_auth(caller)
            rec = self._load(escrow_id)
            if not rec.is_recipient(caller):
                raise AuthorizationError("caller is not a recipient of this escrow", principal=caller)
            if not rec.approved:
                raise StateConflictError("escrow not approved", escrow_id=escrow_id, status=rec.status.label)
            if rec.status != EscrowStatus.APPROVED:
                raise StateConflictError("escrow is not claimable", escrow_id=escrow_id, status=rec.status.label)
            now = self.host.now()
            if rec.has_deadline and now > rec.deadline:
                raise DeadlineError("claim deadline has passed", escrow_id=escrow_id, deadline=rec.deadline, now=now)

            self.state.set(EscrowKey(escrow_id), rec.with_status(EscrowStatus.CLAIMED))

            payout = compute_shares(rec.amount, rec.recipients)
            for principal, share in payout.shares:
                self._move(rec.asset, self.host.custody, principal, share)
                self.host.events.emit(ev.split_claimed(escrow_id, principal, share, timestamp=now))
            self.host.events.emit(ev.claimed(escrow_id, rec.principals(), timestamp=now))
            log.info(
                "escrow claimed",
                extra={"caller": caller, "paid": payout.total, "remainder": payout.remainder},
            )
        metrics.record_disbursed(rec.asset, payout.total, "claim")
        return payout

    def refund(self, escrow_id: int) -> None:
        """Return the full amount to the sender once the deadline has passed."""
        with self._call("refund", escrow_id):
            rec = self._load(escrow_id)
            self.host.auth.require_auth(rec.sender)
            if rec.status.is_terminal:
                raise StateConflictError("escrow already settled", escrow_id=escrow_id, status=rec.status.label)
            now = self.host.now()
            if rec.has_deadline and now <= rec.deadline:
                raise DeadlineError("refund deadline not reached", escrow_id=escrow_id, deadline=rec.deadline, now=now)

            self.state.set(EscrowKey(escrow_id), rec.with_status(EscrowStatus.REFUNDED))
            self._move(rec.asset, self.host.custody, rec.sender, rec.amount)
            self.host.events.emit(ev.refunded(escrow_id, rec.sender, timestamp=now))
            log.info("escrow refunded", extra={"amount": rec.amount, "asset": rec.asset})
        metrics.record_disbursed(rec.asset, rec.amount, "refund")

    # ---- reads -------------------------------------------------------------

    def get_escrow(self, escrow_id: int) -> EscrowRecord:
        with self.host.reading():
            return self._load(escrow_id)

    def get_created_ids(self, principal: Principal) -> List[int]:
        with self.host.reading():
            return self.state.get(UserCreatedKey(_require_principal("principal", principal)))

    def get_received_ids(self, principal: Principal) -> List[int]:
        with self.host.reading():
            return self.state.get(UserReceivedKey(_require_principal("principal", principal)))

    def last_id(self) -> int:
        with self.host.reading():
            return self.ids.peek()


__all__ = ["EscrowLedger"]
