from __future__ import annotations

from typing import List, Optional

import pytest

from escrow_ledger.errors import StateConflictError, TransferFailed
from escrow_ledger.events import EventSink
from escrow_ledger.host import LedgerHost
from escrow_ledger.ledger import EscrowLedger
from escrow_ledger.config import EscrowConfig
from escrow_ledger.model.escrow import EscrowStatus
from escrow_ledger.model.events import EventType
from escrow_ledger.model.keys import EscrowKey
from escrow_ledger.store import StoreError
from escrow_ledger.transfer import TokenLedger

from ._util import ASSET, CUSTODY, split


class FlakyTransfers:
    """TokenLedger wrapper that fails the Nth payout out of custody."""

    def __init__(self, inner: TokenLedger, *, fail_on: Optional[int] = None, error: Exception = None):
        self.inner = inner
        self.fail_on = fail_on
        self.error = error
        self.payouts = 0

    def balance(self, asset, account):
        return self.inner.balance(asset, account)

    def transfer(self, asset, frm, to, amount):
        if frm == CUSTODY:
            self.payouts += 1
            if self.fail_on is not None and self.payouts == self.fail_on:
                raise self.error or TransferFailed("recipient account frozen", asset=asset, frm=frm, to=to, amount=amount)
        self.inner.transfer(asset, frm, to, amount)

    def begin(self):
        self.inner.begin()

    def commit(self):
        self.inner.commit()

    def rollback(self):
        self.inner.rollback()


@pytest.fixture
def flaky(tokens) -> FlakyTransfers:
    return FlakyTransfers(tokens)


@pytest.fixture
def flaky_ledger(store, flaky, clock):
    host = LedgerHost(store=store, transfers=flaky, auth=_Anyone(), events=EventSink(), clock=clock, custody=CUSTODY)
    return EscrowLedger(host, config=EscrowConfig())


class _Anyone:
    def require_auth(self, principal: str) -> None:
        pass


def _three_way(ledger) -> int:
    escrow_id = ledger.create("alice", split(("bob", 20), ("carol", 30), ("dan", 50)), 1_000, ASSET)
    ledger.approve(escrow_id)
    return escrow_id


@pytest.mark.parametrize(
    "error",
    [None, RuntimeError("ledger offline"), StoreError("store value too large")],
)
def test_partial_claim_failure_rolls_back_everything(flaky_ledger, flaky, error):
    escrow_id = _three_way(flaky_ledger)
    events_before = len(flaky_ledger.host.events)
    flaky.fail_on, flaky.error = 3, error

    with pytest.raises(TransferFailed) as ei:
        flaky_ledger.claim(escrow_id, "bob")
    assert ei.value.details["to"] == "dan"

    host = flaky_ledger.host
    for who in ("bob", "carol", "dan"):
        assert host.transfers.balance(ASSET, who) == 0
    assert host.custody_balance(ASSET) == 1_000
    rec = flaky_ledger.get_escrow(escrow_id)
    assert rec.status is EscrowStatus.APPROVED
    assert len(host.events) == events_before

    # The claim can be retried once the transfer service recovers.
    flaky.fail_on = None
    flaky_ledger.claim(escrow_id, "bob")
    assert [host.transfers.balance(ASSET, w) for w in ("bob", "carol", "dan")] == [200, 300, 500]


def test_status_is_written_before_any_transfer(store, tokens, clock):
    seen: List[EscrowStatus] = []
    reentry: List[Exception] = []

    class Spy(FlakyTransfers):
        def transfer(self, asset, frm, to, amount):
            if frm == CUSTODY:
                seen.append(ledger.state.get(EscrowKey(1)).status)
                try:
                    ledger.claim(1, "bob")
                except StateConflictError as e:
                    reentry.append(e)
            super().transfer(asset, frm, to, amount)

    host = LedgerHost(store=store, transfers=Spy(tokens), auth=_Anyone(), clock=clock, custody=CUSTODY)
    ledger = EscrowLedger(host, config=EscrowConfig())
    _three_way(ledger)
    ledger.claim(1, "carol")

    assert seen == [EscrowStatus.CLAIMED] * 3
    assert len(reentry) == 3
    assert host.transfers.balance(ASSET, "bob") == 200
    assert host.custody_balance(ASSET) == 0


def test_failed_create_leaves_no_events_or_index(flaky_ledger):
    with pytest.raises(TransferFailed):
        flaky_ledger.create("nobody", split(("bob", 100)), 5, ASSET)
    host = flaky_ledger.host
    assert len(host.events) == 0
    assert flaky_ledger.get_received_ids("bob") == []
    assert flaky_ledger.last_id() == 0


def test_subscribers_hear_only_committed_calls(flaky_ledger, flaky):
    heard: List[EventType] = []
    flaky_ledger.host.events.subscribe(lambda e: heard.append(e.etype))
    escrow_id = _three_way(flaky_ledger)
    flaky.fail_on = 2
    with pytest.raises(TransferFailed):
        flaky_ledger.claim(escrow_id, "dan")
    assert heard == [EventType.CREATED, EventType.APPROVED]
