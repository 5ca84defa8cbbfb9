from __future__ import annotations

import pytest

from escrow_ledger import metrics
from escrow_ledger.errors import ValidationError

from ._util import ASSET, split


def _value(name, **labels):
    v = metrics.REGISTRY.get_sample_value(name, labels or None)
    return 0.0 if v is None else v


def test_transitions_failures_and_disbursed(ledger):
    created = _value("escrow_ledger_transitions_total", op="create")
    claimed = _value("escrow_ledger_transitions_total", op="claim")
    failed = _value("escrow_ledger_failures_total", op="create", code="ESCROW_VALIDATION")
    paid = _value("escrow_ledger_disbursed_total", asset=ASSET, kind="claim")
    open_before = _value("escrow_ledger_open_escrows")

    escrow_id = ledger.create("alice", split(("bob", 50), ("carol", 50)), 101, ASSET)
    assert _value("escrow_ledger_open_escrows") == open_before + 1
    ledger.approve(escrow_id)
    ledger.claim(escrow_id, "bob")
    with pytest.raises(ValidationError):
        ledger.create("alice", split(("bob", 99)), 10, ASSET)

    assert _value("escrow_ledger_transitions_total", op="create") == created + 1
    assert _value("escrow_ledger_transitions_total", op="claim") == claimed + 1
    assert _value("escrow_ledger_failures_total", op="create", code="ESCROW_VALIDATION") == failed + 1
    assert _value("escrow_ledger_disbursed_total", asset=ASSET, kind="claim") == paid + 100
    assert _value("escrow_ledger_open_escrows") == open_before


def test_render_latest_exposes_families():
    body = metrics.render_latest().decode()
    assert "escrow_ledger_transitions_total" in body
    assert "escrow_ledger_open_escrows" in body
