from __future__ import annotations

import pytest

from escrow_ledger.errors import ValidationError
from escrow_ledger.model.escrow import I128_MAX, Recipient
from escrow_ledger.payout import compute_shares, validate_recipients

from ._util import split


def test_even_split_has_no_remainder():
    p = compute_shares(100, split(("a", 50), ("b", 50)))
    assert p.shares == (("a", 50), ("b", 50))
    assert p.remainder == 0
    assert p.total == 100


def test_truncation_remainder_is_kept():
    p = compute_shares(101, split(("a", 33), ("b", 33), ("c", 34)))
    assert p.shares == (("a", 33), ("b", 33), ("c", 34))
    assert p.remainder == 1


def test_zero_percent_recipient_gets_nothing():
    p = compute_shares(77, split(("a", 0), ("b", 100)))
    assert p.shares == (("a", 0), ("b", 77))
    assert p.remainder == 0


def test_declaration_order_is_preserved():
    p = compute_shares(10, split(("z", 10), ("a", 90)))
    assert [who for who, _ in p.shares] == ["z", "a"]


@pytest.mark.parametrize("amount", [1, 7, 99, 101, 12_345, 10**30, I128_MAX])
@pytest.mark.parametrize(
    "pcts",
    [(100,), (50, 50), (33, 33, 34), (1, 1, 98), (10,) * 10, (3, 97), (0, 0, 100)],
)
def test_payout_never_exceeds_amount(amount, pcts):
    recips = [Recipient(f"r{i}", p) for i, p in enumerate(pcts)]
    p = compute_shares(amount, recips)
    assert p.total <= amount
    assert amount - p.total == p.remainder
    assert p.remainder < len(recips)
    for (_, share), r in zip(p.shares, recips):
        assert share == amount * r.percentage // 100


# ---- validation -----------------------------------------------------------

def test_accepts_pairs_and_mappings():
    out = validate_recipients([("a", 40), {"principal": "b", "percentage": 60}])
    assert out == (Recipient("a", 40), Recipient("b", 60))


def test_duplicate_recipients_are_allowed():
    out = validate_recipients([("a", 50), ("a", 50)])
    assert len(out) == 2


@pytest.mark.parametrize("pcts", [(99,), (101,), (50, 49), (50, 51), (0,)])
def test_sum_must_be_exactly_100(pcts):
    with pytest.raises(ValidationError) as ei:
        validate_recipients([(f"r{i}", p) for i, p in enumerate(pcts)])
    assert "sum to 100" in ei.value.message


def test_empty_recipients_rejected():
    with pytest.raises(ValidationError):
        validate_recipients([])


@pytest.mark.parametrize("bad", [-1, 101, True, "50", 2**32])
def test_percentage_out_of_range_rejected(bad):
    with pytest.raises(ValidationError) as ei:
        validate_recipients([("a", bad), ("b", 50)])
    assert ei.value.details["index"] == 0


def test_malformed_entry_rejected():
    with pytest.raises(ValidationError):
        validate_recipients(["abc"])
    with pytest.raises(ValidationError):
        validate_recipients([("", 100)])


def test_max_recipients_enforced():
    recips = [(f"r{i}", 25) for i in range(4)]
    assert len(validate_recipients(recips, max_recipients=4)) == 4
    with pytest.raises(ValidationError) as ei:
        validate_recipients(recips, max_recipients=3)
    assert ei.value.details == {"count": 4, "max": 3}
