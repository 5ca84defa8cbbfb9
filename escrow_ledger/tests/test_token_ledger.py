from __future__ import annotations

import pytest

from escrow_ledger.errors import TransferFailed
from escrow_ledger.model.escrow import I128_MAX, MAX_NAME_BYTES
from escrow_ledger.store import MemoryStore
from escrow_ledger.transfer import TokenLedger, ValueTransferService


@pytest.fixture
def book() -> TokenLedger:
    return TokenLedger(MemoryStore())


def test_implements_transfer_service(book):
    assert isinstance(book, ValueTransferService)


def test_mint_and_transfer(book):
    assert book.mint("USD", "alice", 100) == 100
    book.transfer("USD", "alice", "bob", 30)
    assert book.balance("USD", "alice") == 70
    assert book.balance("USD", "bob") == 30
    assert book.balance("EUR", "alice") == 0


def test_insufficient_balance_changes_nothing(book):
    book.mint("USD", "alice", 10)
    with pytest.raises(TransferFailed) as ei:
        book.transfer("USD", "alice", "bob", 11)
    assert ei.value.details["balance"] == 10
    assert ei.value.details["from"] == "alice"
    assert book.balance("USD", "alice") == 10
    assert book.balance("USD", "bob") == 0


def test_zero_transfer_is_noop(book):
    book.transfer("USD", "nobody", "bob", 0)
    assert book.balance("USD", "bob") == 0


@pytest.mark.parametrize("amount", [-1, "5", 1.5, True])
def test_bad_amounts_rejected(book, amount):
    book.mint("USD", "alice", 10)
    with pytest.raises(TransferFailed):
        book.transfer("USD", "alice", "bob", amount)


def test_overflow_rejected(book):
    book.mint("USD", "alice", I128_MAX)
    book.mint("USD", "bob", 1)
    with pytest.raises(TransferFailed):
        book.transfer("USD", "bob", "alice", 1)
    with pytest.raises(TransferFailed):
        book.mint("USD", "alice", 1)


def test_assets_are_isolated(book):
    book.mint("USD", "alice", 5)
    book.mint("USDC", "alice", 7)
    assert book.holders("USD") == [("alice", 5)]
    assert book.holders("USDC") == [("alice", 7)]
    assert sorted(book.iter_assets()) == ["USD", "USDC"]


def test_transactions_delegate_to_store(book):
    book.mint("USD", "alice", 10)
    book.begin()
    book.transfer("USD", "alice", "bob", 4)
    book.rollback()
    assert book.balance("USD", "alice") == 10
    assert book.balance("USD", "bob") == 0


def test_oversized_names_rejected(book):
    long_name = "x" * (MAX_NAME_BYTES + 1)
    with pytest.raises(TransferFailed):
        book.mint("USD", long_name, 1)
    with pytest.raises(TransferFailed):
        book.balance(long_name, "alice")
    book.mint("USD", "alice", 5)
    with pytest.raises(TransferFailed):
        book.transfer("USD", "alice", long_name, 1)
    assert book.balance("USD", "alice") == 5
