from __future__ import annotations

import pytest

from escrow_ledger.config import StoreConfig
from escrow_ledger.model.escrow import EscrowRecord, EscrowStatus, Recipient
from escrow_ledger.model.keys import (
    EscrowKey,
    IndexEntryKey,
    NextIdKey,
    UserCreatedKey,
    UserReceivedKey,
    decode_key,
)
from escrow_ledger.store import LedgerState, MemoryStore, SQLiteStore, StoreError, open_store


@pytest.fixture(params=["memory", "sqlite"])
def backend(request, tmp_path):
    if request.param == "memory":
        yield MemoryStore(max_key_bytes=64, max_value_bytes=1024)
    else:
        s = SQLiteStore(str(tmp_path / "state.db"), max_key_bytes=64, max_value_bytes=1024)
        yield s
        s.close()


def _record(escrow_id: int = 1) -> EscrowRecord:
    return EscrowRecord(
        id=escrow_id,
        sender="alice",
        recipients=(Recipient("bob", 60), Recipient("carol", 40)),
        amount=10**20,
        asset="USD",
        created_at=1_000,
        deadline=2_000,
    )


def test_get_set_exists(backend):
    assert backend.get(b"k") is None
    assert not backend.exists(b"k")
    backend.set(b"k", b"v")
    assert backend.get(b"k") == b"v"
    assert backend.exists(b"k")
    backend.set(b"k", b"w")
    assert backend.get(b"k") == b"w"


def test_keys_are_sorted_and_prefix_filtered(backend):
    for k in (b"b/2", b"a/1", b"b/1", b"c"):
        backend.set(k, b"x")
    assert list(backend.keys(b"b/")) == [b"b/1", b"b/2"]
    assert list(backend.keys()) == [b"a/1", b"b/1", b"b/2", b"c"]


def test_rollback_restores_prior_values(backend):
    backend.set(b"keep", b"1")
    backend.begin()
    backend.set(b"keep", b"2")
    backend.set(b"new", b"3")
    backend.rollback()
    assert backend.get(b"keep") == b"1"
    assert backend.get(b"new") is None


def test_nested_rollback_only_discards_inner(backend):
    backend.begin()
    backend.set(b"outer", b"1")
    backend.begin()
    backend.set(b"inner", b"2")
    backend.set(b"outer", b"changed")
    backend.rollback()
    backend.commit()
    assert backend.get(b"outer") == b"1"
    assert backend.get(b"inner") is None


def test_inner_commit_folds_into_outer_rollback(backend):
    backend.set(b"k", b"0")
    backend.begin()
    backend.begin()
    backend.set(b"k", b"1")
    backend.commit()
    backend.rollback()
    assert backend.get(b"k") == b"0"


def test_unbalanced_transactions_raise(backend):
    with pytest.raises(StoreError):
        backend.commit()
    with pytest.raises(StoreError):
        backend.rollback()


def test_size_caps(backend):
    with pytest.raises(StoreError):
        backend.set(b"x" * 65, b"v")
    with pytest.raises(StoreError):
        backend.set(b"k", b"v" * 1025)
    with pytest.raises(StoreError):
        backend.get(b"")


def test_sqlite_persists_across_reopen(tmp_path):
    path = str(tmp_path / "persist.db")
    with SQLiteStore(path) as s:
        s.begin()
        s.set(b"k", b"v")
        s.commit()
    with SQLiteStore(path) as s:
        assert s.get(b"k") == b"v"


def test_open_store_selects_backend(tmp_path):
    assert isinstance(open_store(StoreConfig()), MemoryStore)
    s = open_store(StoreConfig(backend="sqlite", path=str(tmp_path / "a.db")))
    assert isinstance(s, SQLiteStore)
    s.close()
    s = open_store(StoreConfig(), path=str(tmp_path / "b.db"))
    assert isinstance(s, SQLiteStore)
    s.close()


# ---- typed state ----------------------------------------------------------

def test_ledger_state_defaults(backend):
    state = LedgerState(backend)
    assert state.get(EscrowKey(1)) is None
    assert state.get(NextIdKey()) == 0
    assert state.get(UserCreatedKey("alice")) == []
    assert state.get(UserReceivedKey("bob")) == []


def test_ledger_state_roundtrips_records_and_indexes(backend):
    state = LedgerState(backend)
    rec = _record(7).with_status(EscrowStatus.APPROVED, approved=True)
    state.set(EscrowKey(7), rec)
    state.set(NextIdKey(), 7)
    state.set(UserReceivedKey("bob"), [3, 7, 7])
    assert state.get(EscrowKey(7)) == rec
    assert state.get(NextIdKey()) == 7
    assert state.get(UserReceivedKey("bob")) == [3, 7, 7]
    assert list(state.iter_records()) == [rec]


def test_ledger_state_rejects_mismatched_record(backend):
    with pytest.raises(StoreError):
        LedgerState(backend).set(EscrowKey(2), _record(1))


def test_keys_encode_and_decode():
    for key in (
        EscrowKey(42),
        NextIdKey(),
        UserCreatedKey("alice"),
        UserReceivedKey("b:o/b"),
        IndexEntryKey(UserCreatedKey("alice"), 3),
        IndexEntryKey(UserReceivedKey("b:o/b"), 0),
    ):
        assert decode_key(key.encode()) == key
    assert EscrowKey(1).encode() < EscrowKey(256).encode()
    with pytest.raises(ValueError):
        decode_key(b"bal/whatever")


def test_index_append_writes_one_entry_per_id(backend):
    state = LedgerState(backend)
    key = UserCreatedKey("alice")
    # Far more ids than one 1 KiB value could hold as a single list.
    backend.begin()
    for escrow_id in range(1, 601):
        assert state.append(key, escrow_id) == escrow_id - 1
    backend.commit()
    assert state.length(key) == 600
    assert state.get(key) == list(range(1, 601))
    assert state.get(IndexEntryKey(key, 599)) == 600
    assert state.get(IndexEntryKey(key, 600)) is None
    assert state.get(UserReceivedKey("alice")) == []


def test_index_append_rolls_back_with_the_store(backend):
    state = LedgerState(backend)
    key = UserReceivedKey("bob")
    state.append(key, 1)
    backend.begin()
    state.append(key, 2)
    backend.rollback()
    assert state.get(key) == [1]
    assert state.append(key, 3) == 1
    assert state.get(key) == [1, 3]
