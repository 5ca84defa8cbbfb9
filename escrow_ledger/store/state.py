from __future__ import annotations

"""
Typed view of ledger state over a RecordStore.

`LedgerState.get/set` take a DataKey (see escrow_ledger.model.keys) and
encode/decode the value kind that key maps to:

    EscrowKey        <-> EscrowRecord         (None when absent)
    NextIdKey        <-> int                  (0 when absent)
    UserCreatedKey   <-> List[int]            ([] when absent)
    UserReceivedKey  <-> List[int]            ([] when absent)
    IndexEntryKey    <-> int                  (None when absent)

Index lists are stored as a length under the index key plus one entry per
element, so `append` costs two small writes however long the index is.
"""

from typing import Any, Iterator, List, Optional, overload

from ..model.escrow import EscrowRecord
from ..model.keys import (
    KEY_PREFIX,
    DataKey,
    EscrowKey,
    IndexEntryKey,
    IndexKey,
    NextIdKey,
    UserCreatedKey,
    UserReceivedKey,
    decode_key,
)
from . import codec
from .base import RecordStore, StoreError


class LedgerState:
    def __init__(self, store: RecordStore) -> None:
        self.store = store

    @overload
    def get(self, key: EscrowKey) -> Optional[EscrowRecord]: ...
    @overload
    def get(self, key: NextIdKey) -> int: ...
    @overload
    def get(self, key: UserCreatedKey) -> List[int]: ...
    @overload
    def get(self, key: UserReceivedKey) -> List[int]: ...
    @overload
    def get(self, key: IndexEntryKey) -> Optional[int]: ...

    def get(self, key: DataKey) -> Any:
        if isinstance(key, (UserCreatedKey, UserReceivedKey)):
            return [self._entry(key, i) for i in range(self.length(key))]
        raw = self.store.get(key.encode())
        if isinstance(key, EscrowKey):
            return None if raw is None else EscrowRecord.from_dict(codec.loads(raw))
        if isinstance(key, NextIdKey):
            return 0 if raw is None else int(codec.loads(raw))
        if isinstance(key, IndexEntryKey):
            return None if raw is None else int(codec.loads(raw))
        raise StoreError(f"unsupported key type {type(key).__name__}")

    def set(self, key: DataKey, value: Any) -> None:
        if isinstance(key, EscrowKey):
            if not isinstance(value, EscrowRecord) or value.id != key.id:
                raise StoreError("EscrowKey value must be the EscrowRecord with the same id")
            payload: Any = value.to_dict()
        elif isinstance(key, (NextIdKey, IndexEntryKey)):
            payload = int(value)
        elif isinstance(key, (UserCreatedKey, UserReceivedKey)):
            ids = [int(x) for x in value]
            for i, escrow_id in enumerate(ids):
                self.set(IndexEntryKey(key, i), escrow_id)
            payload = len(ids)
        else:
            raise StoreError(f"unsupported key type {type(key).__name__}")
        self.store.set(key.encode(), codec.dumps(payload))

    # ---- append-only indexes ----

    def length(self, key: IndexKey) -> int:
        raw = self.store.get(key.encode())
        return 0 if raw is None else int(codec.loads(raw))

    def append(self, key: IndexKey, escrow_id: int) -> int:
        """Add `escrow_id` at the end of the index; returns its position."""
        pos = self.length(key)
        self.set(IndexEntryKey(key, pos), escrow_id)
        self.store.set(key.encode(), codec.dumps(pos + 1))
        return pos

    def _entry(self, key: IndexKey, pos: int) -> int:
        value = self.get(IndexEntryKey(key, pos))
        if value is None:
            raise StoreError("index entry missing", details={"key": key.encode().hex(), "position": pos})
        return value

    # ---- iteration ----

    def has(self, key: DataKey) -> bool:
        return self.store.exists(key.encode())

    def iter_keys(self) -> Iterator[DataKey]:
        for raw in self.store.keys(KEY_PREFIX):
            yield decode_key(raw)

    def iter_records(self) -> Iterator[EscrowRecord]:
        for key in self.iter_keys():
            if isinstance(key, EscrowKey):
                rec = self.get(key)
                if rec is not None:
                    yield rec


__all__ = ["LedgerState"]
