from __future__ import annotations

import threading
from typing import Dict, Iterator, List, Optional

from .base import DEFAULT_MAX_KEY_BYTES, DEFAULT_MAX_VALUE_BYTES, SizeCaps, StoreError

# Journal entry: key -> previous value (None = key was absent).
_Undo = Dict[bytes, Optional[bytes]]


class MemoryStore:
    """
    Thread-safe in-memory backend for tests and local runs.

    Each open transaction keeps an undo journal recording the first prior
    value of every key it touches; rollback replays it.
    """

    def __init__(
        self,
        *,
        max_key_bytes: int = DEFAULT_MAX_KEY_BYTES,
        max_value_bytes: int = DEFAULT_MAX_VALUE_BYTES,
    ) -> None:
        self._store: Dict[bytes, bytes] = {}
        self._journals: List[_Undo] = []
        self._lock = threading.RLock()
        self._caps = SizeCaps(max_key_bytes, max_value_bytes)

    # ---- reads ----

    def get(self, key: bytes) -> Optional[bytes]:
        k = self._caps.check_key(key)
        with self._lock:
            return self._store.get(k)

    def exists(self, key: bytes) -> bool:
        k = self._caps.check_key(key)
        with self._lock:
            return k in self._store

    def keys(self, prefix: bytes = b"") -> Iterator[bytes]:
        with self._lock:
            snapshot = sorted(k for k in self._store if k.startswith(prefix))
        return iter(snapshot)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    # ---- writes ----

    def set(self, key: bytes, value: bytes) -> None:
        k = self._caps.check_key(key)
        v = self._caps.check_value(value)
        with self._lock:
            if self._journals:
                self._journals[-1].setdefault(k, self._store.get(k))
            self._store[k] = v

    # ---- transactions ----

    @property
    def in_transaction(self) -> bool:
        return bool(self._journals)

    def begin(self) -> None:
        with self._lock:
            self._journals.append({})

    def commit(self) -> None:
        with self._lock:
            if not self._journals:
                raise StoreError("commit without begin")
            undo = self._journals.pop()
            if self._journals:
                # Fold into the enclosing transaction, keeping its older prior values.
                outer = self._journals[-1]
                for k, prior in undo.items():
                    outer.setdefault(k, prior)

    def rollback(self) -> None:
        with self._lock:
            if not self._journals:
                raise StoreError("rollback without begin")
            undo = self._journals.pop()
            for k, prior in undo.items():
                if prior is None:
                    self._store.pop(k, None)
                else:
                    self._store[k] = prior


__all__ = ["MemoryStore"]
