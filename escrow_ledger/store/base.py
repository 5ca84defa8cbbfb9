"""
escrow_ledger.store.base: the durable record store interface.

The ledger persists everything through a byte-oriented key/value store that
is all-or-nothing per call. Backends implement:

- get(key: bytes) -> Optional[bytes]
- set(key: bytes, value: bytes) -> None
- exists(key: bytes) -> bool
- keys(prefix: bytes = b"") -> Iterator[bytes]      # sorted
- begin() / commit() / rollback()                   # nestable transactions

Transactions nest: an inner begin/commit pair folds into the outer
transaction, an inner rollback undoes only the inner writes. This lets two
collaborators that share one store (the record state and the token ledger
in the CLI) each open their own transaction inside a single ledger call.
"""

from __future__ import annotations

from typing import Iterator, Optional, Protocol, runtime_checkable

from ..errors import EscrowError


class StoreError(EscrowError):
    """Backend misuse: oversize key/value, unbalanced transactions."""
    code = "ESCROW_STORE_ERROR"


DEFAULT_MAX_KEY_BYTES = 256
DEFAULT_MAX_VALUE_BYTES = 128 * 1024


@runtime_checkable
class RecordStore(Protocol):
    """Minimal backend interface for ledger state."""

    def get(self, key: bytes) -> Optional[bytes]: ...
    def set(self, key: bytes, value: bytes) -> None: ...
    def exists(self, key: bytes) -> bool: ...
    def keys(self, prefix: bytes = b"") -> Iterator[bytes]: ...
    def begin(self) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...


class SizeCaps:
    """Byte-length caps shared by the concrete backends."""

    def __init__(
        self,
        max_key_bytes: int = DEFAULT_MAX_KEY_BYTES,
        max_value_bytes: int = DEFAULT_MAX_VALUE_BYTES,
    ) -> None:
        self.max_key_bytes = int(max_key_bytes)
        self.max_value_bytes = int(max_value_bytes)

    def check_key(self, key: bytes) -> bytes:
        if not isinstance(key, (bytes, bytearray)):
            raise StoreError("store key must be bytes")
        if len(key) == 0:
            raise StoreError("store key must be non-empty")
        if len(key) > self.max_key_bytes:
            raise StoreError(
                "store key too long",
                details={"len": len(key), "max": self.max_key_bytes},
            )
        return bytes(key)

    def check_value(self, value: bytes) -> bytes:
        if not isinstance(value, (bytes, bytearray)):
            raise StoreError("store value must be bytes")
        if len(value) > self.max_value_bytes:
            raise StoreError(
                "store value too large",
                details={"len": len(value), "max": self.max_value_bytes},
            )
        return bytes(value)


__all__ = [
    "StoreError",
    "RecordStore",
    "SizeCaps",
    "DEFAULT_MAX_KEY_BYTES",
    "DEFAULT_MAX_VALUE_BYTES",
]
