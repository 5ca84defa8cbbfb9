from __future__ import annotations

"""
Canonical CBOR value codec for the record store.

Values written by the ledger are plain maps/lists/ints/strings/bools. They are
encoded with cbor2 in canonical mode (RFC 8949 deterministic encoding: sorted
map keys, shortest-form integers) so the same logical state always produces
the same bytes, which keeps store snapshots diffable and hashable.

Public API:
- dumps(obj) -> bytes
- loads(b: bytes) -> object
"""

from typing import Any

import cbor2

from .base import StoreError


def dumps(obj: Any) -> bytes:
    try:
        return cbor2.dumps(obj, canonical=True)
    except (cbor2.CBOREncodeError, TypeError, ValueError) as e:
        raise StoreError(f"cannot encode value: {e}") from e


def loads(data: bytes) -> Any:
    try:
        return cbor2.loads(data)
    except (cbor2.CBORDecodeError, ValueError) as e:
        raise StoreError(f"cannot decode value: {e}") from e


__all__ = ["dumps", "loads"]
