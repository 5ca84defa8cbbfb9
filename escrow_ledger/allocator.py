from __future__ import annotations
"""Monotonic escrow id allocation backed by the NextId counter."""

from .errors import StateConflictError
from .model.escrow import U64_MAX
from .model.keys import NextIdKey
from .store.state import LedgerState


class IdAllocator:
    """
    Read-increment-write over ``NextIdKey``. The first id handed out is 1.

    Must run inside the caller's transaction: if the call aborts, the
    increment is rolled back with everything else, so ids are only consumed
    by records that actually exist.
    """

    def __init__(self, state: LedgerState) -> None:
        self.state = state

    def peek(self) -> int:
        """Last id allocated (0 if none)."""
        return self.state.get(NextIdKey())

    def next(self) -> int:
        cur = self.peek()
        if cur >= U64_MAX:
            raise StateConflictError("escrow id space exhausted", details={"last_id": cur})
        nid = cur + 1
        self.state.set(NextIdKey(), nid)
        return nid


__all__ = ["IdAllocator"]
