"""
escrow_ledger.context: ledger time source.

The ledger reads "now" exactly once per call from a Clock. Deadline gating
compares that value against record deadlines, so tests and devnets use a
ManualClock to pin time deterministically; production embeddings pass the
host's consensus timestamp or fall back to SystemClock.

All values are unsigned 64-bit seconds.
"""

from __future__ import annotations

import time
from typing import Any, Protocol, runtime_checkable

from .model.escrow import U64_MAX


class ClockError(ValueError):
    """Invalid timestamp supplied to a clock."""


def _require_u64(name: str, v: Any) -> int:
    if not isinstance(v, int) or isinstance(v, bool):
        raise ClockError(f"{name} must be int, got {type(v).__name__}")
    if v < 0:
        raise ClockError(f"{name} must be non-negative, got {v}")
    if v > U64_MAX:
        raise ClockError(f"{name} exceeds u64 range, got {v}")
    return v


@runtime_checkable
class Clock(Protocol):
    def now(self) -> int: ...


class SystemClock:
    """Wall-clock unix seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    Settable clock.

        clock = ManualClock(1_000)
        clock.advance(60)   # -> 1_060
        clock.set(5_000)
    """

    def __init__(self, timestamp: int = 0) -> None:
        self._ts = _require_u64("timestamp", timestamp)

    def now(self) -> int:
        return self._ts

    def set(self, timestamp: int) -> int:
        self._ts = _require_u64("timestamp", timestamp)
        return self._ts

    def advance(self, seconds: int) -> int:
        _require_u64("seconds", seconds)
        return self.set(self._ts + seconds)

    def __repr__(self) -> str:
        return f"ManualClock({self._ts})"


__all__ = ["Clock", "ClockError", "SystemClock", "ManualClock"]
