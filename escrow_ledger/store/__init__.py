from __future__ import annotations
"""
Durable record store backends and the typed ledger-state view.

- MemoryStore: in-process dict with an undo journal (tests, devnet)
- SQLiteStore: single-file durable store (CLI, local nodes)
- LedgerState: typed get/set keyed by escrow_ledger.model.keys
"""

from typing import Optional

from ..config import StoreConfig
from .base import RecordStore, SizeCaps, StoreError
from .memory import MemoryStore
from .sqlite import SQLiteStore
from .state import LedgerState


def open_store(cfg: Optional[StoreConfig] = None, *, path: Optional[str] = None) -> RecordStore:
    """
    Build the backend described by `cfg`. An explicit `path` forces SQLite.
    """
    cfg = cfg or StoreConfig()
    if path is not None or cfg.backend == "sqlite":
        return SQLiteStore(
            path or cfg.path,
            max_key_bytes=cfg.max_key_bytes,
            max_value_bytes=cfg.max_value_bytes,
        )
    return MemoryStore(max_key_bytes=cfg.max_key_bytes, max_value_bytes=cfg.max_value_bytes)


__all__ = [
    "RecordStore",
    "SizeCaps",
    "StoreError",
    "MemoryStore",
    "SQLiteStore",
    "LedgerState",
    "open_store",
]
