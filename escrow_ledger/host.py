from __future__ import annotations

"""
escrow_ledger.host: the environment a ledger call runs in.

A LedgerHost bundles the external collaborators of the escrow ledger:

    store      RecordStore            escrow records, counter, indexes
    transfers  ValueTransferService   moves value in/out of custody
    auth       AuthorizationOracle    proves a principal consented
    events     EventSink              notifications for indexers
    clock      Clock                  "now" for deadline gating
    custody    str                    account that holds escrowed value

Design notes
------------
- `atomic()` is the unit of work. It holds the host lock (calls are fully
  serialized), opens a transaction on every participant that exposes
  begin/commit/rollback and rolls all of them back if the body raises. The
  counter bump, record writes, transfers and events of one call therefore
  land together or not at all.
- Participants are begun in order [events, store, transfers] and committed
  in reverse, so nested transactions over a shared store unwind correctly
  and subscribers only hear about events once the state is durable.
- A transfer service without transaction hooks cannot be rolled back; such
  embeddings must make their transfers all-or-nothing themselves.

Usage
-----
    host = LedgerHost.in_memory()
    host.transfers.mint("USD", "alice", 1_000)
    ledger = EscrowLedger(host)
"""

import contextlib
import logging
import threading
from typing import Any, Iterator, List, Optional

from .auth import AllowAllAuth, AuthorizationOracle, SignerAuth
from .config import EscrowConfig, load_config
from .context import Clock, ManualClock, SystemClock
from .events import EventSink
from .model.escrow import MAX_NAME_BYTES
from .store import MemoryStore, RecordStore, SQLiteStore, open_store
from .transfer import TokenLedger, ValueTransferService

log = logging.getLogger(__name__)


def _is_transactional(obj: Any) -> bool:
    return all(callable(getattr(obj, m, None)) for m in ("begin", "commit", "rollback"))


class LedgerHost:
    def __init__(
        self,
        *,
        store: RecordStore,
        transfers: ValueTransferService,
        auth: AuthorizationOracle,
        events: Optional[EventSink] = None,
        clock: Optional[Clock] = None,
        custody: str = "escrow:custody",
    ) -> None:
        if not custody:
            raise ValueError("custody account must be non-empty")
        if len(custody.encode("utf-8")) > MAX_NAME_BYTES:
            raise ValueError(f"custody account exceeds {MAX_NAME_BYTES} bytes")
        self.store = store
        self.transfers = transfers
        self.auth = auth
        self.events = events if events is not None else EventSink()
        self.clock: Clock = clock if clock is not None else SystemClock()
        self.custody = custody
        self._lock = threading.RLock()

    # ---- constructors ------------------------------------------------------

    @classmethod
    def in_memory(
        cls,
        *,
        auth: Optional[AuthorizationOracle] = None,
        clock: Optional[Clock] = None,
        custody: str = "escrow:custody",
    ) -> "LedgerHost":
        """Everything in process: MemoryStore, TokenLedger, AllowAllAuth, ManualClock."""
        store = MemoryStore()
        return cls(
            store=store,
            transfers=TokenLedger(store),
            auth=auth if auth is not None else AllowAllAuth(),
            events=EventSink(),
            clock=clock if clock is not None else ManualClock(),
            custody=custody,
        )

    @classmethod
    def from_config(
        cls,
        cfg: Optional[EscrowConfig] = None,
        *,
        path: Optional[str] = None,
        auth: Optional[AuthorizationOracle] = None,
        clock: Optional[Clock] = None,
    ) -> "LedgerHost":
        """
        Build a host from configuration. Balances and events share the record
        store, so a SQLite backend yields one durable file for everything.
        """
        cfg = cfg or load_config()
        store = open_store(cfg.store, path=path)
        persistent = isinstance(store, SQLiteStore)
        host = cls(
            store=store,
            transfers=TokenLedger(store),
            auth=auth if auth is not None else SignerAuth(),
            events=EventSink(store) if persistent else EventSink(),
            clock=clock,
            custody=cfg.custody_account,
        )
        log.debug(
            "ledger host opened",
            extra={"backend": "sqlite" if persistent else "memory", "custody": cfg.custody_account},
        )
        return host

    # ---- unit of work ------------------------------------------------------

    def _participants(self) -> List[Any]:
        out: List[Any] = [self.events, self.store]
        if _is_transactional(self.transfers):
            out.append(self.transfers)
        return out

    @contextlib.contextmanager
    def atomic(self) -> Iterator["LedgerHost"]:
        with self._lock:
            opened: List[Any] = []
            try:
                for p in self._participants():
                    p.begin()
                    opened.append(p)
                yield self
            except BaseException:
                for p in reversed(opened):
                    p.rollback()
                raise
            while opened:
                p = opened.pop()
                try:
                    p.commit()
                except BaseException:
                    for rest in reversed(opened):
                        rest.rollback()
                    raise

    @contextlib.contextmanager
    def reading(self) -> Iterator["LedgerHost"]:
        """Serialize a read against in-flight calls."""
        with self._lock:
            yield self

    # ---- convenience reads -------------------------------------------------

    def now(self) -> int:
        return self.clock.now()

    def custody_balance(self, asset: str) -> int:
        """Value of `asset` currently held in custody."""
        with self._lock:
            return self.transfers.balance(asset, self.custody)

    def close(self) -> None:
        closer = getattr(self.store, "close", None)
        if callable(closer):
            closer()


__all__ = ["LedgerHost"]
