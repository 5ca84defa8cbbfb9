from __future__ import annotations

"""
escrow_ledger.events: ordered event log for external observers.

Events emitted during a ledger call are buffered and only published when the
call commits; a failed call leaves no events behind. Every event gets a
monotonically increasing `seq` at emission; subscribers (indexers, websocket
fan-out) are notified in order after the owning call commits.

Two retention modes:
- in-memory (default): the log lives in this object;
- store-backed: pass a RecordStore and events are written under ``evt/``
  inside the caller's store transaction, so they survive restarts and are
  rolled back together with the rest of a failed call.

Subscriber failures are logged and do not affect the already-committed call.
"""

import logging
import threading
from typing import Callable, Iterator, List, Optional

from .model.events import EventType, LedgerEvent
from .store import codec
from .store.base import RecordStore

log = logging.getLogger(__name__)

Subscriber = Callable[[LedgerEvent], None]

EVENT_PREFIX = b"evt/e/"
_EVENT_SEQ_KEY = b"evt/next"


class EventSink:
    def __init__(self, store: Optional[RecordStore] = None) -> None:
        self._store = store
        self._events: List[LedgerEvent] = []
        self._buffers: List[List[LedgerEvent]] = []
        self._subscribers: List[Subscriber] = []
        self._lock = threading.RLock()

    @property
    def persistent(self) -> bool:
        return self._store is not None

    # --- sequencing & retention ----------------------------------------------

    def _alloc_seq(self) -> int:
        if self._store is None:
            return len(self._events) + sum(len(b) for b in self._buffers)
        raw = self._store.get(_EVENT_SEQ_KEY)
        seq = 0 if raw is None else int(codec.loads(raw))
        self._store.set(_EVENT_SEQ_KEY, codec.dumps(seq + 1))
        return seq

    def _retain(self, ev: LedgerEvent) -> None:
        if self._store is None:
            self._events.append(ev)
        else:
            assert ev.seq is not None
            self._store.set(EVENT_PREFIX + ev.seq.to_bytes(8, "big"), codec.dumps(ev.to_record()))

    def _iter_all(self) -> Iterator[LedgerEvent]:
        if self._store is None:
            yield from list(self._events)
            return
        for k in self._store.keys(EVENT_PREFIX):
            raw = self._store.get(k)
            if raw is not None:
                yield LedgerEvent.from_dict(codec.loads(raw))

    # --- publishing ---------------------------------------------------------

    def emit(self, event: LedgerEvent) -> LedgerEvent:
        with self._lock:
            ev = event.with_seq(self._alloc_seq())
            if self._store is not None:
                # Written inside the caller's store transaction (if any).
                self._retain(ev)
            if self._buffers:
                self._buffers[-1].append(ev)
                return ev
            if self._store is None:
                self._retain(ev)
        self._notify([ev])
        return ev

    def _notify(self, events: List[LedgerEvent]) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for ev in events:
            for fn in subscribers:
                try:
                    fn(ev)
                except Exception:
                    log.exception(
                        "event subscriber failed",
                        extra={"event_type": ev.etype.value, "event_seq": ev.seq},
                    )

    # --- transactions -------------------------------------------------------

    def begin(self) -> None:
        with self._lock:
            self._buffers.append([])

    def commit(self) -> None:
        with self._lock:
            if not self._buffers:
                raise RuntimeError("commit without begin")
            pending = self._buffers.pop()
            if self._buffers:
                self._buffers[-1].extend(pending)
                return
            if self._store is None:
                for ev in pending:
                    self._retain(ev)
        self._notify(pending)

    def rollback(self) -> None:
        # Store-backed events are discarded by the store's own rollback.
        with self._lock:
            if not self._buffers:
                raise RuntimeError("rollback without begin")
            self._buffers.pop()

    # --- subscriptions ------------------------------------------------------

    def subscribe(self, fn: Subscriber) -> Callable[[], None]:
        """Register `fn`; returns an unsubscribe callable."""
        with self._lock:
            self._subscribers.append(fn)

        def _unsubscribe() -> None:
            with self._lock:
                if fn in self._subscribers:
                    self._subscribers.remove(fn)

        return _unsubscribe

    # --- queries ------------------------------------------------------------

    def events(self, *, since: int = 0, etype: Optional[EventType] = None) -> List[LedgerEvent]:
        """Committed events with seq >= `since`, optionally of one type."""
        with self._lock:
            out = [e for e in self._iter_all() if (e.seq or 0) >= since]
        if etype is not None:
            out = [e for e in out if e.etype == etype]
        return out

    def events_for(self, escrow_id: int) -> List[LedgerEvent]:
        """Audit trail of one escrow record, in emission order."""
        with self._lock:
            return [e for e in self._iter_all() if e.escrow_id == escrow_id]

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for _ in self._iter_all())


__all__ = ["EventSink", "Subscriber", "EVENT_PREFIX"]
