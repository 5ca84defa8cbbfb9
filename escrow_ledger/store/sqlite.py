from __future__ import annotations

"""
SQLite record store
===================

Durable backend for the escrow ledger: one key/value table plus a meta table
carrying the schema version.

Design notes
------------
- Single-writer, many-reader friendly via WAL.
- Autocommit connection; transactions are managed explicitly. The outermost
  begin() issues BEGIN IMMEDIATE, nested begins use SAVEPOINTs so an inner
  rollback only discards the inner writes.
- Writes outside a transaction commit immediately (all-or-nothing per call).

Example
-------
    store = SQLiteStore("escrow_ledger.db")
    store.begin()
    try:
        store.set(b"k", b"v")
        store.commit()
    except Exception:
        store.rollback()
        raise
"""

import sqlite3
import threading
from typing import Iterator, Optional

from .base import DEFAULT_MAX_KEY_BYTES, DEFAULT_MAX_VALUE_BYTES, SizeCaps, StoreError


class SQLiteStore:
    """
    Thread-safe via an internal RLock. For high concurrency, open separate
    stores per process; the ledger itself serializes calls anyway.
    """

    SCHEMA_VERSION = 1

    def __init__(
        self,
        path: str,
        *,
        max_key_bytes: int = DEFAULT_MAX_KEY_BYTES,
        max_value_bytes: int = DEFAULT_MAX_VALUE_BYTES,
    ) -> None:
        """
        Open or create the SQLite database.

        `path` may be a filesystem path, ":memory:", or a URI (e.g. "file:escrow.db?mode=rwc").
        """
        uri = path.startswith("file:")
        self.path = path
        self._db = sqlite3.connect(
            path,
            uri=uri,
            check_same_thread=False,
            isolation_level=None,  # autocommit; we manage transactions
        )
        self._lock = threading.RLock()
        self._depth = 0
        self._caps = SizeCaps(max_key_bytes, max_value_bytes)
        self._apply_pragmas()
        self._migrate()

    # -- lifecycle -------------------------------------------------------------

    def close(self) -> None:
        with self._lock:
            self._db.close()

    def __enter__(self) -> "SQLiteStore":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _apply_pragmas(self) -> None:
        cur = self._db.cursor()
        cur.execute("PRAGMA journal_mode=WAL")
        cur.execute("PRAGMA synchronous=NORMAL")
        cur.execute("PRAGMA temp_store=MEMORY")
        cur.close()

    def _migrate(self) -> None:
        with self._lock:
            self._db.executescript(
                """
                CREATE TABLE IF NOT EXISTS meta (
                    key   TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS kv (
                    k BLOB PRIMARY KEY,
                    v BLOB NOT NULL
                ) WITHOUT ROWID;
                """
            )
            row = self._db.execute("SELECT value FROM meta WHERE key='schema_version'").fetchone()
            if not row:
                self._db.execute(
                    "INSERT INTO meta(key, value) VALUES('schema_version', ?)",
                    (str(self.SCHEMA_VERSION),),
                )
            elif int(row[0]) > self.SCHEMA_VERSION:
                raise StoreError(
                    "store schema is newer than this build",
                    details={"found": int(row[0]), "supported": self.SCHEMA_VERSION},
                )

    # -- reads -----------------------------------------------------------------

    def get(self, key: bytes) -> Optional[bytes]:
        k = self._caps.check_key(key)
        with self._lock:
            row = self._db.execute("SELECT v FROM kv WHERE k = ?", (k,)).fetchone()
        return bytes(row[0]) if row else None

    def exists(self, key: bytes) -> bool:
        k = self._caps.check_key(key)
        with self._lock:
            row = self._db.execute("SELECT 1 FROM kv WHERE k = ?", (k,)).fetchone()
        return row is not None

    def keys(self, prefix: bytes = b"") -> Iterator[bytes]:
        with self._lock:
            if prefix:
                rows = self._db.execute(
                    "SELECT k FROM kv WHERE substr(k, 1, ?) = ? ORDER BY k",
                    (len(prefix), bytes(prefix)),
                ).fetchall()
            else:
                rows = self._db.execute("SELECT k FROM kv ORDER BY k").fetchall()
        return iter([bytes(r[0]) for r in rows])

    # -- writes ----------------------------------------------------------------

    def set(self, key: bytes, value: bytes) -> None:
        k = self._caps.check_key(key)
        v = self._caps.check_value(value)
        with self._lock:
            self._db.execute(
                "INSERT INTO kv(k, v) VALUES(?, ?) ON CONFLICT(k) DO UPDATE SET v = excluded.v",
                (k, v),
            )

    # -- transactions ----------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def begin(self) -> None:
        with self._lock:
            if self._depth == 0:
                self._db.execute("BEGIN IMMEDIATE")
            else:
                self._db.execute(f"SAVEPOINT sp_{self._depth}")
            self._depth += 1

    def commit(self) -> None:
        with self._lock:
            if self._depth == 0:
                raise StoreError("commit without begin")
            self._depth -= 1
            if self._depth == 0:
                self._db.execute("COMMIT")
            else:
                self._db.execute(f"RELEASE SAVEPOINT sp_{self._depth}")

    def rollback(self) -> None:
        with self._lock:
            if self._depth == 0:
                raise StoreError("rollback without begin")
            self._depth -= 1
            if self._depth == 0:
                self._db.execute("ROLLBACK")
            else:
                self._db.execute(f"ROLLBACK TO SAVEPOINT sp_{self._depth}")
                self._db.execute(f"RELEASE SAVEPOINT sp_{self._depth}")


__all__ = ["SQLiteStore"]
