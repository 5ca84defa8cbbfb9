"""
escrow_ledger.logging
---------------------

Logging setup for the ledger and its CLI.

Every ledger operation runs inside a `call_scope`, which binds a fresh
`call_id` plus the operation name (and escrow id, once known) into a
context variable. Both formatters merge that context into each record, so
the lines of one create/approve/claim/refund can be grepped together.

Usage
-----
    from escrow_ledger import logging as elog

    elog.configure(json=True, level="INFO")
    with elog.call_scope(op="claim", escrow_id=7):
        logging.getLogger("escrow_ledger.x").info("paid")   # op/escrow_id/call_id attached

Only the ``escrow_ledger`` logger is touched; embedding applications keep
their root handlers.
"""

from __future__ import annotations

import datetime as _dt
import enum
import io
import json
import logging
import os
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

PACKAGE_LOGGER = "escrow_ledger"

# Printed first (in this order) by the text formatter.
CONTEXT_ORDER = ("call_id", "op", "escrow_id", "principal")

_ctx: ContextVar[Dict[str, Any]] = ContextVar("escrow_ledger_log_ctx", default={})

# Attributes every LogRecord carries; anything else came in through `extra=`.
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("x", logging.INFO, __file__, 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

_FLAG = "_escrow_ledger_handler"


# ---- context ---------------------------------------------------------------

def context() -> Dict[str, Any]:
    """Copy of the fields bound in the current context."""
    return dict(_ctx.get())


def bind(**fields: Any) -> None:
    merged = dict(_ctx.get())
    merged.update((k, _plain(v)) for k, v in fields.items())
    _ctx.set(merged)


def unbind(*keys: str) -> None:
    _ctx.set({k: v for k, v in _ctx.get().items() if k not in keys})


def clear_context() -> None:
    _ctx.set({})


def short_uuid() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def call_scope(**fields: Any) -> Iterator[str]:
    """Bind a new call_id and `fields` until the block exits; yields the id."""
    token = _ctx.set(dict(_ctx.get()))
    call_id = short_uuid()
    bind(call_id=call_id, **fields)
    try:
        yield call_id
    finally:
        _ctx.reset(token)


# ---- formatting ------------------------------------------------------------

def _plain(v: Any) -> Any:
    """Reduce a value to something json.dumps and f-strings render sensibly."""
    if isinstance(v, enum.Enum):
        return v.name
    if isinstance(v, (bytes, bytearray)):
        return bytes(v).hex()
    if isinstance(v, (tuple, list)):
        return [_plain(x) for x in v]
    if isinstance(v, dict):
        return {str(k): _plain(x) for k, x in v.items()}
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    return str(v)


def _timestamp(record: logging.LogRecord) -> str:
    when = _dt.datetime.fromtimestamp(record.created, tz=_dt.timezone.utc)
    return when.isoformat(timespec="milliseconds")


def _record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Bound context first, then `extra=` fields that do not clash with it."""
    fields = context()
    for k, v in record.__dict__.items():
        if k in _STANDARD_ATTRS or k.startswith("_") or k in fields:
            continue
        fields[k] = _plain(v)
    return fields


class JSONFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, msg, then context/extras."""

    def format(self, record: logging.LogRecord) -> str:
        doc: Dict[str, Any] = {
            "ts": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for k, v in _record_fields(record).items():
            doc.setdefault(k, v)
        if record.exc_info:
            doc["err"] = self.formatException(record.exc_info)
        return json.dumps(doc, default=str, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    """
    ``<ts> | <LEVEL> | <logger> | k=v ... | <message>``

    Context keys from CONTEXT_ORDER come first, other fields follow in the
    order they were supplied.
    """

    def format(self, record: logging.LogRecord) -> str:
        fields = _record_fields(record)
        ordered = [k for k in CONTEXT_ORDER if fields.get(k) is not None]
        ordered += [k for k in fields if k not in CONTEXT_ORDER]
        kv = " ".join(f"{k}={fields[k]}" for k in ordered)

        parts = [_timestamp(record), f"{record.levelname:<5}", record.name]
        if kv:
            parts.append(kv)
        parts.append(record.getMessage())
        line = " | ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# ---- setup -----------------------------------------------------------------

def _level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _want_json(flag: Optional[bool], stream: io.TextIOBase) -> bool:
    if flag is not None:
        return flag
    fmt = os.environ.get("ESCROW_LOG_FORMAT", "").strip().lower()
    if fmt in ("json", "text"):
        return fmt == "json"
    isatty = getattr(stream, "isatty", None)
    return not (callable(isatty) and isatty())


def configure(
    *,
    json: Optional[bool] = None,
    level: str | int = "INFO",
    stream: Optional[io.TextIOBase] = None,
    logger_name: str = PACKAGE_LOGGER,
) -> logging.Logger:
    """
    Attach a single stream handler to `logger_name`, replacing one installed
    by an earlier call. With `json=None` the format comes from
    ESCROW_LOG_FORMAT, falling back to text on a terminal and JSON otherwise.
    """
    out = stream if stream is not None else sys.stderr
    lg = logging.getLogger(logger_name)
    reset(logger_name)

    handler = logging.StreamHandler(out)
    handler.setFormatter(JSONFormatter() if _want_json(json, out) else TextFormatter())
    setattr(handler, _FLAG, True)
    lg.addHandler(handler)
    lg.setLevel(_level(level))
    return lg


def reset(logger_name: str = PACKAGE_LOGGER) -> None:
    """Detach the handler installed by configure()."""
    lg = logging.getLogger(logger_name)
    for h in [h for h in lg.handlers if getattr(h, _FLAG, False)]:
        lg.removeHandler(h)


__all__ = [
    "PACKAGE_LOGGER",
    "context",
    "bind",
    "unbind",
    "clear_context",
    "call_scope",
    "short_uuid",
    "JSONFormatter",
    "TextFormatter",
    "configure",
    "reset",
]
