from __future__ import annotations

"""
escrow_ledger.rpc.methods
-------------------------

JSON-RPC style method implementations for the escrow ledger.

Exposed methods (bind via `make_methods`):
  • escrow.getEscrow
  • escrow.getCreatedIds
  • escrow.getReceivedIds
  • escrow.getEvents
  • escrow.getCustodyBalance

Design:
  - Transport-agnostic: `make_methods` returns a dict of callables that a
    JSON-RPC dispatcher can register; `build_rest_router` exposes the same
    callables as FastAPI GET endpoints.
  - Reads only. create/approve/claim/refund need the caller's consent, which
    is proven by the embedding host, not by this surface.
  - Amounts are rendered as decimal strings (i128 exceeds JSON numbers).

Usage:
    from escrow_ledger.rpc.methods import make_methods
    methods = make_methods(ledger)
    dispatcher.register_many(methods)
"""

from typing import Any, Callable, Dict, Optional

from ..errors import EscrowError, NotFoundError, ValidationError
from ..ledger import EscrowLedger
from ..model.escrow import U64_MAX
from ..model.events import EventType


# ---- Helpers ---------------------------------------------------------------

def _coerce_uint(value: Any, name: str) -> int:
    try:
        iv = int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"invalid {name}: must be a non-negative integer") from e
    if isinstance(value, bool) or iv < 0 or iv > U64_MAX:
        raise ValidationError(f"invalid {name}: must be a non-negative integer")
    return iv


def _coerce_event_type(value: Optional[str]) -> Optional[EventType]:
    if value is None:
        return None
    try:
        return EventType(value)
    except ValueError as e:
        allowed = ", ".join(m.value for m in EventType)
        raise ValidationError(f"invalid event type '{value}', allowed: {allowed}") from e


def _require(value: Optional[str], name: str) -> str:
    if not value:
        raise ValidationError(f"{name} is required")
    return value


# ---- JSON-RPC method factory ----------------------------------------------

def make_methods(ledger: EscrowLedger) -> Dict[str, Callable[..., Any]]:
    """
    Build a mapping of JSON-RPC method name -> callable.
    Each callable returns plain JSON-serializable structures.
    """
    host = ledger.host

    def escrow_get_escrow(*, id: Any) -> Dict[str, Any]:
        return ledger.get_escrow(_coerce_uint(id, "id")).to_json()

    def escrow_get_created_ids(*, principal: str) -> Dict[str, Any]:
        p = _require(principal, "principal")
        return {"principal": p, "ids": ledger.get_created_ids(p)}

    def escrow_get_received_ids(*, principal: str) -> Dict[str, Any]:
        p = _require(principal, "principal")
        return {"principal": p, "ids": ledger.get_received_ids(p)}

    def escrow_get_events(
        *,
        id: Optional[Any] = None,
        since: Optional[int] = 0,
        type: Optional[str] = None,
    ) -> Dict[str, Any]:
        start = _coerce_uint(since or 0, "since")
        etype = _coerce_event_type(type)
        if id is None:
            items = host.events.events(since=start, etype=etype)
        else:
            escrow_id = _coerce_uint(id, "id")
            # Raises NotFoundError for unknown ids rather than returning [].
            ledger.get_escrow(escrow_id)
            items = [
                e for e in host.events.events_for(escrow_id)
                if (e.seq or 0) >= start and (etype is None or e.etype == etype)
            ]
        next_seq = (items[-1].seq + 1) if items and items[-1].seq is not None else start
        return {"items": [e.to_dict() for e in items], "nextSeq": next_seq}

    def escrow_get_custody_balance(*, asset: str) -> Dict[str, Any]:
        a = _require(asset, "asset")
        return {"asset": a, "account": host.custody, "balance": str(host.custody_balance(a))}

    # Map JSON-RPC names → callables
    return {
        "escrow.getEscrow": escrow_get_escrow,
        "escrow.getCreatedIds": escrow_get_created_ids,
        "escrow.getReceivedIds": escrow_get_received_ids,
        "escrow.getEvents": escrow_get_events,
        "escrow.getCustodyBalance": escrow_get_custody_balance,
    }


# ---- REST adapter (FastAPI) ------------------------------------------------

def _http_error(e: EscrowError):
    from fastapi import HTTPException

    status = 404 if isinstance(e, NotFoundError) else 400
    return HTTPException(status_code=status, detail=e.to_dict())


def build_rest_router(ledger: EscrowLedger):
    """
    Return a FastAPI APIRouter exposing the read endpoints.
    Mount path suggestion: f"{RPC_PREFIX}" (import from escrow_ledger.rpc).
    """
    try:
        from fastapi import APIRouter, Query
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("FastAPI is required to build the REST router") from exc

    router = APIRouter()
    methods = make_methods(ledger)

    @router.get("/escrows/{escrow_id}")
    def http_get_escrow(escrow_id: int):
        try:
            return methods["escrow.getEscrow"](id=escrow_id)
        except EscrowError as e:
            raise _http_error(e) from e

    @router.get("/escrows/{escrow_id}/events")
    def http_get_escrow_events(
        escrow_id: int,
        since: int = Query(0, ge=0),
        type: Optional[str] = None,
    ):
        try:
            return methods["escrow.getEvents"](id=escrow_id, since=since, type=type)
        except EscrowError as e:
            raise _http_error(e) from e

    @router.get("/events")
    def http_get_events(since: int = Query(0, ge=0), type: Optional[str] = None):
        try:
            return methods["escrow.getEvents"](since=since, type=type)
        except EscrowError as e:
            raise _http_error(e) from e

    @router.get("/principals/{principal}/created")
    def http_get_created(principal: str):
        try:
            return methods["escrow.getCreatedIds"](principal=principal)
        except EscrowError as e:
            raise _http_error(e) from e

    @router.get("/principals/{principal}/received")
    def http_get_received(principal: str):
        try:
            return methods["escrow.getReceivedIds"](principal=principal)
        except EscrowError as e:
            raise _http_error(e) from e

    @router.get("/custody/{asset}")
    def http_get_custody(asset: str):
        try:
            return methods["escrow.getCustodyBalance"](asset=asset)
        except EscrowError as e:
            raise _http_error(e) from e

    return router


__all__ = ["make_methods", "build_rest_router"]
