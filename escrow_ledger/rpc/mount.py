from __future__ import annotations

"""
escrow_ledger.rpc.mount
-----------------------

Helpers to mount the escrow RPC surface into an existing FastAPI app and/or
to register the JSON-RPC methods with your dispatcher.

Typical usage (REST):
    from fastapi import FastAPI
    from escrow_ledger.rpc.mount import mount_escrow
    app = FastAPI()
    mount_escrow(app, ledger, prefix="/escrow", metrics=True)

Typical usage (JSON-RPC):
    from escrow_ledger.rpc.mount import register_jsonrpc
    register_jsonrpc(dispatcher, ledger)
"""

from typing import Any, Protocol

from ..ledger import EscrowLedger
from . import ESCROW_OPENAPI_TAG, RPC_PREFIX
from .methods import build_rest_router, make_methods


class _JsonRpcDispatcherLike(Protocol):
    """Minimal protocol to support common JSON-RPC dispatchers."""
    def add(self, method: str, func: Any) -> None: ...
    def register(self, method: str, func: Any) -> None: ...


def mount_escrow(
    app: Any,
    ledger: EscrowLedger,
    *,
    prefix: str = RPC_PREFIX,
    metrics: bool = False,
) -> None:
    """
    Mount the escrow REST endpoints under `prefix` on a FastAPI app. With
    `metrics=True` the Prometheus registry is also served at `{prefix}/metrics`.
    """
    router = build_rest_router(ledger)
    app.include_router(router, prefix=prefix, tags=[ESCROW_OPENAPI_TAG["name"]])
    if metrics:
        from ..metrics import mount_fastapi

        mount_fastapi(app, path=f"{prefix.rstrip('/')}/metrics")


def register_jsonrpc(dispatcher: _JsonRpcDispatcherLike, ledger: EscrowLedger) -> None:
    """
    Register JSON-RPC methods on a dispatcher, via `.add(name, fn)` when the
    dispatcher has it and `.register(name, fn)` otherwise.
    """
    for name, fn in make_methods(ledger).items():
        add = getattr(dispatcher, "add", None)
        if callable(add):
            add(name, fn)
        else:
            dispatcher.register(name, fn)


__all__ = ["mount_escrow", "register_jsonrpc"]
