from __future__ import annotations

"""
escrow_ledger.rpc
-----------------

Read-only RPC surface for the escrow ledger: JSON-RPC style callables
(`methods.make_methods`) and a FastAPI router exposing the same reads
(`methods.build_rest_router`, mounted by `mount.mount_escrow`).
"""

from typing import Dict, Final

# Base path under which escrow endpoints are mounted into a host API.
RPC_PREFIX: Final[str] = "/escrow"

ESCROW_OPENAPI_TAG: Final[Dict[str, str]] = {
    "name": "escrow",
    "description": "Escrow records, principal indexes, audit events and custody balances (read-only).",
}

__all__ = [
    "RPC_PREFIX",
    "ESCROW_OPENAPI_TAG",
]
