from __future__ import annotations
"""
escrow_ledger: custodial escrow with approval gating, deadlines and
percentage splits.

A sender locks value for one or more recipients with fixed whole-percent
shares, approves it, and any recipient can then release every share before
the deadline; otherwise the sender takes it back once the deadline passes.
Submodules are lazily imported to keep import time minimal.

Public surface (lazily loaded):
- ledger, host, errors, config, logging, metrics
- model, store, transfer, auth, events, context
- rpc, cli
"""


import importlib
from typing import List

from .version import __version__

__all__: List[str] = [
    "__version__",
    "EscrowLedger",
    "LedgerHost",
    # lazily importable subpackages/modules
    "ledger",
    "host",
    "errors",
    "config",
    "logging",
    "metrics",
    "model",
    "store",
    "transfer",
    "auth",
    "events",
    "context",
    "payout",
    "rpc",
    "cli",
]

_lazy_modules = set(__all__) - {"__version__", "EscrowLedger", "LedgerHost"}
_lazy_attrs = {"EscrowLedger": "ledger", "LedgerHost": "host"}


def __getattr__(name: str):
    if name in _lazy_modules:
        return importlib.import_module(f".{name}", __name__)
    if name in _lazy_attrs:
        return getattr(importlib.import_module(f".{_lazy_attrs[name]}", __name__), name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(set(globals().keys()) | _lazy_modules | set(_lazy_attrs))
