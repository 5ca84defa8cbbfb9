from __future__ import annotations

"""
Prometheus metrics for the escrow ledger.

We expose:
- transitions: successful ledger calls by operation (create/approve/claim/refund)
- failures: aborted calls by operation and error code
- disbursed: value paid out of custody by asset and kind (claim/refund)
- open escrows: records not yet claimed or refunded

This module can be mounted into any FastAPI app via `mount_fastapi`.
"""

from typing import Optional

from prometheus_client import (CONTENT_TYPE_LATEST, CollectorRegistry, Counter,
                               Gauge, generate_latest)

# Use a dedicated registry so embedding apps can choose to merge or expose it directly.
REGISTRY = CollectorRegistry()

# ────────────────────────────────────────────────────────────────────────────────
# Label conventions
#   op:   "create" | "approve" | "claim" | "refund"
#   code: EscrowError.code (ESCROW_VALIDATION, ESCROW_DEADLINE, ...)
#   kind: "claim" | "refund"
# ────────────────────────────────────────────────────────────────────────────────

TRANSITIONS = Counter(
    "escrow_ledger_transitions_total",
    "Successful escrow ledger calls by operation.",
    labelnames=("op",),
    registry=REGISTRY,
)

FAILURES = Counter(
    "escrow_ledger_failures_total",
    "Aborted escrow ledger calls by operation and error code.",
    labelnames=("op", "code"),
    registry=REGISTRY,
)

DISBURSED = Counter(
    "escrow_ledger_disbursed_total",
    "Value released from custody (smallest unit) by asset and kind.",
    labelnames=("asset", "kind"),
    registry=REGISTRY,
)

OPEN_ESCROWS = Gauge(
    "escrow_ledger_open_escrows",
    "Escrow records currently pending or approved.",
    registry=REGISTRY,
)


def record_transition(op: str) -> None:
    """Count a committed call; keeps the open-escrow gauge in step."""
    TRANSITIONS.labels(op=op).inc()
    if op == "create":
        OPEN_ESCROWS.inc()
    elif op in ("claim", "refund"):
        OPEN_ESCROWS.dec()


def record_failure(op: str, code: str) -> None:
    FAILURES.labels(op=op, code=code).inc()


def record_disbursed(asset: str, amount: int, kind: str) -> None:
    if amount > 0:
        DISBURSED.labels(asset=asset, kind=kind).inc(amount)


def render_latest(registry: Optional[CollectorRegistry] = None) -> bytes:
    return generate_latest(registry or REGISTRY)


def mount_fastapi(
    app, path: str = "/metrics", registry: Optional[CollectorRegistry] = None
) -> None:
    """
    Mount a GET {path} endpoint on a FastAPI app to serve metrics.

    Usage:
        from fastapi import FastAPI
        from escrow_ledger.metrics import mount_fastapi
        app = FastAPI()
        mount_fastapi(app)
    """
    from fastapi import Response

    reg = registry or REGISTRY

    @app.get(path)
    def _metrics():
        return Response(generate_latest(reg), media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "TRANSITIONS",
    "FAILURES",
    "DISBURSED",
    "OPEN_ESCROWS",
    "record_transition",
    "record_failure",
    "record_disbursed",
    "render_latest",
    "mount_fastapi",
]
