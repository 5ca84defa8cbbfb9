from __future__ import annotations
"""Command-line interface for a local, SQLite-backed escrow ledger."""

from .app import app, get_app


def main() -> None:
    app()


__all__ = ["app", "get_app", "main"]
