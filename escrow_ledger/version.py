"""escrow_ledger.version: package version.

Resolution order: ESCROW_LEDGER_VERSION env override → installed package
metadata → BASE_VERSION.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import metadata as importlib_metadata

BASE_VERSION = "0.1.0"
DIST_NAME = "escrow-ledger"


@lru_cache(maxsize=1)
def compute_version() -> str:
    override = os.getenv("ESCROW_LEDGER_VERSION")
    if override:
        return override.strip()
    try:
        return importlib_metadata.version(DIST_NAME)
    except importlib_metadata.PackageNotFoundError:
        return BASE_VERSION


__version__ = compute_version()

__all__ = ["__version__", "BASE_VERSION", "compute_version"]
