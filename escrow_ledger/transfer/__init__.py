from __future__ import annotations
"""Value transfer service interface and the in-process token ledger."""

from .base import ValueTransferService
from .ledger import BALANCE_PREFIX, TokenLedger

__all__ = ["ValueTransferService", "TokenLedger", "BALANCE_PREFIX"]
