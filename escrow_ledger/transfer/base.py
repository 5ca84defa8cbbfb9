from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ValueTransferService(Protocol):
    """
    Moves a fixed amount of a named asset between two accounts.

    A transfer either happens completely or raises
    escrow_ledger.errors.TransferFailed and changes nothing.
    """

    def transfer(self, asset: str, frm: str, to: str, amount: int) -> None: ...
    def balance(self, asset: str, account: str) -> int: ...


__all__ = ["ValueTransferService"]
