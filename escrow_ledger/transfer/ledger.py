"""
escrow_ledger.transfer.ledger: deterministic multi-asset balance book.

This is the in-process value transfer service used by tests, the CLI and
local devnets. Balances live in any RecordStore under the ``bal/`` prefix, so
pointing the TokenLedger at the same SQLite file as the escrow state gives a
single durable state file.

- balance(asset, account) -> int
- transfer(asset, frm, to, amount)      # debit frm, credit to
- mint(asset, to, amount)               # host/testing helper
- holders(asset) -> [(account, balance)]

Notes
-----
* Deterministic: pure integer arithmetic with explicit caps, no wall-clock.
* Balances are non-negative and capped at the signed 128-bit maximum.
* Embedders with a real asset layer implement ValueTransferService instead.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Tuple

import cbor2

from ..errors import TransferFailed
from ..model.escrow import I128_MAX, MAX_NAME_BYTES
from ..store import codec
from ..store.base import RecordStore
from ..store.memory import MemoryStore

log = logging.getLogger(__name__)

BALANCE_PREFIX = b"bal/"


def _balance_key(asset: str, account: str) -> bytes:
    # CBOR array of two text strings; `asset` alone forms a usable key prefix.
    return BALANCE_PREFIX + cbor2.dumps([asset, account], canonical=True)


def _asset_prefix(asset: str) -> bytes:
    return BALANCE_PREFIX + b"\x82" + cbor2.dumps(asset, canonical=True)


def _check_name(kind: str, value: str) -> None:
    if not isinstance(value, str) or not value:
        raise TransferFailed(f"{kind} must be a non-empty string", details={kind: repr(value)})
    if len(value.encode("utf-8")) > MAX_NAME_BYTES:
        raise TransferFailed(f"{kind} name too long", details={"len": len(value.encode("utf-8")), "max": MAX_NAME_BYTES})


def _check_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise TransferFailed("amount must be int", details={"amount": repr(amount)})
    if amount < 0:
        raise TransferFailed("amount must be non-negative", amount=amount)
    if amount > I128_MAX:
        raise TransferFailed("amount exceeds i128 range", amount=amount)


class TokenLedger:
    def __init__(self, store: Optional[RecordStore] = None) -> None:
        self.store: RecordStore = store if store is not None else MemoryStore()

    # ---- reads ----

    def balance(self, asset: str, account: str) -> int:
        _check_name("asset", asset)
        _check_name("account", account)
        raw = self.store.get(_balance_key(asset, account))
        return 0 if raw is None else int(codec.loads(raw))

    def holders(self, asset: str) -> List[Tuple[str, int]]:
        """All accounts with a recorded balance for `asset`, sorted by key."""
        out: List[Tuple[str, int]] = []
        for k in self.store.keys(_asset_prefix(asset)):
            _, account = cbor2.loads(k[len(BALANCE_PREFIX):])
            raw = self.store.get(k)
            out.append((account, 0 if raw is None else int(codec.loads(raw))))
        return out

    def iter_assets(self) -> Iterator[str]:
        seen = set()
        for k in self.store.keys(BALANCE_PREFIX):
            asset, _ = cbor2.loads(k[len(BALANCE_PREFIX):])
            if asset not in seen:
                seen.add(asset)
                yield asset

    # ---- writes ----

    def _put(self, asset: str, account: str, value: int) -> None:
        self.store.set(_balance_key(asset, account), codec.dumps(int(value)))

    def mint(self, asset: str, to: str, amount: int) -> int:
        """Host/testing helper: credit `to` out of thin air. Returns the new balance."""
        _check_name("asset", asset)
        _check_name("account", to)
        _check_amount(amount)
        new = self.balance(asset, to) + amount
        if new > I128_MAX:
            raise TransferFailed("balance overflow", asset=asset, to=to, amount=amount)
        self._put(asset, to, new)
        log.debug("minted", extra={"asset": asset, "to": to, "amount": amount})
        return new

    def transfer(self, asset: str, frm: str, to: str, amount: int) -> None:
        """
        Debit `frm` and credit `to` by `amount`. Zero is a no-op.

        Raises TransferFailed (and changes nothing) on insufficient balance
        or overflow.
        """
        _check_name("asset", asset)
        _check_name("account", frm)
        _check_name("account", to)
        _check_amount(amount)
        if amount == 0:
            return

        cur_from = self.balance(asset, frm)
        if amount > cur_from:
            raise TransferFailed(
                "insufficient balance",
                asset=asset,
                frm=frm,
                to=to,
                amount=amount,
                details={"balance": cur_from},
            )
        if frm == to:
            return
        cur_to = self.balance(asset, to)
        if cur_to + amount > I128_MAX:
            raise TransferFailed("balance overflow", asset=asset, frm=frm, to=to, amount=amount)

        self._put(asset, frm, cur_from - amount)
        self._put(asset, to, cur_to + amount)
        log.debug("transfer", extra={"asset": asset, "from": frm, "to": to, "amount": amount})

    # ---- transactions (delegated to the backing store) ----

    def begin(self) -> None:
        self.store.begin()

    def commit(self) -> None:
        self.store.commit()

    def rollback(self) -> None:
        self.store.rollback()


__all__ = ["TokenLedger", "BALANCE_PREFIX"]
