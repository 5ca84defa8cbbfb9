from __future__ import annotations

from typing import List

from escrow_ledger.model.escrow import Recipient

ASSET = "USD"
START = 1_000
FUNDING = 1_000_000
CUSTODY = "escrow:custody"


def split(*pairs) -> List[Recipient]:
    return [Recipient(p, pct) for p, pct in pairs]
