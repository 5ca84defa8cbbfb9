from __future__ import annotations

import pytest

from escrow_ledger.auth import AllowAllAuth, SignerAuth
from escrow_ledger.config import EscrowConfig, load_config
from escrow_ledger.context import ManualClock
from escrow_ledger.events import EventSink
from escrow_ledger.host import LedgerHost
from escrow_ledger.ledger import EscrowLedger
from escrow_ledger.store import MemoryStore
from escrow_ledger.transfer import TokenLedger

from ._util import ASSET, CUSTODY, FUNDING, START


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    """Keep ESCROW_* from the developer's shell out of the tests."""
    for var in ("ESCROW_CONFIG_FILE", "ESCROW_CUSTODY_ACCOUNT", "ESCROW_STORE_BACKEND",
                "ESCROW_STORE_PATH", "ESCROW_STORE_MAX_KEY_BYTES", "ESCROW_STORE_MAX_VALUE_BYTES",
                "ESCROW_MAX_RECIPIENTS", "ESCROW_LOG_LEVEL", "ESCROW_LOG_FORMAT"):
        monkeypatch.delenv(var, raising=False)
    load_config.cache_clear()
    yield
    load_config.cache_clear()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def tokens(store: MemoryStore) -> TokenLedger:
    t = TokenLedger(store)
    for who in ("alice", "dave"):
        t.mint(ASSET, who, FUNDING)
    return t


@pytest.fixture
def auth() -> AllowAllAuth:
    return AllowAllAuth()


@pytest.fixture
def host(store, tokens, auth, clock) -> LedgerHost:
    return LedgerHost(
        store=store,
        transfers=tokens,
        auth=auth,
        events=EventSink(),
        clock=clock,
        custody=CUSTODY,
    )


@pytest.fixture
def ledger(host: LedgerHost) -> EscrowLedger:
    return EscrowLedger(host, config=EscrowConfig())


@pytest.fixture
def signer_host(store, tokens, clock) -> LedgerHost:
    return LedgerHost(store=store, transfers=tokens, auth=SignerAuth(), clock=clock)


@pytest.fixture
def signer_ledger(signer_host: LedgerHost) -> EscrowLedger:
    return EscrowLedger(signer_host, config=EscrowConfig())
