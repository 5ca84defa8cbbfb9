from __future__ import annotations

import pytest

fastapi = pytest.importorskip("fastapi")
from fastapi import FastAPI
from fastapi.testclient import TestClient

from escrow_ledger.errors import NotFoundError, ValidationError
from escrow_ledger.rpc.methods import make_methods
from escrow_ledger.rpc.mount import mount_escrow, register_jsonrpc

from ._util import ASSET, split


@pytest.fixture
def seeded(ledger):
    a = ledger.create("alice", split(("bob", 50), ("carol", 50)), 101, ASSET, 5_000)
    ledger.approve(a)
    ledger.claim(a, "carol")
    ledger.create("alice", split(("bob", 100)), 7, ASSET)
    return ledger


@pytest.fixture
def client(seeded):
    app = FastAPI()
    mount_escrow(app, seeded, prefix="/escrow", metrics=True)
    return TestClient(app)


# ---- JSON-RPC callables ----------------------------------------------------

def test_methods_cover_the_read_surface(seeded):
    m = make_methods(seeded)
    assert sorted(m) == [
        "escrow.getCreatedIds",
        "escrow.getCustodyBalance",
        "escrow.getEscrow",
        "escrow.getEvents",
        "escrow.getReceivedIds",
    ]
    rec = m["escrow.getEscrow"](id=1)
    assert rec["status"] == "claimed"
    assert rec["amount"] == "101"
    assert rec["recipients"] == [
        {"principal": "bob", "percentage": 50},
        {"principal": "carol", "percentage": 50},
    ]
    assert m["escrow.getReceivedIds"](principal="bob") == {"principal": "bob", "ids": [1, 2]}
    assert m["escrow.getCreatedIds"](principal="zoe") == {"principal": "zoe", "ids": []}
    # 7 locked in escrow 2, plus the 1 left over from splitting 101 in half.
    assert m["escrow.getCustodyBalance"](asset=ASSET)["balance"] == "8"


def test_events_method_filters(seeded):
    m = make_methods(seeded)
    out = m["escrow.getEvents"](id=1, type="splclaim")
    assert [e["data"] for e in out["items"]] == [["bob", "50"], ["carol", "50"]]
    everything = m["escrow.getEvents"]()
    assert everything["nextSeq"] == len(everything["items"])
    later = m["escrow.getEvents"](since=everything["nextSeq"] - 1)
    assert [e["type"] for e in later["items"]] == ["created"]


def test_method_errors(seeded):
    m = make_methods(seeded)
    with pytest.raises(NotFoundError):
        m["escrow.getEscrow"](id=99)
    with pytest.raises(ValidationError):
        m["escrow.getEscrow"](id="x")
    with pytest.raises(ValidationError):
        m["escrow.getEvents"](type="minted")
    with pytest.raises(ValidationError):
        m["escrow.getCreatedIds"](principal="")


def test_register_jsonrpc_prefers_add(seeded):
    class Dispatcher:
        def __init__(self):
            self.names = []

        def add(self, name, fn):
            self.names.append(name)

    d = Dispatcher()
    register_jsonrpc(d, seeded)
    assert "escrow.getEscrow" in d.names and len(d.names) == 5


# ---- REST ------------------------------------------------------------------

def test_rest_get_escrow(client):
    r = client.get("/escrow/escrows/2")
    assert r.status_code == 200
    body = r.json()
    assert body["id"] == 2 and body["status"] == "pending" and body["deadline"] == 0


def test_rest_not_found_is_404(client):
    r = client.get("/escrow/escrows/404")
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "ESCROW_NOT_FOUND"


def test_rest_bad_filter_is_400(client):
    r = client.get("/escrow/escrows/1/events", params={"type": "minted"})
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "ESCROW_VALIDATION"


def test_rest_indexes_events_and_custody(client):
    assert client.get("/escrow/principals/alice/created").json()["ids"] == [1, 2]
    assert client.get("/escrow/principals/carol/received").json()["ids"] == [1]
    items = client.get("/escrow/escrows/1/events").json()["items"]
    assert [e["type"] for e in items] == ["created", "approved", "splclaim", "splclaim", "claimed"]
    assert client.get(f"/escrow/custody/{ASSET}").json()["balance"] == "8"
    assert len(client.get("/escrow/events").json()["items"]) == 6


def test_rest_serves_metrics(client):
    r = client.get("/escrow/metrics")
    assert r.status_code == 200
    assert "escrow_ledger_transitions_total" in r.text


def test_no_mutating_routes(client):
    assert client.post("/escrow/escrows/2").status_code == 405
