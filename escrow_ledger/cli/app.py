from __future__ import annotations

"""
escrow_ledger.cli.app
---------------------

Devnet/operator CLI over a SQLite-backed escrow ledger. Records, balances and
events all live in one state file (``--db``, default from configuration).

Mutating commands run as the principal given with ``--as``; that principal
is the only signer of the call. ``--now`` pins the ledger timestamp, which
makes deadline behaviour reproducible.

Examples
--------
# Fund alice and lock 1000 USD for bob (60%) and carol (40%) until t=2000
escrow-ledger --db dev.db mint USD alice 5000
escrow-ledger --db dev.db create --as alice --asset USD --amount 1000 \
    --to bob:60 --to carol:40 --deadline 2000 --now 1000

# Approve, then let carol pull both shares before the deadline
escrow-ledger --db dev.db approve 1 --as alice
escrow-ledger --db dev.db claim 1 --as carol --now 1500

# Inspect
escrow-ledger --db dev.db show 1
escrow-ledger --db dev.db received bob
escrow-ledger --db dev.db events --id 1
"""

import json
from typing import Any, ContextManager, List, NoReturn, Optional, Tuple

import typer

from ..config import load_config
from ..context import ManualClock, SystemClock
from ..errors import EscrowError, ValidationError
from ..host import LedgerHost
from ..ledger import EscrowLedger
from ..logging import configure as configure_logging
from ..logging import reset as reset_logging
from ..model.escrow import Recipient
from ..model.events import EventType

app = typer.Typer(
    name="escrow-ledger",
    add_completion=False,
    no_args_is_help=True,
    help="Create, approve, claim and refund escrows in a local SQLite ledger.",
)


class _Session:
    """Lazily opened ledger bound to the global --db option."""

    def __init__(self, db: str, cfg: Any) -> None:
        self.db = db
        self.cfg = cfg
        self._host: Optional[LedgerHost] = None

    def open(self, now: Optional[int] = None) -> Tuple[LedgerHost, EscrowLedger]:
        clock = ManualClock(now) if now is not None else SystemClock()
        self._host = LedgerHost.from_config(self.cfg, path=self.db, clock=clock)
        return self._host, EscrowLedger(self._host, config=self.cfg)

    def close(self) -> None:
        if self._host is not None:
            self._host.close()
            self._host = None


# -------------------- utils --------------------

def _session(ctx: typer.Context) -> _Session:
    return ctx.ensure_object(dict)["session"]


def _emit(obj: Any) -> None:
    typer.echo(json.dumps(obj, indent=2, sort_keys=True))


def _fail(e: EscrowError) -> NoReturn:
    typer.echo(json.dumps({"error": e.to_dict()}, sort_keys=True), err=True)
    raise typer.Exit(1)


def _parse_recipient(value: str) -> Recipient:
    principal, sep, pct = value.rpartition(":")
    if not sep or not principal:
        raise ValidationError("recipient must look like PRINCIPAL:PERCENT", details={"value": value})
    try:
        return Recipient(principal, int(pct))
    except ValueError as e:
        raise ValidationError("recipient percentage must be an integer", details={"value": value}) from e


def _signed(host: LedgerHost, principal: str) -> ContextManager[None]:
    signing = getattr(host.auth, "signing", None)
    if signing is None:
        raise RuntimeError("configured authorization oracle does not support signers")
    return signing(principal)


_AS = typer.Option(..., "--as", help="Principal signing this call.")
_NOW = typer.Option(None, "--now", min=0, help="Pin the ledger timestamp (unix seconds).")


# -------------------- callback --------------------

@app.callback()
def main(
    ctx: typer.Context,
    db: Optional[str] = typer.Option(None, "--db", help="SQLite state file (default: store.path from config)."),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for ledger diagnostics on stderr."),
) -> None:
    cfg = load_config()
    configure_logging(json=cfg.logging.json, level=log_level)
    ctx.call_on_close(reset_logging)
    session = _Session(db or cfg.store.path, cfg)
    ctx.ensure_object(dict)["session"] = session
    ctx.call_on_close(session.close)


# -------------------- balances --------------------

@app.command("mint")
def cmd_mint(
    ctx: typer.Context,
    asset: str = typer.Argument(..., help="Asset identifier."),
    account: str = typer.Argument(..., help="Account to credit."),
    amount: int = typer.Argument(..., min=1, help="Amount in the asset's smallest unit."),
) -> None:
    """Credit an account out of thin air (devnet helper)."""
    host, _ = _session(ctx).open()
    try:
        with host.atomic():
            new = host.transfers.mint(asset, account, amount)
    except EscrowError as e:
        _fail(e)
    _emit({"asset": asset, "account": account, "balance": str(new)})


@app.command("balance")
def cmd_balance(
    ctx: typer.Context,
    asset: str = typer.Argument(...),
    account: Optional[str] = typer.Argument(None, help="Account (default: the custody account)."),
) -> None:
    """Show an account balance, or the custody balance when no account is given."""
    host, _ = _session(ctx).open()
    try:
        if account is None:
            account, bal = host.custody, host.custody_balance(asset)
        else:
            bal = host.transfers.balance(asset, account)
    except EscrowError as e:
        _fail(e)
    _emit({"asset": asset, "account": account, "balance": str(bal)})


# -------------------- transitions --------------------

@app.command("create")
def cmd_create(
    ctx: typer.Context,
    as_: str = _AS,
    asset: str = typer.Option(..., "--asset", help="Asset to lock."),
    amount: int = typer.Option(..., "--amount", help="Amount to lock (smallest unit)."),
    to: List[str] = typer.Option(..., "--to", help="Recipient as PRINCIPAL:PERCENT; repeat for splits."),
    deadline: int = typer.Option(0, "--deadline", min=0, help="Deadline timestamp; 0 means none."),
    now: Optional[int] = _NOW,
) -> None:
    """Lock funds from --as into custody for the given recipients."""
    host, ledger = _session(ctx).open(now)
    try:
        recipients = [_parse_recipient(s) for s in to]
        with _signed(host, as_):
            escrow_id = ledger.create(as_, recipients, amount, asset, deadline)
    except EscrowError as e:
        _fail(e)
    _emit({"id": escrow_id})


@app.command("approve")
def cmd_approve(
    ctx: typer.Context,
    escrow_id: int = typer.Argument(..., min=0),
    as_: str = _AS,
    now: Optional[int] = _NOW,
) -> None:
    """Sender approves a pending escrow."""
    host, ledger = _session(ctx).open(now)
    try:
        with _signed(host, as_):
            ledger.approve(escrow_id)
    except EscrowError as e:
        _fail(e)
    _emit(ledger.get_escrow(escrow_id).to_json())


@app.command("claim")
def cmd_claim(
    ctx: typer.Context,
    escrow_id: int = typer.Argument(..., min=0),
    as_: str = _AS,
    now: Optional[int] = _NOW,
) -> None:
    """A recipient releases every share of an approved escrow."""
    host, ledger = _session(ctx).open(now)
    try:
        with _signed(host, as_):
            payout = ledger.claim(escrow_id, as_)
    except EscrowError as e:
        _fail(e)
    _emit(
        {
            "id": escrow_id,
            "shares": [{"principal": p, "amount": str(a)} for p, a in payout.shares],
            "remainder": str(payout.remainder),
        }
    )


@app.command("refund")
def cmd_refund(
    ctx: typer.Context,
    escrow_id: int = typer.Argument(..., min=0),
    as_: str = _AS,
    now: Optional[int] = _NOW,
) -> None:
    """Sender takes the full amount back after the deadline."""
    host, ledger = _session(ctx).open(now)
    try:
        with _signed(host, as_):
            ledger.refund(escrow_id)
    except EscrowError as e:
        _fail(e)
    _emit(ledger.get_escrow(escrow_id).to_json())


# -------------------- reads --------------------

@app.command("show")
def cmd_show(ctx: typer.Context, escrow_id: int = typer.Argument(..., min=0)) -> None:
    """Print one escrow record."""
    _, ledger = _session(ctx).open()
    try:
        rec = ledger.get_escrow(escrow_id)
    except EscrowError as e:
        _fail(e)
    _emit(rec.to_json())


@app.command("created")
def cmd_created(ctx: typer.Context, principal: str = typer.Argument(...)) -> None:
    """Escrow ids created by a principal."""
    _, ledger = _session(ctx).open()
    try:
        ids = ledger.get_created_ids(principal)
    except EscrowError as e:
        _fail(e)
    _emit({"principal": principal, "ids": ids})


@app.command("received")
def cmd_received(ctx: typer.Context, principal: str = typer.Argument(...)) -> None:
    """Escrow ids naming a principal as recipient."""
    _, ledger = _session(ctx).open()
    try:
        ids = ledger.get_received_ids(principal)
    except EscrowError as e:
        _fail(e)
    _emit({"principal": principal, "ids": ids})


@app.command("events")
def cmd_events(
    ctx: typer.Context,
    escrow_id: Optional[int] = typer.Option(None, "--id", min=0, help="Only events of this escrow."),
    since: int = typer.Option(0, "--since", min=0, help="First sequence number to show."),
    etype: Optional[str] = typer.Option(None, "--type", help="created|approved|splclaim|claimed|refunded"),
) -> None:
    """Print the event log."""
    host, _ = _session(ctx).open()
    try:
        kind = EventType(etype) if etype else None
    except ValueError:
        _fail(ValidationError("unknown event type", details={"type": etype}))
    items = host.events.events_for(escrow_id) if escrow_id is not None else host.events.events(since=since)
    items = [e for e in items if (e.seq or 0) >= since and (kind is None or e.etype == kind)]
    _emit([e.to_dict() for e in items])


def get_app() -> typer.Typer:
    return app


if __name__ == "__main__":
    app()
