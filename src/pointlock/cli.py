"""
pointlock command line.

Operates on a JSON state file holding the escrow records, the ledger and a
manual clock, so a whole open/withdraw/refund flow can be driven from the
shell. State is written back only when a command succeeds.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Callable, Optional

import click

from .clock import ManualClock
from .config import EngineConfig
from .curve import commit, oracle_for
from .encoding import point_to_json, state_from_json, state_to_json
from .engine import EscrowEngine
from .errors import EscrowError
from .events import LoggingEventSink
from .identity import derive_contract_id
from .test_accounts import BY_NAME
from .types import NOT_FOUND, AuxPoints, CurvePoint, PublicView
from .yaml_dump import dump_yaml

logger = logging.getLogger(__name__)


# --- argument parsing ---


def _parse_int(value: str) -> int:
    value = value.strip()
    try:
        return int(value, 16) if value.lower().startswith("0x") else int(value)
    except ValueError:
        raise click.BadParameter(f"not an integer: {value!r}") from None


def _parse_identity(value: str) -> bytes:
    named = BY_NAME.get(value.lower())
    if named is not None:
        return named
    try:
        raw = bytes.fromhex(value[2:] if value.lower().startswith("0x") else value)
    except ValueError:
        raise click.BadParameter(f"not a known account or hex identity: {value!r}") from None
    if len(raw) != 32:
        raise click.BadParameter("identity must be 32 bytes")
    return raw


def _parse_point(value: Optional[str]) -> CurvePoint:
    if not value:
        return CurvePoint.infinity()
    parts = value.split(",")
    if len(parts) != 2:
        raise click.BadParameter(f"point must be X,Y: {value!r}")
    return CurvePoint(_parse_int(parts[0]), _parse_int(parts[1]))


def _parse_contract_id(value: str) -> bytes:
    try:
        return bytes.fromhex(value[2:] if value.lower().startswith("0x") else value)
    except ValueError:
        raise click.BadParameter(f"invalid contract id: {value!r}") from None


# --- state file ---


class Session:
    def __init__(self, path: Path, config: EngineConfig) -> None:
        self.path = path
        self.config = config
        self.engine: Optional[EscrowEngine] = None
        self.clock: Optional[ManualClock] = None

    def load(self) -> EscrowEngine:
        if not self.path.exists():
            raise click.ClickException(f"state file {self.path} not found; run `pointlock init` first")
        data = json.loads(self.path.read_text())
        store, ledger, now, curve = state_from_json(data)
        self.config.curve = curve
        self.clock = ManualClock(now)
        self.engine = EscrowEngine.from_config(
            self.config, store=store, ledger=ledger, clock=self.clock, sink=LoggingEventSink()
        )
        return self.engine

    def save(self) -> None:
        if self.engine is None or self.clock is None:
            raise click.ClickException("no state loaded")
        data = state_to_json(self.engine.store, self.engine.ledger, self.clock.now(), self.config.curve)
        self.path.write_text(json.dumps(data, indent=2))


def _view_to_json(view: PublicView) -> dict[str, Any]:
    out = {"id": view.contract_id.hex()}
    out.update(
        {
            "sender": view.sender.hex(),
            "receiver": view.receiver.hex(),
            "amount": view.amount,
            "commitment_point": point_to_json(view.commitment_point),
            "aux_points": {
                "c1": point_to_json(view.aux_points.c1),
                "c2": point_to_json(view.aux_points.c2),
            },
            "timelock": view.timelock,
            "withdrawn": view.withdrawn,
            "refunded": view.refunded,
        }
    )
    return out


def _emit(data: Any, fmt: str) -> None:
    if fmt == "yaml":
        click.echo(dump_yaml(data), nl=False)
    else:
        click.echo(json.dumps(data, indent=2))


def _run(session: Session, fn: Callable[[EscrowEngine], Any]) -> Any:
    """Run ``fn(engine)`` and persist state only if it succeeds."""
    engine = session.load()
    try:
        result = fn(engine)
    except EscrowError as exc:
        logger.debug(f"command failed: {exc!r}")
        click.echo(f"error: {exc}", err=True)
        sys.exit(1)
    session.save()
    return result


def _commitment(curve: str, point: Optional[str], secret: Optional[str]) -> CurvePoint:
    if secret is not None:
        return commit(_parse_int(secret), oracle_for(curve))
    if point is None:
        raise click.UsageError("one of --commitment or --secret is required")
    return _parse_point(point)


def _aux(c1: Optional[str], c2: Optional[str]) -> AuxPoints:
    return AuxPoints(_parse_point(c1), _parse_point(c2))


# --- commands ---


@click.group()
@click.option(
    "--state",
    "state_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="State file (default: $POINTLOCK_STATE_FILE or pointlock-state.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, state_path: Optional[Path], verbose: bool) -> None:
    """Point-locked escrow tool."""
    config = EngineConfig.from_env()
    if verbose:
        config.verbose = True
    logging.basicConfig(
        level=getattr(logging, config.effective_log_level, logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    ctx.obj = Session(state_path or Path(config.state_file), config)


@cli.command()
@click.option("--now", "now", type=int, default=None, help="Initial clock (unix seconds)")
@click.option("--curve", default=None, help="Curve name (default: secp256k1)")
@click.option("--force", is_flag=True, help="Overwrite an existing state file")
@click.pass_obj
def init(session: Session, now: Optional[int], curve: Optional[str], force: bool) -> None:
    """Create an empty state file."""
    if session.path.exists() and not force:
        raise click.ClickException(f"{session.path} already exists (use --force)")
    if curve is not None:
        session.config.curve = curve
    try:
        oracle_for(session.config.curve)
    except EscrowError as exc:
        raise click.ClickException(str(exc)) from None
    clock = ManualClock(int(time.time()) if now is None else now)
    session.clock = clock
    session.engine = EscrowEngine.from_config(session.config, clock=clock)
    session.save()
    click.echo(f"initialized {session.path} at t={clock.now()}")


@cli.command()
@click.argument("account")
@click.argument("amount")
@click.pass_obj
def fund(session: Session, account: str, amount: str) -> None:
    """Credit AMOUNT to ACCOUNT's ledger balance."""
    who = _parse_identity(account)
    value = _parse_int(amount)

    def _fund(engine: EscrowEngine) -> int:
        engine.ledger.credit(who, value)
        return engine.ledger.balance_of(who)

    click.echo(f"{who.hex()} balance={_run(session, _fund)}")


@cli.command("commit")
@click.argument("secret")
@click.pass_obj
def commit_cmd(session: Session, secret: str) -> None:
    """Print the commitment point SECRET·G."""
    try:
        point = commit(_parse_int(secret), oracle_for(session.config.curve))
    except EscrowError as exc:
        raise click.ClickException(str(exc)) from None
    click.echo(f"{point.x:#066x},{point.y:#066x}")


@cli.command("derive-id")
@click.argument("sender")
@click.argument("receiver")
@click.option("--amount", required=True)
@click.option("--timelock", type=int, required=True)
@click.option("--commitment", default=None, help="Commitment point X,Y")
@click.option("--secret", default=None, help="Derive the commitment from this scalar")
@click.option("--c1", default=None, help="Auxiliary point c1 X,Y")
@click.option("--c2", default=None, help="Auxiliary point c2 X,Y")
@click.pass_obj
def derive_id(
    session: Session,
    sender: str,
    receiver: str,
    amount: str,
    timelock: int,
    commitment: Optional[str],
    secret: Optional[str],
    c1: Optional[str],
    c2: Optional[str],
) -> None:
    """Print the contract id for a set of creation parameters."""
    try:
        cid = derive_contract_id(
            _parse_identity(sender),
            _parse_identity(receiver),
            _parse_int(amount),
            _commitment(session.config.curve, commitment, secret),
            _aux(c1, c2),
            timelock,
        )
    except EscrowError as exc:
        raise click.ClickException(str(exc)) from None
    click.echo(cid.hex())


@cli.command("open")
@click.argument("sender")
@click.argument("receiver")
@click.option("--amount", required=True)
@click.option("--timelock", type=int, default=None, help="Absolute expiry (unix seconds)")
@click.option("--expires-in", type=int, default=None, help="Expiry relative to the state clock")
@click.option("--commitment", default=None, help="Commitment point X,Y")
@click.option("--secret", default=None, help="Derive the commitment from this scalar")
@click.option("--c1", default=None, help="Auxiliary point c1 X,Y")
@click.option("--c2", default=None, help="Auxiliary point c2 X,Y")
@click.pass_obj
def open_cmd(
    session: Session,
    sender: str,
    receiver: str,
    amount: str,
    timelock: Optional[int],
    expires_in: Optional[int],
    commitment: Optional[str],
    secret: Optional[str],
    c1: Optional[str],
    c2: Optional[str],
) -> None:
    """Lock AMOUNT from SENDER and open an escrow for RECEIVER."""
    if (timelock is None) == (expires_in is None):
        raise click.UsageError("pass exactly one of --timelock or --expires-in")
    who = _parse_identity(sender)
    to = _parse_identity(receiver)
    value = _parse_int(amount)
    aux = _aux(c1, c2)

    def _open(engine: EscrowEngine) -> bytes:
        lock_at = timelock if timelock is not None else engine.clock.now() + expires_in
        point = _commitment(session.config.curve, commitment, secret)
        engine.ledger.lock(who, value)
        return engine.open(who, to, point, aux, lock_at, value)

    cid = _run(session, _open)
    click.echo(cid.hex())


@cli.command()
@click.argument("caller")
@click.argument("contract_id")
@click.argument("secret")
@click.pass_obj
def withdraw(session: Session, caller: str, contract_id: str, secret: str) -> None:
    """Claim CONTRACT_ID as CALLER by revealing SECRET."""
    who = _parse_identity(caller)
    cid = _parse_contract_id(contract_id)
    k = _parse_int(secret)
    _run(session, lambda e: e.withdraw(who, cid, k))
    click.echo(f"withdrawn {cid.hex()}")


@cli.command()
@click.argument("caller")
@click.argument("contract_id")
@click.pass_obj
def refund(session: Session, caller: str, contract_id: str) -> None:
    """Refund CONTRACT_ID to its sender."""
    who = _parse_identity(caller)
    cid = _parse_contract_id(contract_id)
    _run(session, lambda e: e.refund(who, cid))
    click.echo(f"refunded {cid.hex()}")


@cli.command()
@click.argument("contract_id")
@click.option("--format", "fmt", type=click.Choice(["json", "yaml"]), default="json")
@click.pass_obj
def show(session: Session, contract_id: str, fmt: str) -> None:
    """Show one contract."""
    view = session.load().get_contract(_parse_contract_id(contract_id))
    if view is NOT_FOUND:
        raise click.ClickException(f"contract {contract_id} not found")
    _emit(_view_to_json(view), fmt)


@cli.command("list")
@click.option("--format", "fmt", type=click.Choice(["json", "yaml"]), default="json")
@click.pass_obj
def list_cmd(session: Session, fmt: str) -> None:
    """List all contracts."""
    engine = session.load()
    _emit([_view_to_json(v) for v in engine.contracts()], fmt)


@cli.command()
@click.argument("seconds", type=int)
@click.pass_obj
def advance(session: Session, seconds: int) -> None:
    """Move the state clock forward by SECONDS."""
    now = _run(session, lambda e: session.clock.advance(seconds))
    click.echo(f"t={now}")


@cli.command()
@click.argument("account")
@click.pass_obj
def balance(session: Session, account: str) -> None:
    """Show an account's ledger balance."""
    who = _parse_identity(account)
    engine = session.load()
    click.echo(str(engine.ledger.balance_of(who)))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
