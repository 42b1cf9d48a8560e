"""Pytest fixtures and the fixture collector (written with ``--output``)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from pointlock.clock import ManualClock
from pointlock.curve import Secp256k1Oracle, commit
from pointlock.engine import EscrowEngine
from pointlock.events import MemoryEventSink
from pointlock.ledger import InMemoryLedger
from pointlock.store import InMemoryEscrowStore
from pointlock.test_accounts import ALICE, BOB, CAROL
from pointlock.types import AuxPoints, CurvePoint
from tools.fixtures_io import (
    CallResult,
    call_to_json,
    engine_state_to_json,
    result_to_json,
    run_call,
)

T0 = 1_700_000_000
HOUR = 3600
SECRET = 0xC0FFEE_5EC2E7_0B5C_A1A2

_CASES: dict[str, list[dict[str, Any]]] = {}


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--output",
        action="store",
        default=None,
        help="Output directory for generated fixtures",
    )


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(T0)


@pytest.fixture
def oracle() -> Secp256k1Oracle:
    return Secp256k1Oracle()


@pytest.fixture
def store() -> InMemoryEscrowStore:
    return InMemoryEscrowStore()


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger(balances={ALICE: 1_000, BOB: 0, CAROL: 0})


@pytest.fixture
def sink() -> MemoryEventSink:
    return MemoryEventSink()


@pytest.fixture
def engine(store, oracle, ledger, clock, sink) -> EscrowEngine:
    return EscrowEngine(store=store, oracle=oracle, ledger=ledger, clock=clock, sink=sink)


@pytest.fixture
def secret() -> int:
    return SECRET


@pytest.fixture
def commitment(oracle) -> CurvePoint:
    return commit(SECRET, oracle)


@pytest.fixture
def aux() -> AuxPoints:
    return AuxPoints(CurvePoint(1, 2), CurvePoint(3, 4))


@pytest.fixture
def open_escrow(engine, ledger, commitment, aux) -> Callable[..., bytes]:
    """Lock funds from the sender and open an escrow; returns its id."""

    def _open(
        sender: bytes = ALICE,
        receiver: bytes = BOB,
        amount: int = 100,
        timelock: int = T0 + HOUR,
        point: CurvePoint | None = None,
        aux_points: AuxPoints | None = None,
    ) -> bytes:
        ledger.lock(sender, amount)
        return engine.open(
            sender,
            receiver,
            point if point is not None else commitment,
            aux_points if aux_points is not None else aux,
            timelock,
            amount,
        )

    return _open


@pytest.fixture
def escrow_case() -> Callable[[str, str, EscrowEngine, dict[str, Any]], CallResult]:
    """Run one engine call and collect it as a fixture case."""

    def _escrow_case(
        rel_path: str, name: str, engine: EscrowEngine, call: dict[str, Any]
    ) -> CallResult:
        pre_state = engine_state_to_json(engine)
        result = run_call(engine, call)
        _CASES.setdefault(rel_path, []).append(
            {
                "name": name,
                "pre_state": pre_state,
                "call": call_to_json(call),
                "expected": {
                    **result_to_json(result),
                    "post_state": engine_state_to_json(engine),
                },
            }
        )
        return result

    return _escrow_case


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    output_dir = session.config.getoption("--output")
    if not output_dir:
        return

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    for rel_path, cases in _CASES.items():
        if not cases:
            continue
        target = out / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps({"cases": cases}, indent=2))
