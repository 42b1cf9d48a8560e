"""End-to-end escrow scenarios, including a resale chain."""

from __future__ import annotations

import pytest

from pointlock.curve import commit
from pointlock.errors import ErrorCode, EscrowError
from pointlock.test_accounts import ALICE, BOB, CAROL, DAVE
from pointlock.types import AuxPoints, CurvePoint

T0 = 1_700_000_000
HOUR = 3600


def test_claim_before_expiry(engine, ledger, clock, oracle) -> None:
    k = 0xA11CE
    cid = _fund_and_open(engine, ledger, commit(k, oracle), amount=100, timelock=T0 + HOUR)

    clock.advance(HOUR // 2)
    assert engine.withdraw(CAROL, cid, k)
    assert ledger.balance_of(BOB) == 50
    assert ledger.balance_of(CAROL) == 50
    assert engine.get_contract(cid).withdrawn

    with pytest.raises(EscrowError) as exc:
        engine.refund(ALICE, cid)
    assert exc.value.code == ErrorCode.ALREADY_FINALIZED


def test_refund_after_expiry(engine, ledger, clock, oracle) -> None:
    k = 0xA11CE
    cid = _fund_and_open(engine, ledger, commit(k, oracle), amount=100, timelock=T0 + HOUR)

    clock.set(T0 + HOUR)
    assert engine.refund(ALICE, cid)
    assert ledger.balance_of(ALICE) == 1_000
    assert engine.get_contract(cid).refunded

    with pytest.raises(EscrowError) as exc:
        engine.withdraw(CAROL, cid, k)
    assert exc.value.code == ErrorCode.ALREADY_FINALIZED


def test_expired_open_escrow_cannot_be_withdrawn(engine, ledger, clock, oracle) -> None:
    k = 0xA11CE
    cid = _fund_and_open(engine, ledger, commit(k, oracle), amount=100, timelock=T0 + HOUR)
    clock.advance(HOUR)
    with pytest.raises(EscrowError) as exc:
        engine.withdraw(CAROL, cid, k)
    assert exc.value.code == ErrorCode.TIMELOCK_EXPIRED


def test_resale_chain(engine, ledger, clock, oracle) -> None:
    """One scalar unlocks two escrows locked against the same point.

    Alice locks value for Bob; Bob, learning nothing yet, locks value for
    Dave against the same point. Once Carol claims the first escrow the
    scalar is public and anyone can settle the second.
    """
    k = 0xB0B5EC
    point = commit(k, oracle)
    ledger.credit(BOB, 40)

    first = _fund_and_open(engine, ledger, point, amount=100, timelock=T0 + 2 * HOUR)
    ledger.lock(BOB, 40)
    second = engine.open(BOB, DAVE, point, AuxPoints(CurvePoint(5, 6), CurvePoint(7, 8)), T0 + HOUR, 40)

    engine.withdraw(CAROL, first, k)
    engine.withdraw(CAROL, second, k)

    assert ledger.balance_of(BOB) == 50
    assert ledger.balance_of(DAVE) == 20
    assert ledger.balance_of(CAROL) == 50 + 20
    assert ledger.pool == 0


def _fund_and_open(engine, ledger, point: CurvePoint, amount: int, timelock: int) -> bytes:
    ledger.lock(ALICE, amount)
    aux = AuxPoints(CurvePoint(1, 2), CurvePoint(3, 4))
    return engine.open(ALICE, BOB, point, aux, timelock, amount)
