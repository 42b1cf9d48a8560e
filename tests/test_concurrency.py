"""Concurrent calls on one escrow settle it exactly once."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

from pointlock.curve import commit
from pointlock.errors import ErrorCode, EscrowError
from pointlock.test_accounts import ALICE, BY_NAME

T0 = 1_700_000_000
HOUR = 3600


def _race(calls) -> list:
    barrier = threading.Barrier(len(calls))

    def _run(fn):
        barrier.wait()
        try:
            return fn()
        except EscrowError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(_run, calls))


def test_racing_withdrawals(engine, ledger, open_escrow, secret) -> None:
    cid = open_escrow()
    claimants = [BY_NAME[n] for n in ("carol", "dave", "eve", "frank", "grace", "heidi", "ivan")]
    results = _race([lambda c=c: engine.withdraw(c, cid, secret) for c in claimants])

    assert sum(r is True for r in results) == 1
    errors = [r for r in results if isinstance(r, EscrowError)]
    assert len(errors) == len(claimants) - 1
    assert all(e.code == ErrorCode.ALREADY_FINALIZED for e in errors)
    assert ledger.disbursed(cid) == 100
    assert ledger.pool == 0


def test_racing_withdraw_and_refund_at_expiry(engine, ledger, clock, open_escrow, secret) -> None:
    cid = open_escrow()
    clock.set(T0 + HOUR)
    carol = BY_NAME["carol"]
    results = _race([lambda: engine.withdraw(carol, cid, secret), lambda: engine.refund(ALICE, cid)])

    assert results[1] is True
    assert isinstance(results[0], EscrowError)
    assert results[0].code in (ErrorCode.TIMELOCK_EXPIRED, ErrorCode.ALREADY_FINALIZED)
    assert ledger.disbursed(cid) == 100


def test_racing_duplicate_opens(engine, ledger, commitment, aux) -> None:
    ledger.lock(ALICE, 100)
    results = _race([lambda: engine.open(ALICE, BY_NAME["bob"], commitment, aux, T0 + HOUR, 100)] * 8)

    ids = [r for r in results if isinstance(r, bytes)]
    errors = [r for r in results if isinstance(r, EscrowError)]
    assert len(ids) == 1
    assert len(errors) == 7
    assert all(e.code == ErrorCode.DUPLICATE_CONTRACT for e in errors)
    assert len(engine.contracts()) == 1


def test_many_escrows_in_parallel(engine, ledger, oracle, aux) -> None:
    ledger.credit(ALICE, 10_000)
    secrets = list(range(1, 41))
    ids = []
    for k in secrets:
        ledger.lock(ALICE, 10)
        ids.append(engine.open(ALICE, BY_NAME["bob"], commit(k, oracle), aux, T0 + HOUR, 10))

    carol = BY_NAME["carol"]
    results = _race([lambda cid=cid, k=k: engine.withdraw(carol, cid, k) for cid, k in zip(ids, secrets)])
    assert all(r is True for r in results)
    assert ledger.balance_of(carol) == 5 * len(ids)
    assert ledger.pool == 0
