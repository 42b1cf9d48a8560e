"""In-memory escrow store."""

from __future__ import annotations

import threading

import pytest

from pointlock.errors import ErrorCode, EscrowError
from pointlock.store import InMemoryEscrowStore
from pointlock.test_accounts import ALICE, BOB
from pointlock.types import AuxPoints, CurvePoint, EscrowRecord, EscrowStatus


def _record(amount: int = 10) -> EscrowRecord:
    return EscrowRecord(
        sender=ALICE,
        receiver=BOB,
        amount=amount,
        commitment_point=CurvePoint(1, 1),
        aux_points=AuxPoints(CurvePoint(0, 0), CurvePoint(0, 0)),
        timelock=100,
    )


def _id(byte: int) -> bytes:
    return bytes([byte]) * 32


def test_insert_get_exists(store: InMemoryEscrowStore) -> None:
    assert not store.exists(_id(1))
    assert store.get(_id(1)) is None
    store.insert(_id(1), _record())
    assert store.exists(_id(1))
    assert store.get(_id(1)) == _record()
    assert len(store) == 1


def test_insert_never_overwrites(store: InMemoryEscrowStore) -> None:
    store.insert(_id(1), _record(10))
    with pytest.raises(EscrowError) as exc:
        store.insert(_id(1), _record(99))
    assert exc.value.code == ErrorCode.DUPLICATE_CONTRACT
    assert store.get(_id(1)).amount == 10


def test_set_status_unknown(store: InMemoryEscrowStore) -> None:
    with pytest.raises(EscrowError) as exc:
        store.set_status(_id(7), EscrowStatus.WITHDRAWN)
    assert exc.value.code == ErrorCode.CONTRACT_NOT_FOUND


def test_set_status_forward_only(store: InMemoryEscrowStore) -> None:
    store.insert(_id(1), _record())
    before = store.get(_id(1))
    updated = store.set_status(_id(1), EscrowStatus.REFUNDED)
    assert updated.refunded and not updated.withdrawn
    # the previously read value is untouched
    assert before.status == EscrowStatus.OPEN

    for status in (EscrowStatus.OPEN, EscrowStatus.WITHDRAWN):
        with pytest.raises(EscrowError) as exc:
            store.set_status(_id(1), status)
        assert exc.value.code == ErrorCode.ESCROW_WRONG_STATE
    assert store.get(_id(1)).status == EscrowStatus.REFUNDED


def test_restore_puts_back_staged_record(store: InMemoryEscrowStore) -> None:
    store.insert(_id(1), _record())
    original = store.get(_id(1))
    store.set_status(_id(1), EscrowStatus.WITHDRAWN)
    store.restore(_id(1), original)
    assert store.get(_id(1)).status == EscrowStatus.OPEN

    with pytest.raises(EscrowError) as exc:
        store.restore(_id(2), original)
    assert exc.value.code == ErrorCode.CONTRACT_NOT_FOUND


def test_lock_is_reentrant_and_per_key() -> None:
    store = InMemoryEscrowStore(stripes=4)
    acquired = threading.Event()

    with store.locked(_id(0)):
        # re-entrant for the holder
        store.insert(_id(0), _record())

        def _other() -> None:
            # _id(1) lives on a different stripe
            with store.locked(_id(1)):
                acquired.set()

        t = threading.Thread(target=_other)
        t.start()
        assert acquired.wait(timeout=5)
        t.join()


def test_items_is_a_snapshot(store: InMemoryEscrowStore) -> None:
    store.insert(_id(1), _record())
    snapshot = store.items()
    store.insert(_id(2), _record())
    assert [cid for cid, _ in snapshot] == [_id(1)]
