"""Record encoding: fixed-width binary layout and JSON state files."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple

from .config import (
    AMOUNT_SIZE,
    COORD_SIZE,
    DEFAULT_CURVE,
    IDENTITY_SIZE,
    RECORD_SIZE,
    TIMELOCK_SIZE,
)
from .errors import ErrorCode, EscrowError
from .ledger import InMemoryLedger
from .store import InMemoryEscrowStore
from .types import AuxPoints, CurvePoint, EscrowRecord, EscrowStatus


@dataclass
class Writer:
    buf: bytearray

    def write_uint(self, v: int, size: int) -> None:
        try:
            self.buf.extend(int(v).to_bytes(size, "big", signed=False))
        except OverflowError as exc:
            raise EscrowError(ErrorCode.INVALID_FORMAT, f"value does not fit in {size} bytes") from exc

    def write_bytes(self, b: bytes) -> None:
        self.buf.extend(b)

    def write_bool(self, v: bool) -> None:
        self.write_uint(1 if v else 0, 1)


@dataclass
class Reader:
    data: bytes
    pos: int = 0

    def read_bytes(self, size: int) -> bytes:
        end = self.pos + size
        if end > len(self.data):
            raise EscrowError(ErrorCode.INVALID_FORMAT, "unexpected end of record")
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def read_uint(self, size: int) -> int:
        return int.from_bytes(self.read_bytes(size), "big")

    def read_bool(self) -> bool:
        v = self.read_uint(1)
        if v not in (0, 1):
            raise EscrowError(ErrorCode.INVALID_FORMAT, "invalid bool byte")
        return v == 1


def _expect_len(name: str, value: bytes, size: int) -> None:
    if len(value) != size:
        raise EscrowError(ErrorCode.INVALID_FORMAT, f"{name} must be {size} bytes")


def _write_point(w: Writer, p: CurvePoint) -> None:
    w.write_uint(p.x, COORD_SIZE)
    w.write_uint(p.y, COORD_SIZE)


def _read_point(r: Reader) -> CurvePoint:
    return CurvePoint(r.read_uint(COORD_SIZE), r.read_uint(COORD_SIZE))


def encode_record(record: EscrowRecord) -> bytes:
    """Serialize a record in its persisted field order."""
    _expect_len("sender", record.sender, IDENTITY_SIZE)
    _expect_len("receiver", record.receiver, IDENTITY_SIZE)
    w = Writer(bytearray())
    w.write_bytes(record.sender)
    w.write_bytes(record.receiver)
    w.write_uint(record.amount, AMOUNT_SIZE)
    _write_point(w, record.commitment_point)
    _write_point(w, record.aux_points.c1)
    _write_point(w, record.aux_points.c2)
    w.write_uint(record.timelock, TIMELOCK_SIZE)
    w.write_bool(record.withdrawn)
    w.write_bool(record.refunded)
    return bytes(w.buf)


def decode_record(data: bytes) -> EscrowRecord:
    _expect_len("record", data, RECORD_SIZE)
    r = Reader(data)
    sender = r.read_bytes(IDENTITY_SIZE)
    receiver = r.read_bytes(IDENTITY_SIZE)
    amount = r.read_uint(AMOUNT_SIZE)
    commitment = _read_point(r)
    c1 = _read_point(r)
    c2 = _read_point(r)
    timelock = r.read_uint(TIMELOCK_SIZE)
    withdrawn = r.read_bool()
    refunded = r.read_bool()
    if withdrawn and refunded:
        raise EscrowError(ErrorCode.INVALID_FORMAT, "record cannot be both withdrawn and refunded")
    status = EscrowStatus.OPEN
    if withdrawn:
        status = EscrowStatus.WITHDRAWN
    elif refunded:
        status = EscrowStatus.REFUNDED
    return EscrowRecord(
        sender=sender,
        receiver=receiver,
        amount=amount,
        commitment_point=commitment,
        aux_points=AuxPoints(c1, c2),
        timelock=timelock,
        status=status,
    )


# --- JSON ---


def _hex_to_bytes(value: str) -> bytes:
    v = value[2:] if value.startswith(("0x", "0X")) else value
    try:
        return bytes.fromhex(v)
    except ValueError as exc:
        raise EscrowError(ErrorCode.INVALID_FORMAT, f"invalid hex: {value!r}") from exc


def _coord_to_hex(v: int) -> str:
    return f"{v:0{COORD_SIZE * 2}x}"


def _hex_to_coord(value: Any) -> int:
    if isinstance(value, int):
        return value
    return int.from_bytes(_hex_to_bytes(value), "big")


def point_to_json(p: CurvePoint) -> dict[str, str]:
    return {"x": _coord_to_hex(p.x), "y": _coord_to_hex(p.y)}


def point_from_json(d: dict[str, Any]) -> CurvePoint:
    try:
        return CurvePoint(_hex_to_coord(d["x"]), _hex_to_coord(d["y"]))
    except (KeyError, TypeError) as exc:
        raise EscrowError(ErrorCode.INVALID_FORMAT, "point needs x and y") from exc


def record_to_json(record: EscrowRecord) -> dict[str, Any]:
    return {
        "sender": record.sender.hex(),
        "receiver": record.receiver.hex(),
        "amount": record.amount,
        "commitment_point": point_to_json(record.commitment_point),
        "aux_points": {
            "c1": point_to_json(record.aux_points.c1),
            "c2": point_to_json(record.aux_points.c2),
        },
        "timelock": record.timelock,
        "withdrawn": record.withdrawn,
        "refunded": record.refunded,
    }


def record_from_json(d: dict[str, Any]) -> EscrowRecord:
    try:
        withdrawn = bool(d.get("withdrawn", False))
        refunded = bool(d.get("refunded", False))
        if withdrawn and refunded:
            raise EscrowError(ErrorCode.INVALID_FORMAT, "record cannot be both withdrawn and refunded")
        status = EscrowStatus.OPEN
        if withdrawn:
            status = EscrowStatus.WITHDRAWN
        elif refunded:
            status = EscrowStatus.REFUNDED
        aux = d["aux_points"]
        return EscrowRecord(
            sender=_hex_to_bytes(d["sender"]),
            receiver=_hex_to_bytes(d["receiver"]),
            amount=int(d["amount"]),
            commitment_point=point_from_json(d["commitment_point"]),
            aux_points=AuxPoints(point_from_json(aux["c1"]), point_from_json(aux["c2"])),
            timelock=int(d["timelock"]),
            status=status,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise EscrowError(ErrorCode.INVALID_FORMAT, f"malformed record: {exc}") from exc


def ledger_to_json(ledger: InMemoryLedger) -> dict[str, Any]:
    return {
        "pool": ledger.pool,
        "retained": ledger.retained,
        "balances": [
            {"account": account.hex(), "balance": balance}
            for account, balance in sorted(ledger.balances.items())
        ],
        "blocked": sorted(a.hex() for a in ledger.blocked),
    }


def ledger_from_json(d: dict[str, Any]) -> InMemoryLedger:
    return InMemoryLedger(
        balances={_hex_to_bytes(b["account"]): int(b["balance"]) for b in d.get("balances", [])},
        pool=int(d.get("pool", 0)),
        retained=int(d.get("retained", 0)),
        blocked=[_hex_to_bytes(a) for a in d.get("blocked", [])],
    )


def state_to_json(
    store: InMemoryEscrowStore,
    ledger: InMemoryLedger,
    now: int,
    curve: str = DEFAULT_CURVE,
) -> dict[str, Any]:
    escrows = []
    for contract_id, record in sorted(store.items()):
        entry = {"id": contract_id.hex()}
        entry.update(record_to_json(record))
        escrows.append(entry)
    return {
        "curve": curve,
        "now": now,
        "ledger": ledger_to_json(ledger),
        "escrows": escrows,
    }


def state_from_json(
    d: dict[str, Any], store: Optional[InMemoryEscrowStore] = None
) -> Tuple[InMemoryEscrowStore, InMemoryLedger, int, str]:
    """Rebuild (store, ledger, now, curve) from :func:`state_to_json` output."""
    store = store if store is not None else InMemoryEscrowStore()
    for entry in d.get("escrows", []):
        store.insert(_hex_to_bytes(entry["id"]), record_from_json(entry))
    ledger = ledger_from_json(d.get("ledger", {}))
    return store, ledger, int(d.get("now", 0)), d.get("curve", DEFAULT_CURVE)
