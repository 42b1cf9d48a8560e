"""Helpers to serialize/replay escrow fixture cases.

A case is ``{"name", "pre_state", "call", "expected"}`` where ``call`` names
one engine operation and its arguments, and ``expected`` holds the outcome
(``ok``, ``error``, ``result``) plus the post state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from pointlock.clock import ManualClock
from pointlock.curve import oracle_for
from pointlock.encoding import point_from_json, point_to_json, state_from_json, state_to_json
from pointlock.engine import EscrowEngine
from pointlock.errors import ErrorCode, EscrowError
from pointlock.events import MemoryEventSink
from pointlock.types import AuxPoints


@dataclass
class CallResult:
    ok: bool
    error: Optional[EscrowError] = None
    value: Any = None

    @property
    def error_name(self) -> Optional[str]:
        return self.error.code.name if self.error else None


def _bytes_to_hex(v: bytes) -> str:
    return v.hex()


def _hex_to_bytes(v: str) -> bytes:
    return bytes.fromhex(v)


def call_to_json(call: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {"op": call["op"]}
    for key, value in call.items():
        if key == "op":
            continue
        if isinstance(value, (bytes, bytearray)):
            out[key] = _bytes_to_hex(bytes(value))
        elif key == "commitment_point":
            out[key] = point_to_json(value)
        elif key == "aux_points":
            out[key] = {"c1": point_to_json(value.c1), "c2": point_to_json(value.c2)}
        elif key == "secret":
            out[key] = f"{value:#x}" if isinstance(value, int) and value >= 0 else value
        else:
            out[key] = value
    return out


def call_from_json(d: dict[str, Any]) -> dict[str, Any]:
    call: dict[str, Any] = {"op": d["op"]}
    for key, value in d.items():
        if key == "op":
            continue
        if key in ("caller", "receiver", "contract_id"):
            call[key] = _hex_to_bytes(value)
        elif key == "commitment_point":
            call[key] = point_from_json(value)
        elif key == "aux_points":
            call[key] = AuxPoints(point_from_json(value["c1"]), point_from_json(value["c2"]))
        elif key == "secret" and isinstance(value, str):
            call[key] = int(value, 16)
        else:
            call[key] = value
    return call


def run_call(engine: EscrowEngine, call: dict[str, Any]) -> CallResult:
    """Dispatch one call to the engine, capturing a EscrowError as a failed result."""
    op = call["op"]
    try:
        if op == "open":
            value = engine.open(
                call["caller"],
                call["receiver"],
                call["commitment_point"],
                call["aux_points"],
                call["timelock"],
                call["amount"],
            )
        elif op == "withdraw":
            value = engine.withdraw(call["caller"], call["contract_id"], call["secret"])
        elif op == "refund":
            value = engine.refund(call["caller"], call["contract_id"])
        else:
            raise EscrowError(ErrorCode.INVALID_FORMAT, f"unknown op: {op}")
    except EscrowError as exc:
        return CallResult(False, exc)
    return CallResult(True, None, value)


def result_to_json(result: CallResult) -> dict[str, Any]:
    value = result.value
    if isinstance(value, bytes):
        value = value.hex()
    return {"ok": result.ok, "error": result.error_name, "result": value}


def engine_state_to_json(engine: EscrowEngine) -> dict[str, Any]:
    return state_to_json(engine.store, engine.ledger, engine.clock.now(), engine.oracle.name)


def engine_from_json(d: dict[str, Any]) -> EscrowEngine:
    store, ledger, now, curve = state_from_json(d)
    return EscrowEngine(
        store=store,
        oracle=oracle_for(curve),
        ledger=ledger,
        clock=ManualClock(now),
        sink=MemoryEventSink(),
    )
