"""Canonical state digest (v1)."""
from __future__ import annotations

from typing import Any

from blake3 import blake3

from .encoding import encode_record, record_from_json


def _hex_to_bytes(value: str | None) -> bytes:
    if value is None:
        return b""
    if not isinstance(value, str):
        raise TypeError("hex value must be string")
    v = value[2:] if value.startswith(("0x", "0X")) else value
    if v == "":
        return b""
    return bytes.fromhex(v)


def _u256_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u256 must be non-negative")
    return int(value).to_bytes(32, "big", signed=False)


def compute_state_digest(state: dict[str, Any]) -> str:
    """Compute state digest v1 from a serialized engine state.

    Escrows are sorted by id and hashed in their persisted record layout,
    followed by the ledger pool, retained remainder and account balances
    sorted by account. Hashed with BLAKE3-256.
    """
    buf = bytearray()
    buf += _u256_be(int(state.get("now", 0)))

    escrows = state.get("escrows", []) if isinstance(state, dict) else []
    sortable = []
    for entry in escrows:
        cid = _hex_to_bytes(entry.get("id", ""))
        if len(cid) != 32:
            raise ValueError(f"contract id must be 32 bytes, got {len(cid)}")
        sortable.append((cid, entry))
    sortable.sort(key=lambda x: x[0])
    for cid, entry in sortable:
        buf += cid
        buf += encode_record(record_from_json(entry))

    ledger = state.get("ledger", {}) if isinstance(state, dict) else {}
    buf += _u256_be(int(ledger.get("pool", 0)))
    buf += _u256_be(int(ledger.get("retained", 0)))
    balances = sorted(
        (_hex_to_bytes(b.get("account", "")), int(b.get("balance", 0)))
        for b in ledger.get("balances", [])
    )
    for account, balance in balances:
        buf += account
        buf += _u256_be(balance)

    return blake3(buf).hexdigest()
