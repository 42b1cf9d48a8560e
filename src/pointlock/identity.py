"""Deterministic contract identifiers."""

from __future__ import annotations

from blake3 import blake3

from .config import AMOUNT_SIZE, COORD_SIZE, IDENTITY_SIZE, TIMELOCK_SIZE, U64_MAX, U256_MAX
from .errors import ErrorCode, EscrowError
from .types import AuxPoints, CurvePoint


def _uint(name: str, value: int, size: int, limit: int) -> bytes:
    if not isinstance(value, int) or isinstance(value, bool):
        raise EscrowError(ErrorCode.INVALID_FORMAT, f"{name} must be an integer")
    if value < 0 or value > limit:
        raise EscrowError(ErrorCode.INVALID_FORMAT, f"{name} out of range")
    return value.to_bytes(size, "big", signed=False)


def _identity(name: str, value: bytes) -> bytes:
    if not isinstance(value, (bytes, bytearray)) or len(value) != IDENTITY_SIZE:
        raise EscrowError(ErrorCode.INVALID_FORMAT, f"{name} must be {IDENTITY_SIZE} bytes")
    return bytes(value)


def _point(name: str, point: CurvePoint) -> bytes:
    return _uint(f"{name}.x", point.x, COORD_SIZE, U256_MAX) + _uint(
        f"{name}.y", point.y, COORD_SIZE, U256_MAX
    )


def contract_preimage(
    sender: bytes,
    receiver: bytes,
    amount: int,
    commitment_point: CurvePoint,
    aux_points: AuxPoints,
    timelock: int,
) -> bytes:
    """Fixed-width encoding of the creation parameters, in declaration order."""
    buf = bytearray()
    buf += _identity("sender", sender)
    buf += _identity("receiver", receiver)
    buf += _uint("amount", amount, AMOUNT_SIZE, U256_MAX)
    buf += _point("commitment_point", commitment_point)
    buf += _point("c1", aux_points.c1)
    buf += _point("c2", aux_points.c2)
    buf += _uint("timelock", timelock, TIMELOCK_SIZE, U64_MAX)
    return bytes(buf)


def derive_contract_id(
    sender: bytes,
    receiver: bytes,
    amount: int,
    commitment_point: CurvePoint,
    aux_points: AuxPoints,
    timelock: int,
) -> bytes:
    """BLAKE3-256 of the creation parameters.

    Identical parameters always give the same id, which is how duplicate
    creation is detected.
    """
    preimage = contract_preimage(sender, receiver, amount, commitment_point, aux_points, timelock)
    return blake3(preimage).digest()
