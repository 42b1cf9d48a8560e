"""
Elliptic-curve oracle for commitment checks.

Group operations are delegated to ``coincurve`` (libsecp256k1); nothing in
this module implements curve arithmetic. The oracle only converts between
affine integer coordinates and the library's SEC 1 encodings and applies
the conventions the escrow relies on:

- scalars are reduced modulo the group order,
- ``0 · P`` and ``k · O`` give the point at infinity, encoded ``(0, 0)``,
- input points must lie on the curve.

References
----------
- SEC 2 v2 §2.4.1  secp256k1 domain parameters
"""

from __future__ import annotations

from typing import Protocol

from coincurve import PrivateKey as _SK, PublicKey as _PK

from .config import COORD_SIZE, CURVE_SECP256K1, U256_MAX
from .errors import ErrorCode, EscrowError
from .types import CurvePoint

# ── secp256k1 constants ─────────────────────────────────────────────────
ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
FIELD_PRIME = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
GX = 0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798
GY = 0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8


class CurveOracle(Protocol):
    name: str

    @property
    def base_point(self) -> CurvePoint: ...

    def scalar_mul(self, scalar: int, point: CurvePoint) -> CurvePoint: ...

    def is_on_curve(self, point: CurvePoint) -> bool: ...


def _encode_uncompressed(point: CurvePoint) -> bytes:
    if not (0 <= point.x <= U256_MAX and 0 <= point.y <= U256_MAX):
        raise EscrowError(ErrorCode.INVALID_POINT, "coordinate out of range")
    return b"\x04" + point.x.to_bytes(COORD_SIZE, "big") + point.y.to_bytes(COORD_SIZE, "big")


def _decode_uncompressed(pk: _PK) -> CurvePoint:
    raw = pk.format(compressed=False)
    return CurvePoint(
        int.from_bytes(raw[1:33], "big"),
        int.from_bytes(raw[33:65], "big"),
    )


class Secp256k1Oracle:
    """secp256k1 group law via libsecp256k1."""

    name = CURVE_SECP256K1

    def __init__(self) -> None:
        self._base = CurvePoint(GX, GY)

    @property
    def base_point(self) -> CurvePoint:
        return self._base

    def _to_public_key(self, point: CurvePoint) -> _PK:
        try:
            return _PK(_encode_uncompressed(point))
        except ValueError as exc:
            raise EscrowError(ErrorCode.INVALID_POINT, "point not on curve") from exc

    def is_on_curve(self, point: CurvePoint) -> bool:
        if point.is_infinity():
            return True
        try:
            self._to_public_key(point)
        except EscrowError:
            return False
        return True

    def scalar_mul(self, scalar: int, point: CurvePoint) -> CurvePoint:
        """Return ``scalar · point``."""
        if not (0 <= scalar <= U256_MAX):
            raise EscrowError(ErrorCode.INVALID_FORMAT, "scalar must be a 256-bit unsigned integer")
        k = scalar % ORDER
        if k == 0 or point.is_infinity():
            return CurvePoint.infinity()
        k_bytes = k.to_bytes(COORD_SIZE, "big")
        if point == self._base:
            return _decode_uncompressed(_SK(k_bytes).public_key)
        return _decode_uncompressed(self._to_public_key(point).multiply(k_bytes))


def commit(scalar: int, oracle: CurveOracle) -> CurvePoint:
    """Commitment point ``scalar · G`` a creator publishes for ``scalar``."""
    return oracle.scalar_mul(scalar, oracle.base_point)


_ORACLES = {
    CURVE_SECP256K1: Secp256k1Oracle,
}


def oracle_for(name: str) -> CurveOracle:
    try:
        factory = _ORACLES[name.lower()]
    except KeyError:
        raise EscrowError(ErrorCode.INVALID_FORMAT, f"unsupported curve: {name}") from None
    return factory()
