"""Preconditions for escrow operations.

Each guard inspects a :class:`CallContext` and raises :class:`EscrowError`
with its own error code. Operations declare their guards as an ordered
tuple; :func:`check` runs them before any mutation and stops at the first
failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .config import U256_MAX
from .curve import ORDER, CurveOracle
from .errors import ErrorCode, EscrowError
from .types import CurvePoint, EscrowRecord, EscrowStatus


@dataclass(frozen=True)
class CallContext:
    caller: bytes
    now: int
    record: Optional[EscrowRecord] = None
    oracle: Optional[CurveOracle] = None
    secret: Optional[int] = None
    amount: int = 0
    timelock: int = 0
    commitment_point: Optional[CurvePoint] = None


Guard = Callable[[CallContext], None]


def _record(ctx: CallContext) -> EscrowRecord:
    if ctx.record is None:
        raise EscrowError(ErrorCode.CONTRACT_NOT_FOUND, "contract not found")
    return ctx.record


# --- creation ---


def require_positive_amount(ctx: CallContext) -> None:
    if ctx.amount <= 0:
        raise EscrowError(ErrorCode.INVALID_AMOUNT, "escrow amount must be > 0")
    if ctx.amount > U256_MAX:
        raise EscrowError(ErrorCode.INVALID_AMOUNT, "escrow amount exceeds u256")


def require_future_timelock(ctx: CallContext) -> None:
    if ctx.timelock <= ctx.now:
        raise EscrowError(ErrorCode.INVALID_TIMELOCK, "timelock must be in the future")


def require_commitment_on_curve(ctx: CallContext) -> None:
    point = ctx.commitment_point
    if point is None or point.is_infinity():
        raise EscrowError(ErrorCode.INVALID_POINT, "commitment cannot be the point at infinity")
    if ctx.oracle is None or not ctx.oracle.is_on_curve(point):
        raise EscrowError(ErrorCode.INVALID_POINT, "commitment is not on the curve")


def require_absent(ctx: CallContext) -> None:
    if ctx.record is not None:
        raise EscrowError(ErrorCode.DUPLICATE_CONTRACT, "contract already exists")


# --- settlement ---


def require_record(ctx: CallContext) -> None:
    _record(ctx)


def require_secret(ctx: CallContext) -> None:
    record = _record(ctx)
    secret = ctx.secret
    if ctx.oracle is None or not isinstance(secret, int) or not (0 <= secret <= U256_MAX):
        raise EscrowError(ErrorCode.SECRET_MISMATCH, "secret does not open commitment")
    # k = 0 mod n only ever opens the point at infinity
    if secret % ORDER == 0:
        raise EscrowError(ErrorCode.SECRET_MISMATCH, "secret does not open commitment")
    if ctx.oracle.scalar_mul(secret, ctx.oracle.base_point) != record.commitment_point:
        raise EscrowError(ErrorCode.SECRET_MISMATCH, "secret does not open commitment")


def require_open(ctx: CallContext) -> None:
    if _record(ctx).status != EscrowStatus.OPEN:
        raise EscrowError(ErrorCode.ALREADY_FINALIZED, "contract already finalized")


def require_before_timelock(ctx: CallContext) -> None:
    if ctx.now >= _record(ctx).timelock:
        raise EscrowError(ErrorCode.TIMELOCK_EXPIRED, "timelock expired")


def require_sender(ctx: CallContext) -> None:
    if ctx.caller != _record(ctx).sender:
        raise EscrowError(ErrorCode.NOT_SENDER, "only the sender may refund")


def require_timelock_passed(ctx: CallContext) -> None:
    if ctx.now < _record(ctx).timelock:
        raise EscrowError(ErrorCode.TIMELOCK_NOT_YET_PASSED, "timelock not yet passed")


OPEN_GUARDS: tuple[Guard, ...] = (
    require_positive_amount,
    require_future_timelock,
    require_commitment_on_curve,
)

WITHDRAW_GUARDS: tuple[Guard, ...] = (
    require_record,
    require_secret,
    require_open,
    require_before_timelock,
)

REFUND_GUARDS: tuple[Guard, ...] = (
    require_record,
    require_sender,
    require_open,
    require_timelock_passed,
)


def check(ctx: CallContext, guards: Sequence[Guard]) -> None:
    for guard in guards:
        guard(ctx)
