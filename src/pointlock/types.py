"""Core types for the point-locked escrow.

An escrow is identified by the digest of its creation parameters and holds
one record for its whole lifetime. Records are immutable values: a status
change replaces the record instead of mutating it in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Union


@dataclass(frozen=True)
class CurvePoint:
    """Affine point (x, y). ``(0, 0)`` stands for the point at infinity."""

    x: int
    y: int

    @classmethod
    def infinity(cls) -> "CurvePoint":
        return cls(0, 0)

    def is_infinity(self) -> bool:
        return self.x == 0 and self.y == 0


@dataclass(frozen=True)
class AuxPoints:
    """Two auxiliary point pairs carried for downstream protocols.

    The escrow never interprets them; they only feed the identifier and are
    echoed back by queries.
    """

    c1: CurvePoint
    c2: CurvePoint


class EscrowStatus(IntEnum):
    OPEN = 0
    WITHDRAWN = 1
    REFUNDED = 2

    @property
    def is_final(self) -> bool:
        return self is not EscrowStatus.OPEN


@dataclass(frozen=True)
class EscrowRecord:
    sender: bytes
    receiver: bytes
    amount: int
    commitment_point: CurvePoint
    aux_points: AuxPoints
    timelock: int
    status: EscrowStatus = EscrowStatus.OPEN

    @property
    def withdrawn(self) -> bool:
        return self.status == EscrowStatus.WITHDRAWN

    @property
    def refunded(self) -> bool:
        return self.status == EscrowStatus.REFUNDED

    def with_status(self, status: EscrowStatus) -> "EscrowRecord":
        return replace(self, status=status)


@dataclass(frozen=True)
class PublicView:
    contract_id: bytes
    sender: bytes
    receiver: bytes
    amount: int
    commitment_point: CurvePoint
    aux_points: AuxPoints
    timelock: int
    withdrawn: bool
    refunded: bool

    @classmethod
    def of(cls, contract_id: bytes, record: EscrowRecord) -> "PublicView":
        return cls(
            contract_id=contract_id,
            sender=record.sender,
            receiver=record.receiver,
            amount=record.amount,
            commitment_point=record.commitment_point,
            aux_points=record.aux_points,
            timelock=record.timelock,
            withdrawn=record.withdrawn,
            refunded=record.refunded,
        )


class _NotFound:
    """Sentinel returned by queries on an unknown contract id."""

    _instance: "_NotFound | None" = None

    def __new__(cls) -> "_NotFound":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = _NotFound()

ContractLookup = Union[PublicView, _NotFound]


@dataclass(frozen=True)
class Payout:
    recipient: bytes
    amount: int


# --- Events ---


@dataclass(frozen=True)
class EscrowOpened:
    contract_id: bytes
    sender: bytes
    receiver: bytes
    amount: int
    commitment_point: CurvePoint
    aux_points: AuxPoints
    timelock: int
    kind: str = field(default="opened", init=False)


@dataclass(frozen=True)
class EscrowWithdrawn:
    contract_id: bytes
    claimant: bytes
    receiver: bytes
    receiver_share: int
    claimant_share: int
    retained: int
    kind: str = field(default="withdrawn", init=False)


@dataclass(frozen=True)
class EscrowRefunded:
    contract_id: bytes
    sender: bytes
    amount: int
    kind: str = field(default="refunded", init=False)


EscrowEvent = Union[EscrowOpened, EscrowWithdrawn, EscrowRefunded]
