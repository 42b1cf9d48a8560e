"""pointlock error codes and exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCategory(IntEnum):
    SUCCESS = 0x00
    VALIDATION = 0x01
    AUTHORIZATION = 0x02
    RESOURCE = 0x03
    STATE = 0x04
    SECRET = 0x05
    TIME = 0x06
    INTERNAL = 0xFF


class ErrorCode(IntEnum):
    # Success
    SUCCESS = 0x0000

    # Validation
    INVALID_FORMAT = 0x0100
    INVALID_AMOUNT = 0x0105
    INVALID_TIMELOCK = 0x0108
    INVALID_POINT = 0x0109

    # Authorization
    NOT_SENDER = 0x0203

    # Resource
    INSUFFICIENT_BALANCE = 0x0300
    TRANSFER_FAILED = 0x0306

    # State
    CONTRACT_NOT_FOUND = 0x0400
    DUPLICATE_CONTRACT = 0x0401
    ALREADY_FINALIZED = 0x0402
    ESCROW_WRONG_STATE = 0x0403

    # Secret
    SECRET_MISMATCH = 0x0500

    # Time
    TIMELOCK_EXPIRED = 0x0600
    TIMELOCK_NOT_YET_PASSED = 0x0601

    # Internal
    INTERNAL_ERROR = 0xFF00
    UNKNOWN = 0xFFFF

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory(self.value >> 8)


@dataclass(frozen=True)
class EscrowError(Exception):
    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#06x}): {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen (Python 3.13 contextlib compat).
_EXCEPTION_ATTRS = frozenset(
    ("__traceback__", "__context__", "__cause__", "__suppress_context__", "__notes__")
)
_frozen_setattr = EscrowError.__setattr__


def _escrow_error_setattr(self: EscrowError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


EscrowError.__setattr__ = _escrow_error_setattr  # type: ignore[method-assign]
