"""Time sources consulted by the timelock guards."""

from __future__ import annotations

import threading
import time
from typing import Protocol

from .errors import ErrorCode, EscrowError


class TimeSource(Protocol):
    def now(self) -> int: ...


class SystemClock:
    """Wall clock in unix seconds, never going backwards."""

    def __init__(self) -> None:
        self._last = 0
        self._mutex = threading.Lock()

    def now(self) -> int:
        with self._mutex:
            self._last = max(self._last, int(time.time()))
            return self._last


class ManualClock:
    def __init__(self, start: int = 0) -> None:
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise EscrowError(ErrorCode.INVALID_TIMELOCK, "clock cannot move backwards")
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            raise EscrowError(ErrorCode.INVALID_TIMELOCK, "clock cannot move backwards")
        self._now = timestamp
