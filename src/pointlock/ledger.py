"""Settlement ledger interface and an in-process implementation."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol, Set

from .errors import ErrorCode, EscrowError

logger = logging.getLogger(__name__)


class SettlementLedger(Protocol):
    def transfer(self, escrow_id: bytes, to: bytes, amount: int) -> None: ...

    def reverse(self, escrow_id: bytes, to: bytes, amount: int) -> None: ...

    def retain(self, escrow_id: bytes, amount: int) -> None: ...


@dataclass(frozen=True)
class LedgerEntry:
    escrow_id: bytes
    account: bytes
    amount: int  # negative for reversals


class InMemoryLedger:
    """Account balances plus the contract pool holding escrowed value.

    ``lock`` moves a sender's funds into the pool before an escrow is
    opened; ``transfer`` pays out of the pool. Identities in ``blocked``
    refuse incoming transfers, which lets callers exercise settlement
    failures.
    """

    def __init__(
        self,
        balances: Optional[Dict[bytes, int]] = None,
        pool: int = 0,
        retained: int = 0,
        blocked: Optional[Iterable[bytes]] = None,
    ) -> None:
        self.balances: Dict[bytes, int] = dict(balances or {})
        self.pool = pool
        self.retained = retained
        self.blocked: Set[bytes] = set(blocked or ())
        self.entries: List[LedgerEntry] = []
        self._mutex = threading.Lock()

    def balance_of(self, account: bytes) -> int:
        return self.balances.get(account, 0)

    def credit(self, account: bytes, amount: int) -> None:
        if amount < 0:
            raise EscrowError(ErrorCode.INVALID_AMOUNT, "credit amount must be >= 0")
        with self._mutex:
            self.balances[account] = self.balances.get(account, 0) + amount

    def lock(self, sender: bytes, amount: int) -> None:
        """Move ``amount`` from ``sender`` into the contract pool."""
        if amount <= 0:
            raise EscrowError(ErrorCode.INVALID_AMOUNT, "lock amount must be > 0")
        with self._mutex:
            balance = self.balances.get(sender, 0)
            if balance < amount:
                raise EscrowError(ErrorCode.INSUFFICIENT_BALANCE, "insufficient balance")
            self.balances[sender] = balance - amount
            self.pool += amount

    def transfer(self, escrow_id: bytes, to: bytes, amount: int) -> None:
        with self._mutex:
            if to in self.blocked:
                raise EscrowError(ErrorCode.TRANSFER_FAILED, f"recipient {to.hex()[:16]} rejected transfer")
            if amount < 0 or amount > self.pool:
                raise EscrowError(ErrorCode.TRANSFER_FAILED, "contract pool cannot cover transfer")
            self.pool -= amount
            self.balances[to] = self.balances.get(to, 0) + amount
            self.entries.append(LedgerEntry(escrow_id, to, amount))
        logger.debug(f"transfer {amount} to {to.hex()[:16]} for {escrow_id.hex()[:16]}")

    def reverse(self, escrow_id: bytes, to: bytes, amount: int) -> None:
        with self._mutex:
            self.balances[to] = self.balances.get(to, 0) - amount
            self.pool += amount
            self.entries.append(LedgerEntry(escrow_id, to, -amount))
        logger.debug(f"reversed {amount} from {to.hex()[:16]} for {escrow_id.hex()[:16]}")

    def retain(self, escrow_id: bytes, amount: int) -> None:
        with self._mutex:
            self.retained += amount

    def disbursed(self, escrow_id: bytes) -> int:
        """Net value paid out for one escrow."""
        return sum(e.amount for e in self.entries if e.escrow_id == escrow_id)
