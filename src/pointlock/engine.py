"""Escrow engine: open, withdraw and refund point-locked escrows.

Every mutating call holds the contract's store lock from guard evaluation
through settlement, so two calls on the same id never interleave. Status
change and settlement form one unit: if any payout leg fails, the legs
already paid are reversed and the record is put back as it was.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, cast

from .clock import SystemClock, TimeSource
from .config import PAYOUT_SHARES, EngineConfig
from .curve import CurveOracle, oracle_for
from .errors import ErrorCode, EscrowError
from .events import EventSink, LoggingEventSink
from .guards import (
    OPEN_GUARDS,
    REFUND_GUARDS,
    WITHDRAW_GUARDS,
    CallContext,
    Guard,
    check,
    require_absent,
)
from .identity import derive_contract_id
from .ledger import InMemoryLedger, SettlementLedger
from .store import EscrowStore, InMemoryEscrowStore
from .types import (
    NOT_FOUND,
    AuxPoints,
    ContractLookup,
    CurvePoint,
    EscrowEvent,
    EscrowOpened,
    EscrowRecord,
    EscrowRefunded,
    EscrowStatus,
    EscrowWithdrawn,
    Payout,
    PublicView,
)

logger = logging.getLogger(__name__)


def _short(contract_id: bytes) -> str:
    return contract_id.hex()[:16]


class EscrowEngine:
    def __init__(
        self,
        store: EscrowStore,
        oracle: CurveOracle,
        ledger: SettlementLedger,
        clock: TimeSource,
        sink: Optional[EventSink] = None,
    ) -> None:
        self.store = store
        self.oracle = oracle
        self.ledger = ledger
        self.clock = clock
        self.sink = sink

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        store: Optional[EscrowStore] = None,
        ledger: Optional[SettlementLedger] = None,
        clock: Optional[TimeSource] = None,
        sink: Optional[EventSink] = None,
    ) -> "EscrowEngine":
        return cls(
            store=store if store is not None else InMemoryEscrowStore(),
            oracle=oracle_for(config.curve),
            ledger=ledger if ledger is not None else InMemoryLedger(),
            clock=clock if clock is not None else SystemClock(),
            sink=sink if sink is not None else LoggingEventSink(),
        )

    # --- operations ---

    def open(
        self,
        caller: bytes,
        receiver: bytes,
        commitment_point: CurvePoint,
        aux_points: AuxPoints,
        timelock: int,
        amount: int,
    ) -> bytes:
        """Record a new escrow funded by ``caller`` and return its id.

        The caller is expected to have moved ``amount`` into the contract
        pool already; this call only records the commitment.
        """
        now = self.clock.now()
        ctx = CallContext(
            caller=caller,
            now=now,
            oracle=self.oracle,
            amount=amount,
            timelock=timelock,
            commitment_point=commitment_point,
        )
        self._check(ctx, OPEN_GUARDS, "open")

        contract_id = derive_contract_id(caller, receiver, amount, commitment_point, aux_points, timelock)
        with self.store.locked(contract_id):
            self._check(
                CallContext(caller=caller, now=now, record=self.store.get(contract_id)),
                (require_absent,),
                "open",
            )
            record = EscrowRecord(
                sender=caller,
                receiver=receiver,
                amount=amount,
                commitment_point=commitment_point,
                aux_points=aux_points,
                timelock=timelock,
            )
            self.store.insert(contract_id, record)
            self._emit(
                EscrowOpened(
                    contract_id=contract_id,
                    sender=caller,
                    receiver=receiver,
                    amount=amount,
                    commitment_point=commitment_point,
                    aux_points=aux_points,
                    timelock=timelock,
                )
            )

        logger.info(f"opened {_short(contract_id)} amount={amount} timelock={timelock}")
        return contract_id

    def withdraw(self, caller: bytes, contract_id: bytes, secret: int) -> bool:
        """Claim an open escrow by revealing the scalar behind its commitment.

        Anyone holding the scalar may claim; the payout is split evenly
        between the receiver and the caller, and an odd unit stays with the
        contract pool.
        """
        with self.store.locked(contract_id):
            record = self.store.get(contract_id)
            ctx = CallContext(
                caller=caller,
                now=self.clock.now(),
                record=record,
                oracle=self.oracle,
                secret=secret,
            )
            self._check(ctx, WITHDRAW_GUARDS, "withdraw")
            record = cast(EscrowRecord, record)

            share = record.amount // PAYOUT_SHARES
            retained = record.amount - share * PAYOUT_SHARES
            self._settle(
                contract_id,
                record,
                EscrowStatus.WITHDRAWN,
                [Payout(record.receiver, share), Payout(caller, share)],
                retained=retained,
            )
            self._emit(
                EscrowWithdrawn(
                    contract_id=contract_id,
                    claimant=caller,
                    receiver=record.receiver,
                    receiver_share=share,
                    claimant_share=share,
                    retained=retained,
                )
            )

        logger.info(f"withdrawn {_short(contract_id)} share={share} retained={retained}")
        return True

    def refund(self, caller: bytes, contract_id: bytes) -> bool:
        """Return the whole amount to the sender once the timelock has passed."""
        with self.store.locked(contract_id):
            record = self.store.get(contract_id)
            ctx = CallContext(caller=caller, now=self.clock.now(), record=record)
            self._check(ctx, REFUND_GUARDS, "refund")
            record = cast(EscrowRecord, record)

            self._settle(
                contract_id,
                record,
                EscrowStatus.REFUNDED,
                [Payout(record.sender, record.amount)],
            )
            self._emit(EscrowRefunded(contract_id=contract_id, sender=record.sender, amount=record.amount))

        logger.info(f"refunded {_short(contract_id)} amount={record.amount}")
        return True

    # --- queries ---

    def get_contract(self, contract_id: bytes) -> ContractLookup:
        record = self.store.get(contract_id)
        if record is None:
            return NOT_FOUND
        return PublicView.of(contract_id, record)

    def contract_exists(self, contract_id: bytes) -> bool:
        return self.store.exists(contract_id)

    def contracts(self) -> List[PublicView]:
        return [PublicView.of(cid, record) for cid, record in self.store.items()]

    # --- internals ---

    def _check(self, ctx: CallContext, guards: Sequence[Guard], op: str) -> None:
        try:
            check(ctx, guards)
        except EscrowError as exc:
            logger.debug(f"{op} rejected: {exc}")
            raise

    def _settle(
        self,
        contract_id: bytes,
        record: EscrowRecord,
        status: EscrowStatus,
        payouts: Sequence[Payout],
        retained: int = 0,
    ) -> None:
        """Commit ``status`` and pay out; on any failure undo both.

        Every step after the status change (each payout leg, then retaining
        the remainder) runs under one rollback: completed legs are reversed
        newest first and the original record is put back.
        """
        self.store.set_status(contract_id, status)
        paid: List[Payout] = []
        try:
            for payout in payouts:
                if payout.amount == 0:
                    continue
                self.ledger.transfer(contract_id, payout.recipient, payout.amount)
                paid.append(payout)
            if retained:
                self.ledger.retain(contract_id, retained)
        except Exception as exc:
            try:
                self._unwind(contract_id, paid)
            finally:
                self.store.restore(contract_id, record)
            logger.warning(f"settlement of {_short(contract_id)} failed, rolled back: {exc}")
            if isinstance(exc, EscrowError):
                raise
            raise EscrowError(ErrorCode.TRANSFER_FAILED, str(exc)) from exc

    def _unwind(self, contract_id: bytes, paid: Sequence[Payout]) -> None:
        for payout in reversed(paid):
            try:
                self.ledger.reverse(contract_id, payout.recipient, payout.amount)
            except Exception:
                logger.exception(
                    f"could not reverse {payout.amount} to {payout.recipient.hex()[:16]} "
                    f"for {_short(contract_id)}"
                )

    def _emit(self, event: EscrowEvent) -> None:
        if self.sink is None:
            return
        try:
            self.sink.emit(event)
        except Exception:
            logger.exception(f"event sink failed for {event.kind} {_short(event.contract_id)}")
