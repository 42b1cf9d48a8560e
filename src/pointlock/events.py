"""Event sinks for escrow notifications."""

from __future__ import annotations

import logging
from typing import List, Protocol, Sequence

from .types import EscrowEvent, EscrowOpened, EscrowRefunded, EscrowWithdrawn

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    def emit(self, event: EscrowEvent) -> None: ...


def describe(event: EscrowEvent) -> str:
    cid = event.contract_id.hex()
    if isinstance(event, EscrowOpened):
        return (
            f"opened {cid} sender={event.sender.hex()} receiver={event.receiver.hex()} "
            f"amount={event.amount} timelock={event.timelock}"
        )
    if isinstance(event, EscrowWithdrawn):
        return (
            f"withdrawn {cid} claimant={event.claimant.hex()} "
            f"receiver_share={event.receiver_share} claimant_share={event.claimant_share} "
            f"retained={event.retained}"
        )
    if isinstance(event, EscrowRefunded):
        return f"refunded {cid} sender={event.sender.hex()} amount={event.amount}"
    return f"{event.kind} {cid}"


class LoggingEventSink:
    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    def emit(self, event: EscrowEvent) -> None:
        logger.log(self.level, "%s", describe(event))


class MemoryEventSink:
    def __init__(self) -> None:
        self.events: List[EscrowEvent] = []

    def emit(self, event: EscrowEvent) -> None:
        self.events.append(event)

    def kinds(self) -> List[str]:
        return [e.kind for e in self.events]


class FanoutEventSink:
    """Deliver each event to every sink, in order."""

    def __init__(self, sinks: Sequence[EventSink]) -> None:
        self.sinks = list(sinks)

    def emit(self, event: EscrowEvent) -> None:
        for sink in self.sinks:
            sink.emit(event)
