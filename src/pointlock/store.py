"""Escrow record storage."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import ContextManager, Dict, Iterator, List, Optional, Protocol, Tuple

from .config import LOCK_STRIPES
from .errors import ErrorCode, EscrowError
from .types import EscrowRecord, EscrowStatus


class EscrowStore(Protocol):
    def exists(self, contract_id: bytes) -> bool: ...

    def insert(self, contract_id: bytes, record: EscrowRecord) -> None: ...

    def get(self, contract_id: bytes) -> Optional[EscrowRecord]: ...

    def set_status(self, contract_id: bytes, status: EscrowStatus) -> EscrowRecord: ...

    def restore(self, contract_id: bytes, record: EscrowRecord) -> None: ...

    def locked(self, contract_id: bytes) -> ContextManager[None]: ...

    def items(self) -> List[Tuple[bytes, EscrowRecord]]: ...


class InMemoryEscrowStore:
    """Dict-backed store with striped per-key locks.

    Writers for one id serialize on that id's stripe; ids on different
    stripes never contend. Readers take no lock: records are immutable and
    a status change swaps the whole record, so ``get`` always returns a
    fully committed value.
    """

    def __init__(self, stripes: int = LOCK_STRIPES) -> None:
        self._records: Dict[bytes, EscrowRecord] = {}
        self._locks = [threading.RLock() for _ in range(stripes)]

    def _lock_for(self, contract_id: bytes) -> threading.RLock:
        return self._locks[contract_id[0] % len(self._locks)] if contract_id else self._locks[0]

    @contextmanager
    def locked(self, contract_id: bytes) -> Iterator[None]:
        with self._lock_for(contract_id):
            yield

    def exists(self, contract_id: bytes) -> bool:
        return contract_id in self._records

    def get(self, contract_id: bytes) -> Optional[EscrowRecord]:
        return self._records.get(contract_id)

    def insert(self, contract_id: bytes, record: EscrowRecord) -> None:
        with self.locked(contract_id):
            if contract_id in self._records:
                raise EscrowError(ErrorCode.DUPLICATE_CONTRACT, "contract already exists")
            self._records[contract_id] = record

    def set_status(self, contract_id: bytes, status: EscrowStatus) -> EscrowRecord:
        with self.locked(contract_id):
            current = self._records.get(contract_id)
            if current is None:
                raise EscrowError(ErrorCode.CONTRACT_NOT_FOUND, "contract not found")
            if current.status.is_final and status != current.status:
                raise EscrowError(ErrorCode.ESCROW_WRONG_STATE, "contract already finalized")
            updated = current.with_status(status)
            self._records[contract_id] = updated
            return updated

    def restore(self, contract_id: bytes, record: EscrowRecord) -> None:
        """Put back a record staged by an aborted transition."""
        with self.locked(contract_id):
            if contract_id not in self._records:
                raise EscrowError(ErrorCode.CONTRACT_NOT_FOUND, "contract not found")
            self._records[contract_id] = record

    def items(self) -> List[Tuple[bytes, EscrowRecord]]:
        return list(self._records.items())

    def __len__(self) -> int:
        return len(self._records)
