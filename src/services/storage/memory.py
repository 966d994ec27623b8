"""
In-Memory Storage Implementation

Dictionary-backed stores keyed by record ID. Used by the tests and by any
host that keeps its records in process and syncs them elsewhere.

Each store guards its dictionary with its own lock, so single-record writes
from a timer thread and the UI thread never interleave. Records are copied
on the way in and out; callers cannot mutate stored state by accident.
"""

import threading
from typing import Optional
from uuid import UUID

from src.models.audit import AuditEvent
from src.models.finance import (
    AccountReassignment,
    ScheduledTransaction,
    Transaction,
)
from src.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ObligationStorageInterface,
    TransactionStorageInterface,
)


class InMemoryObligationStorage(ObligationStorageInterface):
    """Obligations held in a dict."""

    def __init__(self, obligations: Optional[list[ScheduledTransaction]] = None):
        self._records: dict[str, ScheduledTransaction] = {}
        self._lock = threading.RLock()
        for obligation in obligations or []:
            self.upsert(obligation)

    def get(self, obligation_id: str) -> Optional[ScheduledTransaction]:
        with self._lock:
            record = self._records.get(obligation_id)
            return record.model_copy(deep=True) if record else None

    def upsert(self, obligation: ScheduledTransaction) -> ScheduledTransaction:
        with self._lock:
            self._records[obligation.id] = obligation.model_copy(deep=True)
        return obligation

    def delete(self, obligation_id: str) -> bool:
        with self._lock:
            return self._records.pop(obligation_id, None) is not None

    def list_all(self) -> list[ScheduledTransaction]:
        with self._lock:
            return [record.model_copy(deep=True) for record in self._records.values()]

    def list_by_series(self, series_id: str) -> list[ScheduledTransaction]:
        with self._lock:
            return [
                record.model_copy(deep=True)
                for record in self._records.values()
                if record.series_id == series_id
            ]


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Transactions held in a dict."""

    def __init__(self, transactions: Optional[list[Transaction]] = None):
        self._records: dict[str, Transaction] = {}
        self._lock = threading.RLock()
        for transaction in transactions or []:
            self.add(transaction)

    def add(self, transaction: Transaction) -> Transaction:
        """Insert a new transaction; refuses an ID that already exists."""
        with self._lock:
            if transaction.id in self._records:
                raise DuplicateError(f"Transaction already exists: {transaction.id}")
            self._records[transaction.id] = transaction.model_copy(deep=True)
        return transaction

    def get(self, transaction_id: str) -> Optional[Transaction]:
        with self._lock:
            record = self._records.get(transaction_id)
            return record.model_copy(deep=True) if record else None

    def upsert(self, transaction: Transaction) -> Transaction:
        with self._lock:
            self._records[transaction.id] = transaction.model_copy(deep=True)
        return transaction

    def list_all(self) -> list[Transaction]:
        with self._lock:
            return [record.model_copy(deep=True) for record in self._records.values()]

    def list_by_account(self, account_id: str) -> list[Transaction]:
        with self._lock:
            return [
                record.model_copy(deep=True)
                for record in self._records.values()
                if record.account_id == account_id
            ]

    def apply_reassignment(self, command: AccountReassignment) -> int:
        wanted = set(command.transaction_ids) if command.transaction_ids is not None else None
        moved = 0
        with self._lock:
            for tx_id, record in list(self._records.items()):
                if record.account_id != command.source_account_id:
                    continue
                if wanted is not None and tx_id not in wanted:
                    continue
                self._records[tx_id] = record.model_copy(
                    update={"account_id": command.target_account_id}
                )
                moved += 1
        return moved


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []
        self._lock = threading.Lock()

    def append_event(self, event: AuditEvent) -> bool:
        with self._lock:
            self._events.append(event)
        return True

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        with self._lock:
            return [e for e in self._events if e.correlation_id == correlation_id]

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        with self._lock:
            return [
                e for e in self._events
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        with self._lock:
            return list(reversed(self._events))[:limit]
