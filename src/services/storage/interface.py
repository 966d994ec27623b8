"""
Abstract Storage Interface

DESIGN DECISION: The engine only talks to storage through these interfaces.
This allows us to:
1. Plug in whatever keyed record store the app already has
2. Use in-memory storage for testing
3. Keep engine logic decoupled from storage implementation

The interface is intentionally simple: single-record upsert/delete plus the
few listings the engine needs. Every call is synchronous.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from src.models.audit import AuditEvent
from src.models.finance import (
    AccountReassignment,
    ScheduledTransaction,
    Transaction,
)


class ObligationStorageInterface(ABC):
    """
    Abstract interface for scheduled obligation storage.

    Writes are last-writer-wins at single-record granularity.
    """

    @abstractmethod
    def get(self, obligation_id: str) -> Optional[ScheduledTransaction]:
        """
        Retrieve an obligation by its ID.

        Returns:
            The obligation if found, None otherwise
        """
        pass

    @abstractmethod
    def upsert(self, obligation: ScheduledTransaction) -> ScheduledTransaction:
        """
        Insert or replace a single obligation.

        Returns:
            The stored obligation

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, obligation_id: str) -> bool:
        """
        Delete an obligation by ID.

        Returns:
            True if something was deleted
        """
        pass

    @abstractmethod
    def list_all(self) -> list[ScheduledTransaction]:
        """Return every stored obligation."""
        pass

    @abstractmethod
    def list_by_series(self, series_id: str) -> list[ScheduledTransaction]:
        """Return the members of a series (any order)."""
        pass


class TransactionStorageInterface(ABC):
    """
    Abstract interface for the transaction ledger.

    The engine reads transactions as snapshots. The only write it issues is
    the account reassignment batch command.
    """

    @abstractmethod
    def get(self, transaction_id: str) -> Optional[Transaction]:
        pass

    @abstractmethod
    def upsert(self, transaction: Transaction) -> Transaction:
        pass

    @abstractmethod
    def list_all(self) -> list[Transaction]:
        pass

    @abstractmethod
    def list_by_account(self, account_id: str) -> list[Transaction]:
        pass

    @abstractmethod
    def apply_reassignment(self, command: AccountReassignment) -> int:
        """
        Move transactions from one account to another.

        Returns:
            Number of transactions rewritten
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get all events for a specific entity, in chronological order."""
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
