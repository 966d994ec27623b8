"""Services package."""

from src.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryObligationStorage,
    InMemoryTransactionStorage,
    ObligationStorageInterface,
    StorageError,
    TransactionStorageInterface,
)

__all__ = [
    "AuditStorageInterface",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryObligationStorage",
    "InMemoryTransactionStorage",
    "ObligationStorageInterface",
    "StorageError",
    "TransactionStorageInterface",
]
