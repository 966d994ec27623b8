"""
Storage Services Package

Provides abstract interfaces and the in-memory implementation used by the
engine. Hosts plug their own record store in behind the same interfaces.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ObligationStorageInterface,
    StorageError,
    TransactionStorageInterface,
)
from src.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryObligationStorage,
    InMemoryTransactionStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ObligationStorageInterface",
    "TransactionStorageInterface",
    # Exceptions
    "DuplicateError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryObligationStorage",
    "InMemoryTransactionStorage",
]
