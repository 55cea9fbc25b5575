"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements an in-memory backend, but designed to be swappable.
"""

from budgetwise.services.storage.interface import (
    AllocationNotFoundError,
    BudgetNotFoundError,
    BudgetStorageInterface,
    DuplicateError,
    EventSinkInterface,
    NotFoundError,
    StorageError,
    TransactionNotFoundError,
    TransactionStorageInterface,
    VersionConflictError,
    WalletStorageInterface,
)
from budgetwise.services.storage.memory import (
    InMemoryBudgetStorage,
    InMemoryEventSink,
    InMemoryStorage,
    InMemoryTransactionStorage,
    InMemoryWalletStorage,
)

__all__ = [
    # Interfaces
    "BudgetStorageInterface",
    "EventSinkInterface",
    "TransactionStorageInterface",
    "WalletStorageInterface",
    # Exceptions
    "AllocationNotFoundError",
    "BudgetNotFoundError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    "TransactionNotFoundError",
    "VersionConflictError",
    # In-memory implementation
    "InMemoryBudgetStorage",
    "InMemoryEventSink",
    "InMemoryStorage",
    "InMemoryTransactionStorage",
    "InMemoryWalletStorage",
]
