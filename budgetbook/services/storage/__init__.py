"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The in-memory backend is the default; Google Sheets is the persistent one.
"""

from budgetbook.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    MonthStorageInterface,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
    YearlyStorageInterface,
)
from budgetbook.services.storage.memory import (
    InMemoryMonthStorage,
    InMemoryTransactionStorage,
    InMemoryYearlyStorage,
)

__all__ = [
    # Interfaces
    "MonthStorageInterface",
    "TransactionStorageInterface",
    "YearlyStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryMonthStorage",
    "InMemoryTransactionStorage",
    "InMemoryYearlyStorage",
]
