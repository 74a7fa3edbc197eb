"""Services package."""

from budgetbook.services.storage import (
    ConnectionError,
    DuplicateError,
    InMemoryMonthStorage,
    InMemoryTransactionStorage,
    InMemoryYearlyStorage,
    MonthStorageInterface,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
    YearlyStorageInterface,
)

__all__ = [
    "ConnectionError",
    "DuplicateError",
    "InMemoryMonthStorage",
    "InMemoryTransactionStorage",
    "InMemoryYearlyStorage",
    "MonthStorageInterface",
    "NotFoundError",
    "StorageError",
    "TransactionStorageInterface",
    "YearlyStorageInterface",
]
