"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the in-memory store for Google Sheets (or a real database)
2. Keep the engines and flows decoupled from storage details
3. Test flows without any network access

Every read is filtered by owner. A row that exists but belongs to
someone else is reported exactly like a row that does not exist.

Batch methods (`save_*s`, `apply_*_orders`) are all-or-nothing: an
implementation checks every id before writing any of them.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from budgetbook.models.monthly import Month, Transaction
from budgetbook.models.yearly import SectionKey, YearlyLineItem, YearlySubsection


class MonthStorageInterface(ABC):
    """Storage operations for months."""

    @abstractmethod
    async def save_month(self, month: Month) -> Month:
        """
        Insert a new month.

        Raises:
            DuplicateError: If the owner already has a month at (year, month_index)
        """
        pass

    @abstractmethod
    async def get_month(self, owner_id: UUID, month_id: UUID) -> Optional[Month]:
        """Retrieve a month by id, or None when missing or not owned."""
        pass

    @abstractmethod
    async def find_month(self, owner_id: UUID, year: int, month_index: int) -> Optional[Month]:
        """Retrieve the owner's month at (year, month_index), if any."""
        pass

    @abstractmethod
    async def list_months(self, owner_id: UUID) -> list[Month]:
        """All of the owner's months, oldest first."""
        pass

    @abstractmethod
    async def update_month(self, month: Month) -> Month:
        """
        Replace a stored month.

        Raises:
            NotFoundError: If the month doesn't exist for its owner
        """
        pass


class TransactionStorageInterface(ABC):
    """Storage operations for monthly transactions."""

    @abstractmethod
    async def save_transactions(self, transactions: list[Transaction]) -> list[Transaction]:
        """Insert new transactions in one batch."""
        pass

    @abstractmethod
    async def get_transaction(self, owner_id: UUID, transaction_id: UUID) -> Optional[Transaction]:
        """Retrieve a transaction, or None when missing or not owned."""
        pass

    @abstractmethod
    async def list_for_month(self, owner_id: UUID, month_id: UUID) -> list[Transaction]:
        """A month's transactions sorted by order."""
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> Transaction:
        """
        Replace a stored transaction.

        Raises:
            NotFoundError: If it doesn't exist for its owner
        """
        pass

    @abstractmethod
    async def delete_transaction(self, owner_id: UUID, transaction_id: UUID) -> bool:
        """Delete a transaction. Returns False if nothing was deleted."""
        pass

    @abstractmethod
    async def apply_orders(self, owner_id: UUID, orders: dict[UUID, float]) -> None:
        """
        Set `order` on many transactions at once.

        Raises:
            NotFoundError: If any id is missing or not owned (nothing is written)
        """
        pass


class YearlyStorageInterface(ABC):
    """Storage operations for the yearly worksheet."""

    # -- subsections ---------------------------------------------------------

    @abstractmethod
    async def save_subsections(self, subsections: list[YearlySubsection]) -> list[YearlySubsection]:
        pass

    @abstractmethod
    async def get_subsection(self, owner_id: UUID, subsection_id: UUID) -> Optional[YearlySubsection]:
        pass

    @abstractmethod
    async def list_subsections(
        self,
        owner_id: UUID,
        year: int,
        section_key: Optional[SectionKey] = None,
    ) -> list[YearlySubsection]:
        """Subsections for a year (optionally one section), sorted by order."""
        pass

    @abstractmethod
    async def update_subsection(self, subsection: YearlySubsection) -> YearlySubsection:
        pass

    @abstractmethod
    async def delete_subsection(self, owner_id: UUID, subsection_id: UUID) -> int:
        """
        Delete a subsection and every line item inside it.

        Returns the number of line items removed.

        Raises:
            NotFoundError: If the subsection doesn't exist for the owner
        """
        pass

    @abstractmethod
    async def apply_subsection_orders(self, owner_id: UUID, orders: dict[UUID, int]) -> None:
        pass

    # -- line items ----------------------------------------------------------

    @abstractmethod
    async def save_line_items(self, items: list[YearlyLineItem]) -> list[YearlyLineItem]:
        pass

    @abstractmethod
    async def get_line_item(self, owner_id: UUID, item_id: UUID) -> Optional[YearlyLineItem]:
        pass

    @abstractmethod
    async def list_line_items(
        self,
        owner_id: UUID,
        year: int,
        section_key: Optional[SectionKey] = None,
    ) -> list[YearlyLineItem]:
        """Line items for a year (optionally one section), sorted by order."""
        pass

    @abstractmethod
    async def update_line_item(self, item: YearlyLineItem) -> YearlyLineItem:
        pass

    @abstractmethod
    async def delete_line_item(self, owner_id: UUID, item_id: UUID) -> bool:
        pass

    @abstractmethod
    async def apply_line_item_orders(
        self,
        owner_id: UUID,
        orders: dict[UUID, int],
        containers: Optional[dict[UUID, Optional[UUID]]] = None,
    ) -> None:
        """
        Set `order` (and optionally `subsection_id`) on many items at once.

        `containers` maps item id -> new subsection id (None = section
        level). Used by moves so the container change and both
        renumberings land together.

        Raises:
            NotFoundError: If any id is missing or not owned (nothing is written)
        """
        pass

    @abstractmethod
    async def list_years(self, owner_id: UUID) -> list[int]:
        """Years with any subsection or line item, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage (or owned by someone else)."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
