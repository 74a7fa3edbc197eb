"""
In-Memory Storage Implementation

Dict-backed stores used by default and by the test suite. Rows are
copied on the way in and on the way out so callers can never mutate
stored state by accident.
"""

from typing import Optional
from uuid import UUID

from budgetbook.models.monthly import Month, Transaction
from budgetbook.models.yearly import SectionKey, YearlyLineItem, YearlySubsection
from budgetbook.services.storage.interface import (
    DuplicateError,
    MonthStorageInterface,
    NotFoundError,
    TransactionStorageInterface,
    YearlyStorageInterface,
)


def _owned(row, owner_id: UUID) -> bool:
    return row is not None and row.owner_id == owner_id


def _copy(row):
    return row.model_copy(deep=True)


class InMemoryMonthStorage(MonthStorageInterface):
    """Months keyed by id."""

    def __init__(self):
        self._months: dict[UUID, Month] = {}

    async def save_month(self, month: Month) -> Month:
        existing = await self.find_month(month.owner_id, month.year, month.month_index)
        if existing is not None:
            raise DuplicateError(
                f"Month already exists: {month.year}-{month.month_index + 1:02d}"
            )
        self._months[month.id] = _copy(month)
        return _copy(month)

    async def get_month(self, owner_id: UUID, month_id: UUID) -> Optional[Month]:
        month = self._months.get(month_id)
        return _copy(month) if _owned(month, owner_id) else None

    async def find_month(self, owner_id: UUID, year: int, month_index: int) -> Optional[Month]:
        for month in self._months.values():
            if month.owner_id == owner_id and month.key == (year, month_index):
                return _copy(month)
        return None

    async def list_months(self, owner_id: UUID) -> list[Month]:
        months = [_copy(m) for m in self._months.values() if m.owner_id == owner_id]
        return sorted(months, key=lambda m: m.key)

    async def update_month(self, month: Month) -> Month:
        if not _owned(self._months.get(month.id), month.owner_id):
            raise NotFoundError(f"Month not found: {month.id}")
        self._months[month.id] = _copy(month)
        return _copy(month)


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Transactions keyed by id."""

    def __init__(self):
        self._transactions: dict[UUID, Transaction] = {}

    async def save_transactions(self, transactions: list[Transaction]) -> list[Transaction]:
        for tx in transactions:
            self._transactions[tx.id] = _copy(tx)
        return [_copy(tx) for tx in transactions]

    async def get_transaction(self, owner_id: UUID, transaction_id: UUID) -> Optional[Transaction]:
        tx = self._transactions.get(transaction_id)
        return _copy(tx) if _owned(tx, owner_id) else None

    async def list_for_month(self, owner_id: UUID, month_id: UUID) -> list[Transaction]:
        rows = [
            _copy(tx) for tx in self._transactions.values()
            if tx.owner_id == owner_id and tx.month_id == month_id
        ]
        return sorted(rows, key=lambda tx: tx.order)

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        if not _owned(self._transactions.get(transaction.id), transaction.owner_id):
            raise NotFoundError(f"Transaction not found: {transaction.id}")
        self._transactions[transaction.id] = _copy(transaction)
        return _copy(transaction)

    async def delete_transaction(self, owner_id: UUID, transaction_id: UUID) -> bool:
        if not _owned(self._transactions.get(transaction_id), owner_id):
            return False
        del self._transactions[transaction_id]
        return True

    async def apply_orders(self, owner_id: UUID, orders: dict[UUID, float]) -> None:
        for tx_id in orders:
            if not _owned(self._transactions.get(tx_id), owner_id):
                raise NotFoundError(f"Transaction not found: {tx_id}")
        for tx_id, order in orders.items():
            self._transactions[tx_id] = self._transactions[tx_id].model_copy(update={"order": order})


class InMemoryYearlyStorage(YearlyStorageInterface):
    """Subsections and line items keyed by id."""

    def __init__(self):
        self._subsections: dict[UUID, YearlySubsection] = {}
        self._items: dict[UUID, YearlyLineItem] = {}

    # -- subsections ---------------------------------------------------------

    async def save_subsections(self, subsections: list[YearlySubsection]) -> list[YearlySubsection]:
        for sub in subsections:
            self._subsections[sub.id] = _copy(sub)
        return [_copy(sub) for sub in subsections]

    async def get_subsection(self, owner_id: UUID, subsection_id: UUID) -> Optional[YearlySubsection]:
        sub = self._subsections.get(subsection_id)
        return _copy(sub) if _owned(sub, owner_id) else None

    async def list_subsections(
        self,
        owner_id: UUID,
        year: int,
        section_key: Optional[SectionKey] = None,
    ) -> list[YearlySubsection]:
        rows = [
            _copy(sub) for sub in self._subsections.values()
            if sub.owner_id == owner_id
            and sub.year == year
            and (section_key is None or sub.section_key == section_key)
        ]
        return sorted(rows, key=lambda sub: sub.order)

    async def update_subsection(self, subsection: YearlySubsection) -> YearlySubsection:
        if not _owned(self._subsections.get(subsection.id), subsection.owner_id):
            raise NotFoundError(f"Subsection not found: {subsection.id}")
        self._subsections[subsection.id] = _copy(subsection)
        return _copy(subsection)

    async def delete_subsection(self, owner_id: UUID, subsection_id: UUID) -> int:
        if not _owned(self._subsections.get(subsection_id), owner_id):
            raise NotFoundError(f"Subsection not found: {subsection_id}")
        doomed = [
            item_id for item_id, item in self._items.items()
            if item.container_id == subsection_id
        ]
        for item_id in doomed:
            del self._items[item_id]
        del self._subsections[subsection_id]
        return len(doomed)

    async def apply_subsection_orders(self, owner_id: UUID, orders: dict[UUID, int]) -> None:
        for sub_id in orders:
            if not _owned(self._subsections.get(sub_id), owner_id):
                raise NotFoundError(f"Subsection not found: {sub_id}")
        for sub_id, order in orders.items():
            self._subsections[sub_id] = self._subsections[sub_id].model_copy(update={"order": order})

    # -- line items ----------------------------------------------------------

    async def save_line_items(self, items: list[YearlyLineItem]) -> list[YearlyLineItem]:
        for item in items:
            self._items[item.id] = _copy(item)
        return [_copy(item) for item in items]

    async def get_line_item(self, owner_id: UUID, item_id: UUID) -> Optional[YearlyLineItem]:
        item = self._items.get(item_id)
        return _copy(item) if _owned(item, owner_id) else None

    async def list_line_items(
        self,
        owner_id: UUID,
        year: int,
        section_key: Optional[SectionKey] = None,
    ) -> list[YearlyLineItem]:
        rows = [
            _copy(item) for item in self._items.values()
            if item.owner_id == owner_id
            and item.year == year
            and (section_key is None or item.section_key == section_key)
        ]
        return sorted(rows, key=lambda item: item.order)

    async def update_line_item(self, item: YearlyLineItem) -> YearlyLineItem:
        if not _owned(self._items.get(item.id), item.owner_id):
            raise NotFoundError(f"Line item not found: {item.id}")
        self._items[item.id] = _copy(item)
        return _copy(item)

    async def delete_line_item(self, owner_id: UUID, item_id: UUID) -> bool:
        if not _owned(self._items.get(item_id), owner_id):
            return False
        del self._items[item_id]
        return True

    async def apply_line_item_orders(
        self,
        owner_id: UUID,
        orders: dict[UUID, int],
        containers: Optional[dict[UUID, Optional[UUID]]] = None,
    ) -> None:
        containers = containers or {}
        for item_id in set(orders) | set(containers):
            if not _owned(self._items.get(item_id), owner_id):
                raise NotFoundError(f"Line item not found: {item_id}")
        for item_id, subsection_id in containers.items():
            self._items[item_id] = self._items[item_id].model_copy(
                update={"subsection_id": subsection_id}
            )
        for item_id, order in orders.items():
            self._items[item_id] = self._items[item_id].model_copy(update={"order": order})

    async def list_years(self, owner_id: UUID) -> list[int]:
        years = {item.year for item in self._items.values() if item.owner_id == owner_id}
        years |= {sub.year for sub in self._subsections.values() if sub.owner_id == owner_id}
        return sorted(years, reverse=True)
