"""
Order bookkeeping for transactions and worksheet rows.

Reorders always produce contiguous integers 0..n-1. Creating a
transaction places it by due date, which may need a fractional
midpoint between two neighbours. Midpoints halve the gap each time;
once a gap can no longer be split the month is renumbered to
contiguous integers and the midpoint is taken again.
"""

from typing import Iterable, Optional, Sequence
from uuid import UUID

from pydantic import BaseModel, Field

from budgetbook.engine.dates import MISSING_DAY_SORT_KEY, day_sort_key
from budgetbook.models.monthly import Transaction, TransactionKind


class InsertionPlan(BaseModel):
    """Where a new transaction goes, plus any renumbering needed first."""

    order: float
    renumbered: dict[UUID, int] = Field(default_factory=dict)


def renumber(ids: Sequence[UUID]) -> dict[UUID, int]:
    """Assign 0..n-1 in the given sequence."""
    return {item_id: index for index, item_id in enumerate(ids)}


def by_order(transactions: Iterable[Transaction]) -> list[Transaction]:
    return sorted(transactions, key=lambda tx: tx.order)


def renormalize(transactions: Iterable[Transaction]) -> dict[UUID, int]:
    """Contiguous integer orders that keep the current sequence."""
    return renumber([tx.id for tx in by_order(transactions)])


def due_date_sequence(
    transactions: Iterable[Transaction],
    missing: int = MISSING_DAY_SORT_KEY,
) -> list[Transaction]:
    """Day ascending, unusable days last, current order breaks ties."""
    return sorted(transactions, key=lambda tx: (day_sort_key(tx.date, missing), tx.order))


def sort_by_due_date_updates(
    transactions: Iterable[Transaction],
    missing: int = MISSING_DAY_SORT_KEY,
) -> dict[UUID, int]:
    """New orders for a due-date sort, limited to rows whose order changes."""
    sequence = due_date_sequence(transactions, missing)
    return {
        tx.id: index
        for index, tx in enumerate(sequence)
        if tx.order != index
    }


def is_due_date_sorted(
    transactions: Iterable[Transaction],
    missing: int = MISSING_DAY_SORT_KEY,
) -> bool:
    """True when the current order already matches the due-date order."""
    rows = list(transactions)
    current = [tx.id for tx in by_order(rows)]
    return current == [tx.id for tx in due_date_sequence(rows, missing)]


def _midpoint(before: float, after: float) -> Optional[float]:
    mid = (before + after) / 2
    if before < mid < after:
        return mid
    return None


def _order_after(orders: list[float], index: int) -> Optional[float]:
    """Order for a row inserted right after position `index` (-1 = first)."""
    if index < 0:
        return orders[0] - 1
    if index == len(orders) - 1:
        return orders[index] + 1
    return _midpoint(orders[index], orders[index + 1])


def _insert_after_index(
    rows: list[Transaction],
    date: str,
    kind: TransactionKind,
    linked_income_id: Optional[UUID],
    missing: int,
) -> int:
    if kind == TransactionKind.SAVING and linked_income_id is not None:
        for index, tx in enumerate(rows):
            if tx.id == linked_income_id:
                return index

    new_key = day_sort_key(date, missing)
    insert_after = -1
    for index, tx in enumerate(rows):
        if day_sort_key(tx.date, missing) <= new_key:
            insert_after = index
    return insert_after


def plan_insertion(
    existing: Iterable[Transaction],
    date: str,
    kind: TransactionKind,
    linked_income_id: Optional[UUID] = None,
    missing: int = MISSING_DAY_SORT_KEY,
) -> InsertionPlan:
    """
    Pick the order for a new transaction.

    A saving linked to an income lands directly below that income.
    Anything else lands after every row due on the same day or earlier.
    """
    rows = by_order(existing)
    if not rows:
        return InsertionPlan(order=0)

    index = _insert_after_index(rows, date, kind, linked_income_id, missing)
    order = _order_after([tx.order for tx in rows], index)
    if order is not None:
        return InsertionPlan(order=order)

    # Gap exhausted: renumber, then split the (now unit) gap
    renumbered = renumber([tx.id for tx in rows])
    order = _order_after([float(i) for i in range(len(rows))], index)
    return InsertionPlan(order=order, renumbered=renumbered)
