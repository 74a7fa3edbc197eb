"""
Month rollover transforms.

Both copy paths build brand-new transactions for a target month:
fresh ids, `is_paid` reset, and `linked_income_id` dropped because the
linked income gets a new id in the target month. `order` is kept.
"""

from typing import Iterable
from uuid import UUID

from budgetbook.engine.dates import days_in_month, parse_day
from budgetbook.models.monthly import Transaction

_CARRIED_FIELDS = (
    "owner_id",
    "label",
    "kind",
    "order",
    "category",
    "is_recurring",
    "is_template_only",
    "mode",
    "savings_percentage",
)


def _carry(tx: Transaction, month_id: UUID, amount_cents: int, date: str) -> Transaction:
    data = {name: getattr(tx, name) for name in _CARRIED_FIELDS}
    return Transaction(
        month_id=month_id,
        amount_cents=amount_cents,
        date=date,
        is_paid=False,
        linked_income_id=None,
        **data,
    )


def copied_date(date: str, include_days: bool, target_year: int, target_month_index: int) -> str:
    """
    Day text to carry into the target month.

    Blank unless days are included and the source day exists in the
    target month (the 31st does not survive into April).
    """
    if not include_days:
        return ""
    day = parse_day(date)
    if day is None or day > days_in_month(target_year, target_month_index):
        return ""
    return date


def copy_transactions_for_month(
    source: Iterable[Transaction],
    target_month_id: UUID,
    target_year: int,
    target_month_index: int,
    include_days: bool,
    include_amounts: bool,
) -> list[Transaction]:
    """Duplicate every source row into the target month."""
    return [
        _carry(
            tx,
            target_month_id,
            amount_cents=tx.amount_cents if include_amounts else 0,
            date=copied_date(tx.date, include_days, target_year, target_month_index),
        )
        for tx in source
    ]


def clone_recurring_transactions(
    source: Iterable[Transaction],
    target_month_id: UUID,
    copy_non_recurring_as_zero: bool,
) -> list[Transaction]:
    """
    Duplicate recurring rows with their amounts.

    With `copy_non_recurring_as_zero`, non-recurring rows come along
    too with a zero amount, so the month keeps their slots.
    """
    cloned = []
    for tx in source:
        if tx.is_recurring:
            cloned.append(_carry(tx, target_month_id, tx.amount_cents, tx.date))
        elif copy_non_recurring_as_zero:
            cloned.append(_carry(tx, target_month_id, 0, tx.date))
    return cloned
