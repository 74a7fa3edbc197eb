"""
Monthly Balance Engine

Two steps, both pure:

1. resolve_savings_amounts: recompute every percentage-mode saving
   from its linked income. A link to an income that no longer exists
   resolves to 0 so the forecast stays available.
2. calculate_balances: sort by `order`, then fold twice from the same
   starting balance:
   - running balance counts paid rows only ("what has cleared")
   - projected balance counts every row ("once everything clears"),
     recording the cumulative value after each row.
"""

from typing import Iterable
from uuid import UUID

from budgetbook.engine.money import percentage_of
from budgetbook.models.monthly import Transaction, TransactionKind
from budgetbook.models.results import BalanceSummary, ResolvedTransaction


def resolve_savings_amounts(transactions: Iterable[Transaction]) -> list[ResolvedTransaction]:
    """
    Pair each transaction with its effective amount, preserving input order.

    Percentage savings: round(linked income amount * pct / 100).
    Missing link, dangling link or missing percentage count as 0.
    """
    rows = list(transactions)
    income_lookup: dict[UUID, int] = {
        tx.id: tx.amount_cents
        for tx in rows
        if tx.kind == TransactionKind.INCOME
    }

    resolved = []
    for tx in rows:
        if not tx.is_percentage_saving:
            resolved.append(ResolvedTransaction(transaction=tx, amount_cents=tx.amount_cents))
            continue
        income_cents = 0
        if tx.linked_income_id is not None:
            income_cents = income_lookup.get(tx.linked_income_id, 0)
        amount = percentage_of(income_cents, tx.savings_percentage or 0)
        resolved.append(ResolvedTransaction(transaction=tx, amount_cents=amount))
    return resolved


def calculate_balances(
    transactions: Iterable[Transaction],
    starting_balance_cents: int,
) -> BalanceSummary:
    """Resolve savings, then compute running and projected balances."""
    resolved = sorted(resolve_savings_amounts(transactions), key=lambda r: r.order)

    current = starting_balance_cents
    for row in resolved:
        if row.is_paid:
            current += row.delta_cents

    cumulative = starting_balance_cents
    projected: dict[UUID, int] = {}
    for row in resolved:
        cumulative += row.delta_cents
        projected[row.id] = cumulative

    return BalanceSummary(
        starting_balance_cents=starting_balance_cents,
        resolved=resolved,
        current_bank_balance_cents=current,
        projected_balances=projected,
        projected_end_balance_cents=cumulative,
    )


def projected_end_balance(transactions: Iterable[Transaction], starting_balance_cents: int) -> int:
    """Balance after every row clears."""
    total = starting_balance_cents
    for row in resolve_savings_amounts(transactions):
        total += row.delta_cents
    return total
