"""
Calculation engines.

Pure functions over already-loaded rows: no storage, no logging,
no settings lookups.
"""

from budgetbook.engine.balances import (
    calculate_balances,
    projected_end_balance,
    resolve_savings_amounts,
)
from budgetbook.engine.money import (
    format_cents,
    percent_of_income,
    round_half_away,
    to_cents,
)
from budgetbook.engine.yearly import (
    annual_total_from_original,
    calculate_savings_monthly,
    compute_income_breakdown,
    compute_section_totals,
    item_monthly_cents,
    monthly_equivalent_from_original,
    payments_per_year,
)

__all__ = [
    "annual_total_from_original",
    "calculate_balances",
    "calculate_savings_monthly",
    "compute_income_breakdown",
    "compute_section_totals",
    "format_cents",
    "item_monthly_cents",
    "monthly_equivalent_from_original",
    "payments_per_year",
    "percent_of_income",
    "projected_end_balance",
    "resolve_savings_amounts",
    "round_half_away",
    "to_cents",
]
