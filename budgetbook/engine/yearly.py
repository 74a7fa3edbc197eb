"""
Yearly Rollup Engine

Normalizes every worksheet row to monthly-equivalent cents, sums the
sections and derives the "income after each category" ladder.

"Not computable" is None throughout (irregular frequency, goal already
met, missing or inverted dates). Sums skip None; they never treat it
as zero.
"""

from types import MappingProxyType
from typing import Iterable, Optional

from budgetbook.engine.dates import months_for_goal_inclusive
from budgetbook.engine.money import divide_round
from budgetbook.models.results import IncomeBreakdown, SectionTotals
from budgetbook.models.yearly import (
    Frequency,
    NonMonthlyBillItem,
    SavingsItem,
    SectionKey,
    YearlyLineItem,
)

PAYMENTS_PER_YEAR = MappingProxyType({
    Frequency.MONTHLY: 12,
    Frequency.QUARTERLY: 4,
    Frequency.BIANNUAL: 2,
    Frequency.ANNUAL: 1,
    Frequency.IRREGULAR: None,
})


def payments_per_year(frequency: Frequency) -> Optional[int]:
    return PAYMENTS_PER_YEAR[Frequency(frequency)]


def annual_total_from_original(original_amount_cents: int, frequency: Frequency) -> Optional[int]:
    """Per-period amount times payments per year; None when irregular."""
    payments = payments_per_year(frequency)
    if payments is None:
        return None
    return original_amount_cents * payments


def monthly_equivalent_from_original(original_amount_cents: int, frequency: Frequency) -> Optional[int]:
    """
    Average monthly cost of a periodic amount.

    monthly_equivalent_from_original(1200, "annual") == 100
    monthly_equivalent_from_original(300, "quarterly") == 100
    """
    annual = annual_total_from_original(original_amount_cents, frequency)
    if annual is None:
        return None
    return divide_round(annual, 12)


def _non_monthly_inputs(item: NonMonthlyBillItem) -> tuple[int, Frequency]:
    frequency = item.frequency or Frequency.MONTHLY
    original = item.original_amount_cents
    if original is None:
        original = item.amount_cents
    return original, frequency


def calculate_savings_monthly(item: SavingsItem) -> Optional[int]:
    """
    Monthly contribution needed to reach the goal by `end_month`.

    None when the goal is already met, when either month is missing
    or unparsable, or when the end is before the start.
    """
    goal = item.goal_amount_cents or 0
    current = item.current_amount_cents or 0
    if current >= goal:
        return None
    if not item.start_month or not item.end_month:
        return None

    months = months_for_goal_inclusive(item.start_month, item.end_month)
    if months is None or months <= 0:
        return None
    return divide_round(goal - current, months)


def item_monthly_cents(item: YearlyLineItem) -> Optional[int]:
    """Monthly-equivalent of one row, as shown in its section table."""
    if isinstance(item, NonMonthlyBillItem):
        original, frequency = _non_monthly_inputs(item)
        return monthly_equivalent_from_original(original, frequency)
    if isinstance(item, SavingsItem):
        return calculate_savings_monthly(item)
    return item.amount_cents


def compute_section_totals(items: Iterable[YearlyLineItem]) -> SectionTotals:
    """Sum every row of a year into per-section totals."""
    income_monthly = 0
    monthly_bills_monthly = 0
    non_monthly_bills_monthly_eq = 0
    non_monthly_bills_annual_total = 0
    debt_monthly_payment = 0
    debt_balance_total = 0
    savings_monthly = 0
    savings_goal_total = 0
    savings_current_total = 0
    investments_monthly = 0

    for item in items:
        key = SectionKey(item.section_key)

        if key == SectionKey.INCOME:
            income_monthly += item.amount_cents

        elif key == SectionKey.MONTHLY_BILLS:
            monthly_bills_monthly += item.amount_cents

        elif key == SectionKey.NON_MONTHLY_BILLS:
            original, frequency = _non_monthly_inputs(item)
            annual = annual_total_from_original(original, frequency)
            monthly = monthly_equivalent_from_original(original, frequency)
            # Irregular rows have neither
            if annual is not None:
                non_monthly_bills_annual_total += annual
            if monthly is not None:
                non_monthly_bills_monthly_eq += monthly

        elif key == SectionKey.DEBT:
            debt_monthly_payment += item.amount_cents
            debt_balance_total += item.balance_cents or 0

        elif key == SectionKey.SAVINGS:
            monthly = calculate_savings_monthly(item)
            if monthly is not None:
                savings_monthly += monthly
            savings_goal_total += item.goal_amount_cents or 0
            savings_current_total += item.current_amount_cents or 0

        elif key == SectionKey.INVESTMENTS:
            investments_monthly += item.amount_cents

    return SectionTotals(
        income_monthly=income_monthly,
        income_each_paycheck_display=divide_round(income_monthly, 2),
        monthly_bills_monthly=monthly_bills_monthly,
        non_monthly_bills_monthly_eq=non_monthly_bills_monthly_eq,
        non_monthly_bills_annual_total=non_monthly_bills_annual_total,
        debt_monthly_payment=debt_monthly_payment,
        debt_balance_total=debt_balance_total,
        savings_monthly=savings_monthly,
        savings_bi_monthly=divide_round(savings_monthly, 2),
        savings_goal_total=savings_goal_total,
        savings_current_total=savings_current_total,
        investments_monthly=investments_monthly,
        investments_bi_monthly=divide_round(investments_monthly, 2),
    )


def compute_income_breakdown(totals: SectionTotals) -> IncomeBreakdown:
    """
    Subtract each category from income in a fixed order:
    monthly bills, non-monthly bills, debt, savings, investments.
    """
    after_monthly_bills = totals.income_monthly - totals.monthly_bills_monthly
    after_non_monthly_bills = after_monthly_bills - totals.non_monthly_bills_monthly_eq
    after_debt = after_non_monthly_bills - totals.debt_monthly_payment
    after_savings = after_debt - totals.savings_monthly
    after_investments = after_savings - totals.investments_monthly

    return IncomeBreakdown(
        total_income_monthly=totals.income_monthly,
        after_monthly_bills=after_monthly_bills,
        after_non_monthly_bills=after_non_monthly_bills,
        after_debt=after_debt,
        after_savings=after_savings,
        after_investments=after_investments,
    )
