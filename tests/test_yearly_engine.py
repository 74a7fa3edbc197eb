"""Tests for the yearly rollup engine."""

from uuid import uuid4

import pytest

from budgetbook.engine.yearly import (
    annual_total_from_original,
    calculate_savings_monthly,
    compute_income_breakdown,
    compute_section_totals,
    item_monthly_cents,
    monthly_equivalent_from_original,
    payments_per_year,
)
from budgetbook.models.results import SectionTotals
from budgetbook.models.yearly import (
    DebtItem,
    Frequency,
    IncomeItem,
    InvestmentItem,
    MonthlyBillItem,
    NonMonthlyBillItem,
    SavingsItem,
)

OWNER_ID = uuid4()


def savings(**fields):
    data = dict(owner_id=OWNER_ID, year=2026, label="Goal")
    data.update(fields)
    return SavingsItem(**data)


class TestNonMonthlyNormalization:
    """Tests for frequency conversion."""

    def test_payments_per_year(self):
        """Test the payments table."""
        assert payments_per_year(Frequency.MONTHLY) == 12
        assert payments_per_year(Frequency.QUARTERLY) == 4
        assert payments_per_year(Frequency.BIANNUAL) == 2
        assert payments_per_year(Frequency.ANNUAL) == 1
        assert payments_per_year(Frequency.IRREGULAR) is None

    def test_monthly_equivalents(self):
        """Test annual and quarterly amounts normalize to monthly."""
        assert monthly_equivalent_from_original(1200, Frequency.ANNUAL) == 100
        assert monthly_equivalent_from_original(300, Frequency.QUARTERLY) == 100
        assert monthly_equivalent_from_original(600, Frequency.BIANNUAL) == 100

    @pytest.mark.parametrize("amount", [0, 1, 1200, 999999])
    def test_irregular_is_not_computable(self, amount):
        """Test irregular never converts, not even to zero."""
        assert monthly_equivalent_from_original(amount, Frequency.IRREGULAR) is None
        assert annual_total_from_original(amount, Frequency.IRREGULAR) is None

    def test_monthly_equivalent_rounds(self):
        """Test rounding of uneven annual amounts."""
        assert monthly_equivalent_from_original(1000, Frequency.ANNUAL) == 83
        assert monthly_equivalent_from_original(1002, Frequency.ANNUAL) == 84

    def test_item_defaults(self):
        """Test missing frequency means monthly and missing original means amount."""
        item = NonMonthlyBillItem(owner_id=OWNER_ID, year=2026, label="Gym", amount_cents=2500)
        assert item_monthly_cents(item) == 2500


class TestSavingsAmortization:
    """Tests for savings goal monthly contributions."""

    def test_example_goal(self):
        """Test 60000 remaining over 6 inclusive months."""
        item = savings(
            goal_amount_cents=100000,
            current_amount_cents=40000,
            start_month="Jan 2026",
            end_month="Jun 2026",
        )
        assert calculate_savings_monthly(item) == 10000

    def test_goal_met_is_not_computable(self):
        """Test no contribution once the goal is reached."""
        item = savings(goal_amount_cents=1000, current_amount_cents=1000,
                       start_month="Jan 2026", end_month="Jun 2026")
        assert calculate_savings_monthly(item) is None

    @pytest.mark.parametrize("start,end", [
        (None, "Jun 2026"),
        ("Jan 2026", None),
        ("someday", "Jun 2026"),
        ("Jun 2026", "Jan 2026"),
    ])
    def test_bad_dates_are_not_computable(self, start, end):
        """Test missing, unparsable and inverted spans."""
        item = savings(goal_amount_cents=1000, start_month=start, end_month=end)
        assert calculate_savings_monthly(item) is None

    def test_rounding(self):
        """Test contributions round to whole cents."""
        item = savings(goal_amount_cents=1000, start_month="Jan 2026", end_month="Mar 2026")
        assert calculate_savings_monthly(item) == 333


class TestSectionTotals:
    """Tests for compute_section_totals."""

    def test_totals_skip_non_computable_rows(self):
        """Test irregular bills and finished goals are skipped, not zeroed."""
        items = [
            IncomeItem(owner_id=OWNER_ID, year=2026, label="Salary", amount_cents=500001),
            MonthlyBillItem(owner_id=OWNER_ID, year=2026, label="Rent", amount_cents=150000),
            NonMonthlyBillItem(owner_id=OWNER_ID, year=2026, label="Insurance",
                               frequency=Frequency.ANNUAL, original_amount_cents=120000),
            NonMonthlyBillItem(owner_id=OWNER_ID, year=2026, label="Repairs",
                               frequency=Frequency.IRREGULAR, original_amount_cents=50000),
            DebtItem(owner_id=OWNER_ID, year=2026, label="Car", amount_cents=30000,
                     balance_cents=900000),
            savings(goal_amount_cents=100000, current_amount_cents=40000,
                    start_month="Jan 2026", end_month="Jun 2026"),
            savings(label="Done", goal_amount_cents=5000, current_amount_cents=5000),
            InvestmentItem(owner_id=OWNER_ID, year=2026, label="Index fund", amount_cents=10001),
        ]

        totals = compute_section_totals(items)

        assert totals.income_monthly == 500001
        assert totals.income_each_paycheck_display == 250001
        assert totals.monthly_bills_monthly == 150000
        assert totals.non_monthly_bills_monthly_eq == 10000
        assert totals.non_monthly_bills_annual_total == 120000
        assert totals.debt_monthly_payment == 30000
        assert totals.debt_balance_total == 900000
        assert totals.savings_monthly == 10000
        assert totals.savings_bi_monthly == 5000
        assert totals.savings_goal_total == 105000
        assert totals.savings_current_total == 45000
        assert totals.investments_monthly == 10001
        assert totals.investments_bi_monthly == 5001

    def test_empty_year(self):
        """Test an empty worksheet totals to zero."""
        totals = compute_section_totals([])
        assert totals == SectionTotals()


class TestIncomeBreakdown:
    """Tests for the income ladder."""

    def test_example_ladder(self):
        """Test each step subtracts from the previous one in fixed order."""
        totals = SectionTotals(
            income_monthly=500000,
            monthly_bills_monthly=150000,
            non_monthly_bills_monthly_eq=20000,
            debt_monthly_payment=50000,
            savings_monthly=30000,
            investments_monthly=10000,
        )
        breakdown = compute_income_breakdown(totals)
        assert breakdown.total_income_monthly == 500000
        assert breakdown.after_monthly_bills == 350000
        assert breakdown.after_non_monthly_bills == 330000
        assert breakdown.after_debt == 280000
        assert breakdown.after_savings == 250000
        assert breakdown.after_investments == 240000

    def test_ladder_can_go_negative(self):
        """Test overspending shows as a negative remainder."""
        breakdown = compute_income_breakdown(SectionTotals(income_monthly=1000, monthly_bills_monthly=3000))
        assert breakdown.after_investments == -2000
