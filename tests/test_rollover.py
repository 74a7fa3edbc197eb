"""Tests for month rollover transforms."""

from uuid import uuid4

import pytest

from budgetbook.engine.rollover import (
    clone_recurring_transactions,
    copied_date,
    copy_transactions_for_month,
)
from budgetbook.models.monthly import SavingsMode, Transaction, TransactionKind

SOURCE_MONTH = uuid4()
TARGET_MONTH = uuid4()
OWNER_ID = uuid4()


def make_tx(label, amount_cents=1000, date="", order=0, **extra):
    data = dict(
        month_id=SOURCE_MONTH,
        owner_id=OWNER_ID,
        label=label,
        kind=TransactionKind.BILL,
        amount_cents=amount_cents,
        date=date,
        order=order,
        is_paid=True,
    )
    data.update(extra)
    return Transaction(**data)


@pytest.fixture
def source_month():
    pay = make_tx("Paycheck", 300000, "1", 0, kind=TransactionKind.INCOME, is_recurring=True)
    return [
        pay,
        make_tx(
            "Save 10%",
            30000,
            "1",
            1,
            kind=TransactionKind.SAVING,
            mode=SavingsMode.PERCENTAGE,
            savings_percentage=10,
            linked_income_id=pay.id,
            is_recurring=True,
        ),
        make_tx("Rent", 150000, "31", 2, is_recurring=True),
        make_tx("Concert", 8000, "TBD", 3),
    ]


class TestCopiedDate:
    """Tests for carrying day text into another month."""

    def test_days_excluded(self):
        """Test dates are blanked when days are not included."""
        assert copied_date("15", False, 2026, 3) == ""

    def test_day_that_fits(self):
        """Test a valid day keeps its original text."""
        assert copied_date("15th", True, 2026, 3) == "15th"

    def test_day_past_month_end(self):
        """Test the 31st does not survive into April."""
        assert copied_date("31", True, 2026, 3) == ""
        assert copied_date("29", True, 2024, 1) == "29"
        assert copied_date("29", True, 2026, 1) == ""

    def test_unparseable_day(self):
        """Test text days are dropped."""
        assert copied_date("TBD", True, 2026, 3) == ""


class TestCopyTransactions:
    """Tests for copy_transactions_for_month."""

    def test_copy_with_everything(self, source_month):
        """Test amounts and fitting days are kept."""
        copies = copy_transactions_for_month(source_month, TARGET_MONTH, 2026, 3, True, True)

        assert [tx.label for tx in copies] == ["Paycheck", "Save 10%", "Rent", "Concert"]
        assert [tx.amount_cents for tx in copies] == [300000, 30000, 150000, 8000]
        assert [tx.date for tx in copies] == ["1", "1", "", ""]
        assert [tx.order for tx in copies] == [0, 1, 2, 3]

    def test_copy_resets_state(self, source_month):
        """Test new ids, unpaid rows, dropped links and the new month."""
        copies = copy_transactions_for_month(source_month, TARGET_MONTH, 2026, 3, True, True)
        source_ids = {tx.id for tx in source_month}

        for tx in copies:
            assert tx.id not in source_ids
            assert tx.month_id == TARGET_MONTH
            assert tx.is_paid is False
            assert tx.linked_income_id is None
        assert copies[1].mode == SavingsMode.PERCENTAGE
        assert copies[1].savings_percentage == 10

    def test_copy_without_amounts(self, source_month):
        """Test amounts are zeroed when not included."""
        copies = copy_transactions_for_month(source_month, TARGET_MONTH, 2026, 4, False, False)
        assert all(tx.amount_cents == 0 for tx in copies)
        assert all(tx.date == "" for tx in copies)

    def test_source_untouched(self, source_month):
        """Test the source rows are not modified."""
        copy_transactions_for_month(source_month, TARGET_MONTH, 2026, 3, True, True)
        assert all(tx.is_paid for tx in source_month)
        assert source_month[1].linked_income_id == source_month[0].id


class TestCloneRecurring:
    """Tests for clone_recurring_transactions."""

    def test_only_recurring(self, source_month):
        """Test non-recurring rows are left behind."""
        clones = clone_recurring_transactions(source_month, TARGET_MONTH, False)
        assert [tx.label for tx in clones] == ["Paycheck", "Save 10%", "Rent"]
        assert [tx.amount_cents for tx in clones] == [300000, 30000, 150000]

    def test_dates_kept_as_is(self, source_month):
        """Test clone keeps day text without checking month length."""
        clones = clone_recurring_transactions(source_month, TARGET_MONTH, False)
        assert clones[2].date == "31"

    def test_non_recurring_as_zero(self, source_month):
        """Test non-recurring rows come along with zero amounts."""
        clones = clone_recurring_transactions(source_month, TARGET_MONTH, True)
        assert [tx.label for tx in clones] == ["Paycheck", "Save 10%", "Rent", "Concert"]
        assert clones[3].amount_cents == 0
        assert clones[3].date == "TBD"
        assert all(tx.is_paid is False and tx.linked_income_id is None for tx in clones)
