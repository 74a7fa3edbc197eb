"""Tests for cent arithmetic and calendar helpers."""

import pytest

from budgetbook.engine.dates import (
    day_sort_key,
    days_in_month,
    format_month_display,
    months_for_goal_inclusive,
    next_month,
    parse_day,
    parse_month_year,
    previous_month,
)
from budgetbook.engine.money import (
    divide_round,
    format_cents,
    percent_of_income,
    percentage_of,
    round_half_away,
    to_cents,
)


class TestRounding:
    """Tests for half-away-from-zero rounding."""

    @pytest.mark.parametrize("value,expected", [
        (2.5, 3),
        (-2.5, -3),
        (2.4, 2),
        (0.5, 1),
        (-0.5, -1),
        (7, 7),
    ])
    def test_round_half_away(self, value, expected):
        """Test ties round away from zero."""
        assert round_half_away(value) == expected

    def test_divide_round(self):
        """Test division rounds at the end."""
        assert divide_round(60000, 6) == 10000
        assert divide_round(100, 12) == 8
        assert divide_round(3, 2) == 2

    def test_percentage_of(self):
        """Test percentage amounts round to whole cents."""
        assert percentage_of(200000, 10) == 20000
        assert percentage_of(5, 50) == 3
        assert percentage_of(333, 33.3) == 111

    def test_percent_of_income(self):
        """Test share of income with two decimals."""
        assert percent_of_income(150000, 500000) == 30.0
        assert percent_of_income(1, 3) == 33.33
        assert percent_of_income(100, 0) == 0.0


class TestFormatting:
    """Tests for money display and parsing."""

    def test_format_cents(self):
        """Test dollar formatting with separators."""
        assert format_cents(123456) == "$1,234.56"
        assert format_cents(-500) == "-$5.00"
        assert format_cents(7, "EUR") == "€0.07"

    def test_format_unknown_currency(self):
        """Test unknown codes are shown as a prefix."""
        assert format_cents(1200, "chf") == "CHF 12.00"

    @pytest.mark.parametrize("text,expected", [
        ("12.34", 1234),
        ("$1,234.50", 123450),
        ("5", 500),
        ("", 0),
        ("abc", 0),
        ("-3.10", -310),
    ])
    def test_to_cents(self, text, expected):
        """Test user money text parsing."""
        assert to_cents(text) == expected


class TestDays:
    """Tests for day-of-month helpers."""

    def test_parse_day(self):
        """Test the leading integer is used."""
        assert parse_day("5") == 5
        assert parse_day("12th") == 12
        assert parse_day(" 28 ") == 28
        assert parse_day("") is None
        assert parse_day("TBD") is None

    def test_day_sort_key_missing_sorts_last(self):
        """Test blank and text days get the sentinel."""
        assert day_sort_key("3") == 3
        assert day_sort_key("") == 999
        assert day_sort_key("soon", missing=500) == 500

    def test_days_in_month(self):
        """Test month lengths including leap years."""
        assert days_in_month(2026, 0) == 31
        assert days_in_month(2026, 3) == 30
        assert days_in_month(2024, 1) == 29
        assert days_in_month(2026, 1) == 28

    def test_month_neighbours_cross_years(self):
        """Test previous and next month across year boundaries."""
        assert previous_month(2026, 0) == (2025, 11)
        assert previous_month(2026, 5) == (2026, 4)
        assert next_month(2025, 11) == (2026, 0)


class TestMonthYear:
    """Tests for "Jan 2026" strings."""

    @pytest.mark.parametrize("text,expected", [
        ("Jan 2026", (0, 2026)),
        ("january 2026", (0, 2026)),
        ("  DEC   2025 ", (11, 2025)),
        ("Sept 2026", None),
        ("Jan", None),
        ("Jan 26", None),
        ("Jan 2026 extra", None),
        ("", None),
        (None, None),
    ])
    def test_parse_month_year(self, text, expected):
        """Test accepted and rejected forms."""
        assert parse_month_year(text) == expected

    def test_months_for_goal_inclusive(self):
        """Test inclusive spans."""
        assert months_for_goal_inclusive("Jan 2026", "Jun 2026") == 6
        assert months_for_goal_inclusive("Jan 2026", "Jan 2026") == 1
        assert months_for_goal_inclusive("Nov 2025", "Feb 2026") == 4

    def test_months_for_goal_not_computable(self):
        """Test inverted or unparsable spans."""
        assert months_for_goal_inclusive("Jun 2026", "Jan 2026") is None
        assert months_for_goal_inclusive("whenever", "Jan 2026") is None
        assert months_for_goal_inclusive(None, "Jan 2026") is None

    def test_format_month_display(self):
        """Test canonical, raw and placeholder renderings."""
        assert format_month_display("january 2026") == "Jan 2026"
        assert format_month_display("next summer") == "next summer"
        assert format_month_display(None) == "—"
        assert format_month_display("", placeholder="n/a") == "n/a"
