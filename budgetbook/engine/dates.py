"""
Calendar helpers for months, day-of-month text and "Jan 2026" strings.
"""

import calendar
import re
from types import MappingProxyType
from typing import Optional

MISSING_DAY_SORT_KEY = 999

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_YEAR = re.compile(r"^\d{4}$")

MONTH_TOKENS = MappingProxyType({
    "jan": 0, "january": 0,
    "feb": 1, "february": 1,
    "mar": 2, "march": 2,
    "apr": 3, "april": 3,
    "may": 4,
    "jun": 5, "june": 5,
    "jul": 6, "july": 6,
    "aug": 7, "august": 7,
    "sep": 8, "september": 8,
    "oct": 9, "october": 9,
    "nov": 10, "november": 10,
    "dec": 11, "december": 11,
})

_SHORT_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
                "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def days_in_month(year: int, month_index: int) -> int:
    """Number of days in a 0-based month, leap years included."""
    return calendar.monthrange(year, month_index + 1)[1]


def previous_month(year: int, month_index: int) -> tuple[int, int]:
    if month_index == 0:
        return year - 1, 11
    return year, month_index - 1


def next_month(year: int, month_index: int) -> tuple[int, int]:
    if month_index == 11:
        return year + 1, 0
    return year, month_index + 1


def parse_day(text: Optional[str]) -> Optional[int]:
    """
    Leading integer of a day-of-month field ("5" -> 5, "12th" -> 12).

    Returns None for blank or non-numeric text.
    """
    if not text:
        return None
    match = _LEADING_INT.match(text)
    if match is None:
        return None
    return int(match.group(1))


def day_sort_key(text: Optional[str], missing: int = MISSING_DAY_SORT_KEY) -> int:
    """Sort key for due-date ordering; unusable days sort last."""
    day = parse_day(text)
    return missing if day is None else day


def parse_month_year(text: Optional[str]) -> Optional[tuple[int, int]]:
    """
    Parse "Jan 2026" / "january 2026" into (month_index, year).

    Exactly two whitespace-separated tokens; case-insensitive month
    name or abbreviation; four-digit year. Anything else is None.
    """
    if not text:
        return None
    parts = text.strip().lower().split()
    if len(parts) != 2:
        return None
    month_token, year_token = parts
    month = MONTH_TOKENS.get(month_token)
    if month is None or not _YEAR.match(year_token):
        return None
    return month, int(year_token)


def months_for_goal_inclusive(start: Optional[str], end: Optional[str]) -> Optional[int]:
    """
    Inclusive number of months from `start` to `end` ("Jan 2026".."Jun 2026" -> 6).

    None when either side is unparsable or `end` is before `start`.
    """
    parsed_start = parse_month_year(start)
    parsed_end = parse_month_year(end)
    if parsed_start is None or parsed_end is None:
        return None

    start_total = parsed_start[1] * 12 + parsed_start[0]
    end_total = parsed_end[1] * 12 + parsed_end[0]
    span = end_total - start_total + 1
    if span <= 0:
        return None
    return span


def format_month_display(text: Optional[str], placeholder: str = "—") -> str:
    """Canonical "Jan 2026" form; raw text when unparsable; placeholder when missing."""
    if not text:
        return placeholder
    parsed = parse_month_year(text)
    if parsed is None:
        return text
    month, year = parsed
    return f"{_SHORT_NAMES[month]} {year}"
