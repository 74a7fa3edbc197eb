"""
Integer-cent arithmetic helpers.

Every derived amount is rounded to whole cents at the step where it is
produced, half away from zero. Decimal is used for the intermediate
product so a float percentage never leaks binary error into cents.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from fractions import Fraction
from typing import Union

Number = Union[int, float, Decimal, Fraction]

_CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "$",
    "AUD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
}

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, Fraction):
        return Decimal(value.numerator) / Decimal(value.denominator)
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_half_away(value: Number) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(_to_decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def divide_round(numerator: Number, denominator: Number) -> int:
    """numerator / denominator rounded half away from zero."""
    return round_half_away(_to_decimal(numerator) / _to_decimal(denominator))


def percentage_of(amount_cents: int, percentage: Number) -> int:
    """`percentage` percent of `amount_cents`, rounded to a whole cent."""
    return round_half_away(_to_decimal(amount_cents) * _to_decimal(percentage) / 100)


def percent_of_income(amount_cents: int, total_income_cents: int) -> float:
    """Share of income as a percentage with two decimals; 0 when there is no income."""
    if total_income_cents == 0:
        return 0.0
    ratio = _to_decimal(amount_cents) * 100 / _to_decimal(total_income_cents)
    return float(ratio.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def format_cents(cents: int, currency: str = "USD") -> str:
    """
    Render cents for display: 123456 -> "$1,234.56", -500 -> "-$5.00".

    Unknown currency codes are rendered as a prefix ("CHF 12.00").
    """
    symbol = _CURRENCY_SYMBOLS.get(currency.upper())
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    body = f"{whole:,}.{frac:02d}"
    if symbol is None:
        return f"{sign}{currency.upper()} {body}"
    return f"{sign}{symbol}{body}"


def to_cents(text: str) -> int:
    """
    Parse user-entered money text into cents.

    Currency symbols and thousands separators are ignored. Text that
    does not contain a number parses as 0.
    """
    cleaned = _NON_NUMERIC.sub("", text or "")
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return 0
    if not value.is_finite():
        return 0
    return round_half_away(value * 100)
