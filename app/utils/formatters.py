"""
Formatting helpers for documents and API display values.
Numbers, money and dates in Swedish style.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date, datetime
from typing import Union, Optional

# Swedish thousands separator is a space
THOUSANDS_SEP = ' '


def _group_thousands(integer_part: str) -> str:
    reversed_int = integer_part[::-1]
    groups = [reversed_int[i:i+3] for i in range(0, len(reversed_int), 3)]
    return THOUSANDS_SEP.join(groups)[::-1]


def num_sv(value: Union[int, float, Decimal, str, None], decimals: Optional[int] = None) -> str:
    """
    Format a number in Swedish style:
    - Thousands separator: space
    - Decimal separator: comma (,)
    - Without fixed decimals, trailing zeros are dropped

    Args:
        value: Number to format
        decimals: Fixed number of decimals (None = automatic)

    Returns:
        Formatted string

    Examples:
        num_sv(1500) -> "1 500"
        num_sv(1.25) -> "1,25"
        num_sv(2.50) -> "2,5"
        num_sv(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        if isinstance(value, str):
            value = value.replace(" ", "").replace(",", ".")
        num = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    if decimals is not None:
        num = num.quantize(Decimal(10) ** -decimals, rounding=ROUND_HALF_UP)

    sign = "-" if num < 0 else ""
    num_str = f"{abs(num):f}"

    if '.' in num_str:
        integer_part, decimal_part = num_str.split('.')
        if decimals is None:
            decimal_part = decimal_part.rstrip('0')
    else:
        integer_part, decimal_part = num_str, ""

    integer_formatted = _group_thousands(integer_part)
    if decimal_part:
        return f"{sign}{integer_formatted},{decimal_part}"
    return f"{sign}{integer_formatted}"


def money_sv(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Format an amount in kronor with exactly 2 decimals.

    Examples:
        money_sv(Decimal("1234.5")) -> "1 234,50 kr"
        money_sv(0) -> "0,00 kr"
    """
    formatted = num_sv(value, decimals=2)
    if formatted == "-":
        return formatted
    return f"{formatted} kr"


def percent_sv(value: Union[int, float, Decimal, str, None]) -> str:
    """Format a percentage: percent_sv(30) -> "30 %", percent_sv(12.5) -> "12,5 %"."""
    formatted = num_sv(value)
    if formatted == "-":
        return formatted
    return f"{formatted} %"


def date_sv(value: Union[date, datetime, None]) -> str:
    """
    Format a date as YYYY-MM-DD.

    Examples:
        date_sv(date(2026, 1, 12)) -> "2026-01-12"
    """
    if value is None:
        return "-"

    if isinstance(value, datetime):
        value = value.date()

    if not isinstance(value, date):
        return "-"

    return value.strftime("%Y-%m-%d")
