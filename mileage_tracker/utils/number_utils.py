"""
Rounding helpers. Reported figures round half away from zero, the way
dashboards and invoices expect, rather than Python's banker's rounding.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, Decimal]


def round_half_up(value: Number, ndigits: int = 0) -> float:
    """Round to ``ndigits`` decimal places, halves rounding up."""
    exponent = Decimal(1).scaleb(-ndigits)
    return float(Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP))


def round_int(value: Number) -> int:
    return int(round_half_up(value, 0))


def safe_ratio_percent(part: Number, whole: Number) -> int:
    """100 * part / whole as an integer percentage, 0 when whole is 0."""
    if not whole:
        return 0
    return round_int(100 * float(part) / float(whole))
