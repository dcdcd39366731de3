"""
Currency helpers.

Amounts travel through the API as plain numbers of rupees; anything that
accumulates (cart subtotals, order totals) is summed in paise so repeated
additions never drift.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, Decimal]

MINOR_UNITS = 100


def _decimal(amount: Number) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    # str() keeps 0.1 as 0.1 instead of its binary expansion
    return Decimal(str(amount))


def to_minor(amount: Number) -> int:
    return int((_decimal(amount) * MINOR_UNITS).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def from_minor(minor: int) -> float:
    return minor / MINOR_UNITS


def round_half_up(amount: Number) -> int:
    """Round to the nearest whole currency unit, halves away from zero."""
    return int(_decimal(amount).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_amount(amount: Number) -> str:
    value = _decimal(amount)
    if value == value.to_integral_value():
        return str(int(value))
    # 149.5 prints as "149.5", the way the storefront prints numbers
    return format(value.normalize(), "f")
