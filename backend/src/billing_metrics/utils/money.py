"""Decimal helpers for monetary amounts and percentages.

Snapshot values are quantized before they are written so that recomputing a
period from unchanged source data yields exactly the same stored values.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

MONEY_QUANTUM = Decimal("0.01")
PERCENT_QUANTUM = Decimal("0.0001")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Optional[Number]) -> Decimal:
    """Convert a driver value (None, int, float, str, Decimal) to Decimal."""
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # str() avoids binary float artifacts such as 0.1 -> 0.1000000000000000055
        return Decimal(str(value))
    return Decimal(value)


def to_money(value: Optional[Number]) -> Decimal:
    """Quantize to two decimal places."""
    return to_decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def to_percentage(value: Optional[Number]) -> Decimal:
    """Quantize to four decimal places."""
    return to_decimal(value).quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP)


def safe_ratio(numerator: Number, denominator: Number) -> Decimal:
    """``numerator / denominator``, or 0 when the denominator is zero."""
    denominator = to_decimal(denominator)
    if denominator == 0:
        return Decimal(0)
    return to_decimal(numerator) / denominator


def percentage(part: Number, whole: Number, cap: Optional[Decimal] = None) -> Decimal:
    """
    ``part / whole * 100`` quantized to four places.

    Args:
        part: Numerator
        whole: Denominator; 0 yields 0
        cap: Optional upper bound applied before quantizing

    Returns:
        Percentage as Decimal
    """
    result = safe_ratio(part, whole) * 100
    if cap is not None and result > cap:
        result = cap
    return to_percentage(result)
