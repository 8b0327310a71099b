"""Calendar-month period keys (``YYYY-MM``).

Periods are plain strings so they can be used directly as the natural key of
a metrics snapshot. Zero-padded years and months make lexicographic order
equal to chronological order, which the snapshot store relies on for
"latest" and range lookups.
"""
import re
from datetime import datetime
from typing import Iterator

from billing_metrics.errors import InvalidPeriodError

PERIOD_PATTERN = re.compile(r"^\d{4}-\d{2}$")


def format_period(year: int, month: int) -> str:
    """
    Build a period key from a year and a 1-based month.

    Raises:
        InvalidPeriodError: If month is outside 1..12 or year outside 1..9999
    """
    if not 1 <= month <= 12:
        raise InvalidPeriodError(f"Month must be between 1 and 12, got {month}")
    if not 1 <= year <= 9999:
        raise InvalidPeriodError(f"Year must be between 1 and 9999, got {year}")
    return f"{year:04d}-{month:02d}"


def validate_period(period: str) -> str:
    """
    Check that a period key is a well-formed ``YYYY-MM`` calendar month.

    Returns:
        The period unchanged

    Raises:
        InvalidPeriodError: If the key is malformed
    """
    if not isinstance(period, str) or not PERIOD_PATTERN.match(period):
        raise InvalidPeriodError(f"Period must be in the format YYYY-MM, got {period!r}")
    year, month = int(period[:4]), int(period[5:])
    format_period(year, month)
    return period


def parse_period(period: str) -> tuple[int, int]:
    """Split a period key into ``(year, month)``."""
    validate_period(period)
    return int(period[:4]), int(period[5:])


def previous_period(period: str) -> str:
    year, month = parse_period(period)
    if month == 1:
        return format_period(year - 1, 12)
    return format_period(year, month - 1)


def next_period(period: str) -> str:
    year, month = parse_period(period)
    if month == 12:
        return format_period(year + 1, 1)
    return format_period(year, month + 1)


def iter_periods(start: str, end: str) -> Iterator[str]:
    """Yield every period from ``start`` to ``end`` inclusive, oldest first."""
    validate_period(start)
    validate_period(end)
    period = start
    while period <= end:
        yield period
        period = next_period(period)


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """
    Datetime bounds of a calendar month as ``[start, next_month_start)``.

    Filtering with ``>= start`` and ``< next_month_start`` covers every
    instant of the month including the whole last day.
    """
    format_period(year, month)
    start = datetime(year, month, 1)
    if month == 12:
        return start, datetime(year + 1, 1, 1)
    return start, datetime(year, month + 1, 1)


def period_of(moment: datetime) -> str:
    """Period key containing the given datetime."""
    return format_period(moment.year, moment.month)
