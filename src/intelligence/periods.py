"""Calendar helpers shared by the calculators."""
from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime
from decimal import Decimal


def _d(value, default: str = "0.00") -> Decimal:
    if value is None:
        return Decimal(default)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def month_bounds(period_month: date) -> tuple[date, date]:
    start = as_date(period_month).replace(day=1)
    last_day = monthrange(start.year, start.month)[1]
    end = start.replace(day=last_day)
    return start, end


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Return ``(year, month)`` moved by ``delta`` calendar months."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def months_between(start: tuple[int, int], end: tuple[int, int]) -> list:
    """Every ``(year, month)`` from ``start`` to ``end`` inclusive."""
    months = []
    current = start
    while current <= end:
        months.append(current)
        current = shift_month(current[0], current[1], 1)
    return months
