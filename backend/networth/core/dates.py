"""Date normalisation and month arithmetic shared by the analytics engines.

Snapshots and cash flows reach the engine as native dates, timezone-aware
datetimes, ISO strings, or database timestamp wrappers exposing a ``to_date``
style accessor. :func:`to_date` collapses all of them to ``datetime.date`` so
the numerical code never branches on the input representation.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from networth.config import get_settings

_ACCESSORS = ("to_date", "toDate", "to_datetime", "to_pydatetime")


def _localise(value: datetime) -> date:
    if value.tzinfo is None:
        return value.date()
    return value.astimezone(ZoneInfo(get_settings().timezone)).date()


def to_date(value: Any) -> date | None:
    """Normalise a date-like value; ``None`` means the value is missing."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return _localise(value)
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return _localise(datetime.fromisoformat(text))
        except ValueError as exc:
            raise ValueError(f"Unparsable date string: {value!r}") from exc
    for accessor in _ACCESSORS:
        method = getattr(value, accessor, None)
        if callable(method):
            return to_date(method())
    raise TypeError(f"Unsupported date value of type {type(value).__name__}")


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def date_month_key(value: date) -> str:
    return month_key(value.year, value.month)


def first_of_month(value: date) -> date:
    return value.replace(day=1)


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def shift_months(value: date, delta: int) -> date:
    """Return the first day of the month ``delta`` months away from ``value``."""

    index = value.year * 12 + (value.month - 1) + delta
    return date(index // 12, index % 12 + 1, 1)


def months_between_inclusive(start: date, end: date) -> int:
    """Count calendar months from ``start`` to ``end`` including both ends.

    January to December of the same year is 12 months, not 11.
    """

    return (end.year - start.year) * 12 + (end.month - start.month) + 1


def format_month_short(year: int, month: int) -> str:
    """Format a month as ``MM/YY`` (e.g. ``04/25``)."""

    return f"{month:02d}/{year % 100:02d}"


__all__ = [
    "date_month_key",
    "first_of_month",
    "format_month_short",
    "last_day_of_month",
    "month_key",
    "months_between_inclusive",
    "shift_months",
    "to_date",
]
