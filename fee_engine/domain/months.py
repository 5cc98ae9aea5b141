"""Calendar-month helpers shared by volume aggregation and tier resolution."""
from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta

_TIMESTAMP_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S")
_FRACTION = re.compile(r"\.\d+$")


def as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def first_day_of_month(value: date | datetime) -> datetime:
    day = as_date(value)
    return datetime.combine(day.replace(day=1), time.min)


def first_day_of_next_month(value: date | datetime) -> datetime:
    start = first_day_of_month(value)
    if start.month == 12:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)


def first_day_of_previous_month(value: date | datetime) -> datetime:
    start = first_day_of_month(value)
    return first_day_of_month(start - timedelta(days=1))


def month_window(value: date | datetime) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` window of the calendar month containing ``value``."""
    return first_day_of_month(value), first_day_of_next_month(value)


def month_key(value: date | datetime) -> str:
    return as_date(value).strftime("%Y-%m")


def parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    for candidate in (text, _FRACTION.sub("", text)):
        for fmt in _TIMESTAMP_FORMATS:
            try:
                return datetime.strptime(candidate, fmt)
            except ValueError:
                continue
    return None
