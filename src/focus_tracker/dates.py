"""Calendar metadata for YYYYMMDD date keys."""

from __future__ import annotations

from datetime import date, datetime
from functools import lru_cache

from .models import DateInfo

_DAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)
_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def date_id_for(value: date | datetime) -> int:
    """Return the YYYYMMDD key for a date or datetime."""
    return value.year * 10000 + value.month * 100 + value.day


def date_from_id(date_id: int) -> date:
    return date(date_id // 10000, (date_id // 100) % 100, date_id % 100)


@lru_cache(maxsize=4096)
def enrich_date(date_id: int) -> DateInfo:
    """Compute weekday, month, ISO week and weekend flag for a date key.

    Raises ``ValueError`` when the key does not describe a real date.
    """
    day = date_from_id(date_id)
    weekday = day.weekday()
    return DateInfo(
        day_of_week=_DAY_NAMES[weekday],
        month_name=_MONTH_NAMES[day.month - 1],
        week_of_year=day.isocalendar()[1],
        is_weekend=weekday >= 5,
        is_market_holiday=False,
    )
