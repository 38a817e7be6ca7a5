"""Domain models for samples, consolidated records and aggregations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

OFF_IDENTIFIER = "Off"


@dataclass(slots=True, frozen=True)
class Sample:
    """One focus-polling observation from a day log."""

    identifier: str
    timestamp: datetime
    tab_title: str = ""
    tab_url: str = ""
    had_activity: bool = False

    @property
    def is_off(self) -> bool:
        return self.identifier == OFF_IDENTIFIER


@dataclass(slots=True, frozen=True)
class DateInfo:
    day_of_week: str
    month_name: str
    week_of_year: int
    is_weekend: bool
    is_market_holiday: bool = False


@dataclass(slots=True, frozen=True)
class Record:
    """A contiguous span of activity with a single identity and category."""

    exe_path: str
    url: str
    name: str
    duration_seconds: int
    date_id: int
    date_info: DateInfo
    category: str


class Grouper(str, Enum):
    """Dimensions records can be grouped by."""

    DATE = "date"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    DAY_OF_WEEK = "day_of_week"
    IS_WEEKEND = "is_weekend"
    CATEGORY = "category"
    URL = "url"
    EXE_PATH = "exe_path"
    NAME = "name"

    def value_of(self, record: Record) -> Any:
        if self is Grouper.DATE:
            return record.date_id
        if self is Grouper.WEEK:
            return record.date_info.week_of_year
        if self is Grouper.MONTH:
            return (record.date_id // 100) % 100
        if self is Grouper.YEAR:
            return record.date_id // 10000
        if self is Grouper.DAY_OF_WEEK:
            return record.date_info.day_of_week
        if self is Grouper.IS_WEEKEND:
            return record.date_info.is_weekend
        if self is Grouper.CATEGORY:
            return record.category
        if self is Grouper.URL:
            return record.url
        if self is Grouper.EXE_PATH:
            return record.exe_path
        return record.name


@dataclass(slots=True)
class Aggregation:
    """Total time across all records sharing one combination of grouper values."""

    groupers: dict[str, Any] = field(default_factory=dict)
    duration_seconds: int = 0
