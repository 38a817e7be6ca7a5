"""Configuration models and helpers for the focus tracker."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta


@dataclass(slots=True)
class TrackerSettings:
    """Thresholds used when turning samples into records."""

    gap_threshold: timedelta = timedelta(seconds=15)
    idle_grace: timedelta = timedelta(seconds=120)
    history_start: date = field(default_factory=lambda: date(2020, 1, 1))

    @classmethod
    def from_seconds(
        cls,
        gap_seconds: float,
        idle_seconds: float,
        history_start: date | None = None,
    ) -> "TrackerSettings":
        return cls(
            gap_threshold=timedelta(seconds=gap_seconds),
            idle_grace=timedelta(seconds=idle_seconds),
            history_start=history_start or date(2020, 1, 1),
        )
