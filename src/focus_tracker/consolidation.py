"""Consolidate raw focus samples into activity records."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .config import TrackerSettings
from .dates import date_id_for, enrich_date
from .models import Record, Sample
from .normalization import UrlNormalizer

logger = logging.getLogger(__name__)

Categorizer = Callable[[str, str], str]


@dataclass(slots=True)
class Accumulator:
    """The activity currently being extended."""

    exe_path: str
    url: str
    name: str
    date_id: int
    accumulated_seconds: int = 0
    inactive_seconds: int = 0

    def matches(self, exe_path: str, url: str, name: str) -> bool:
        return self.exe_path == exe_path and self.url == url and self.name == name


class Consolidator:
    """Turns one day's ordered samples into non-overlapping records.

    Samples are walked pairwise; the time until the next sample belongs to the
    earlier one. Idle time inside an activity is kept only while the idle
    streak stays under ``settings.idle_grace``; pairs further apart than
    ``settings.gap_threshold`` are treated as the tracker being asleep.
    """

    def __init__(
        self,
        normalizer: UrlNormalizer,
        categorize: Categorizer,
        settings: Optional[TrackerSettings] = None,
    ) -> None:
        self._normalizer = normalizer
        self._categorize = categorize
        self._settings = settings or TrackerSettings()

    def consolidate(self, samples: Iterable[Sample]) -> list[Record]:
        ordered = list(samples)
        gap_limit = int(self._settings.gap_threshold.total_seconds())
        idle_grace = int(self._settings.idle_grace.total_seconds())
        records: list[Record] = []
        current: Optional[Accumulator] = None

        for sample, following in zip(ordered, ordered[1:]):
            if sample.is_off:
                current = self._flush(current, records)
                continue

            duration = int((following.timestamp - sample.timestamp).total_seconds())
            if duration > gap_limit or duration < 0:
                current = self._flush(current, records)
                continue

            url = self._normalizer.normalize(sample.tab_url)
            same = current is not None and current.matches(
                sample.identifier, url, sample.tab_title
            )

            if not sample.had_activity:
                if current is None:
                    continue
                if not same:
                    current = self._flush(current, records)
                    continue
                current.inactive_seconds += duration
                if current.inactive_seconds >= idle_grace:
                    current = self._flush(current, records)
                continue

            if current is not None and same:
                current.accumulated_seconds += current.inactive_seconds + duration
                current.inactive_seconds = 0
                continue

            current = self._flush(current, records)
            current = Accumulator(
                exe_path=sample.identifier,
                url=url,
                name=sample.tab_title,
                date_id=date_id_for(sample.timestamp),
                accumulated_seconds=duration,
            )

        self._flush(current, records)
        logger.debug("Consolidated %d samples into %d records.", len(ordered), len(records))
        return records

    def _flush(self, current: Optional[Accumulator], records: list[Record]) -> None:
        if current is not None and current.accumulated_seconds > 0:
            records.append(
                Record(
                    exe_path=current.exe_path,
                    url=current.url,
                    name=current.name,
                    duration_seconds=current.accumulated_seconds,
                    date_id=current.date_id,
                    date_info=enrich_date(current.date_id),
                    category=self._categorize(current.exe_path, current.url),
                )
            )
        return None
