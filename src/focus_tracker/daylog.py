"""Reader for the per-day CSV focus logs written by the tracker."""

from __future__ import annotations

import csv
import logging
import sys
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

from .dates import date_id_for
from .models import Sample

logger = logging.getLogger(__name__)

FIELD_COUNT = 5

# Tab URLs (data: URLs in particular) can exceed the default 128 KiB field limit.
csv.field_size_limit(min(sys.maxsize, 2**31 - 1))


class DayLogError(Exception):
    """A day log exists but could not be read as a whole."""


class DayLogMissingError(DayLogError):
    """No log was written for the requested day."""


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp, including a trailing ``Z``."""
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp without offset: {value!r}")
    return parsed


def parse_sample_row(row: Sequence[str]) -> Optional[Sample]:
    """Convert one CSV row to a sample, or ``None`` if the row is malformed.

    Columns: identifier, timestamp, tab name, tab url, had-activity flag.
    """
    if len(row) < FIELD_COUNT:
        return None
    identifier, timestamp, tab_title, tab_url, had_activity = row[:FIELD_COUNT]
    try:
        moment = parse_timestamp(timestamp)
    except ValueError:
        return None
    return Sample(
        identifier=identifier,
        timestamp=moment,
        tab_title=tab_title,
        tab_url=tab_url,
        had_activity=had_activity.strip() == "true",
    )


def parse_rows(rows: Iterable[Sequence[str]]) -> list[Sample]:
    """Parse rows in order, skipping the header and any malformed row."""
    samples: list[Sample] = []
    skipped = 0
    for row in rows:
        sample = parse_sample_row(row)
        if sample is None:
            skipped += 1
            continue
        samples.append(sample)
    if skipped:
        logger.debug("Skipped %d malformed rows.", skipped)
    return samples


def read_day_log(path: Path) -> list[Sample]:
    """Read every valid sample from a day log.

    Raises ``DayLogMissingError`` if the file does not exist and
    ``DayLogError`` if it cannot be read or decoded; a partially read file
    never yields samples.
    """
    try:
        with Path(path).open(newline="", encoding="utf-8") as handle:
            rows = list(csv.reader(handle))
    except FileNotFoundError as exc:
        raise DayLogMissingError(f"No day log at {path}") from exc
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise DayLogError(f"Failed to read day log {path}: {exc}") from exc
    return parse_rows(rows)


def iter_date_ids(start: date, end: date) -> Iterator[int]:
    """Yield YYYYMMDD keys from ``start`` through ``end`` inclusive."""
    day = start
    while day <= end:
        yield date_id_for(day)
        day += timedelta(days=1)
