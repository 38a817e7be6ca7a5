"""Shared helpers for building samples, day logs and preferences."""

from __future__ import annotations

import csv
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable, Sequence

import pytest

from focus_tracker.dates import enrich_date
from focus_tracker.models import Record, Sample

BASE_TIME = datetime(2024, 1, 2, 9, 0, 0, tzinfo=timezone.utc)  # a Tuesday


def sample(
    offset: float,
    identifier: str = "chrome.exe",
    *,
    title: str = "Docs",
    url: str = "https://www.example.com/a/1",
    active: bool = True,
    base: datetime = BASE_TIME,
) -> Sample:
    return Sample(
        identifier=identifier,
        timestamp=base + timedelta(seconds=offset),
        tab_title=title,
        tab_url=url,
        had_activity=active,
    )


def off(offset: float, base: datetime = BASE_TIME) -> Sample:
    return Sample(identifier="Off", timestamp=base + timedelta(seconds=offset))


def make_record(
    date_id: int,
    duration: int,
    *,
    category: str = "Other",
    exe_path: str = "chrome.exe",
    url: str = "",
    name: str = "",
) -> Record:
    return Record(
        exe_path=exe_path,
        url=url,
        name=name,
        duration_seconds=duration,
        date_id=date_id,
        date_info=enrich_date(date_id),
        category=category,
    )


def row(
    timestamp: datetime,
    identifier: str = "chrome.exe",
    title: str = "Docs",
    url: str = "https://www.example.com/a/1",
    active: bool = True,
) -> list[str]:
    return [
        identifier,
        timestamp.strftime("%Y-%m-%dT%H:%M:%SZ"),
        title,
        url,
        "true" if active else "false",
    ]


def write_day_log(
    data_dir: Path, date_id: int, rows: Iterable[Sequence[str]], header: bool = True
) -> Path:
    path = data_dir / f"{date_id}.csv"
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        if header:
            writer.writerow(["name", "timestamp", "tabName", "tabUrl", "hadActivity"])
        writer.writerows(rows)
    return path


def write_preferences(data_dir: Path, document: dict[str, Any]) -> Path:
    path = data_dir / "preferences.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """A data directory with preferences and two days of logs."""
    write_preferences(
        tmp_path,
        {
            "categories": {
                "Work": {"sites": ["github.com"], "apps": ["code.exe"]},
                "Entertainment": {"sites": ["youtube.com"], "apps": []},
            },
            "category_order": ["Work", "Entertainment"],
            "url_truncation": {"github.com": ["*/*"]},
            "theme": "dark",
        },
    )
    day1 = datetime(2024, 1, 5, 10, 0, 0, tzinfo=timezone.utc)  # Friday
    write_day_log(
        tmp_path,
        20240105,
        [
            row(day1, "code.exe", "main.py", ""),
            row(day1 + timedelta(seconds=5), "code.exe", "main.py", ""),
            row(day1 + timedelta(seconds=10), "chrome.exe", "PR", "https://github.com/acme/app/pull/1"),
            row(day1 + timedelta(seconds=15), "chrome.exe", "PR", "https://github.com/acme/app/pull/1"),
            row(day1 + timedelta(seconds=20), "Off", "", "", False),
        ],
    )
    day2 = datetime(2024, 1, 6, 20, 0, 0, tzinfo=timezone.utc)  # Saturday
    write_day_log(
        tmp_path,
        20240106,
        [
            row(day2, "chrome.exe", "Cats", "https://www.youtube.com/watch?v=1"),
            row(day2 + timedelta(seconds=5), "chrome.exe", "Cats", "https://www.youtube.com/watch?v=1"),
            row(day2 + timedelta(seconds=10), "chrome.exe", "Cats", "https://www.youtube.com/watch?v=1"),
            row(day2 + timedelta(seconds=15), "Off", "", "", False),
        ],
    )
    return tmp_path
