"""Helpers for locating application directories."""

from __future__ import annotations

from pathlib import Path

from platformdirs import PlatformDirs


APP_NAME = "tracker_data"
APP_AUTHOR = "FocusTracker"


def get_data_dir() -> Path:
    """Return the directory holding day logs and preferences."""
    dirs = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=False)
    path = Path(dirs.user_data_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_preferences_path(data_dir: Path | None = None) -> Path:
    return (data_dir or get_data_dir()) / "preferences.json"


def get_day_log_path(date_id: int, data_dir: Path | None = None) -> Path:
    return (data_dir or get_data_dir()) / f"{date_id}.csv"
