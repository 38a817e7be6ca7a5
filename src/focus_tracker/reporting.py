"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from typing import Iterable, Sequence

from .models import Aggregation


def sort_aggregations(aggregations: Iterable[Aggregation]) -> list[Aggregation]:
    return sorted(aggregations, key=lambda item: item.duration_seconds, reverse=True)


def print_aggregations(
    aggregations: Iterable[Aggregation], groupers: Sequence[str], limit: int | None = None
) -> None:
    """Render aggregations as a table, longest first."""
    rows = sort_aggregations(aggregations)
    if not rows:
        print("No activity recorded for the selected filters.")
        return

    total = sum(row.duration_seconds for row in rows)
    header = "  ".join(f"{name:<24}" for name in groupers)
    print(f"{header}  {'time':>10}".lstrip())
    print("-" * (26 * len(groupers) + 10))
    for row in rows[:limit] if limit else rows:
        labels = "  ".join(
            f"{_label(row.groupers.get(name))[:24]:<24}" for name in groupers
        )
        print(f"{labels}  {format_duration(row.duration_seconds):>10}".lstrip())
    print()
    print(f"Total: {format_duration(total)}")


def _label(value: object) -> str:
    if value is None or value == "":
        return "(none)"
    return str(value)


def format_duration(seconds: float) -> str:
    total_seconds = int(round(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
