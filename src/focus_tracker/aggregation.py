"""Group records along caller-chosen dimensions and total their durations."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from .models import Aggregation, Grouper, Record


class InvalidFilterError(ValueError):
    pass


def parse_groupers(names: Iterable[str]) -> list[Grouper]:
    """Resolve grouper tags, raising ``ValueError`` for an unknown one."""
    groupers: list[Grouper] = []
    for name in names:
        try:
            groupers.append(Grouper(name))
        except ValueError as exc:
            raise ValueError(f"unknown grouper '{name}'") from exc
    return groupers


def _date_bound(filters: Mapping[str, str], key: str) -> int | None:
    value = filters.get(key)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise InvalidFilterError(f"{key} must be a YYYYMMDD integer, got {value!r}") from exc


def build_filter(filters: Mapping[str, str]):
    """Return a predicate accepting records that satisfy every known filter.

    Unknown keys are ignored.
    """
    start = _date_bound(filters, "start_date")
    end = _date_bound(filters, "end_date")
    category = filters.get("category")
    exe_path = filters.get("exe_path")
    name = filters.get("name")
    url = filters.get("url")
    weekend = filters.get("is_weekend")

    def matches(record: Record) -> bool:
        if start is not None and record.date_id < start:
            return False
        if end is not None and record.date_id > end:
            return False
        if category is not None and record.category != category:
            return False
        if exe_path is not None and record.exe_path != exe_path:
            return False
        if name is not None and record.name != name:
            return False
        if url is not None and url not in record.url:
            return False
        if weekend is not None and record.date_info.is_weekend != (weekend == "true"):
            return False
        return True

    return matches


def aggregate(
    records: Iterable[Record],
    groupers: Sequence[Grouper | str],
    filters: Mapping[str, str] | None = None,
) -> list[Aggregation]:
    """Sum record durations per distinct combination of grouper values.

    Results appear in order of first occurrence; callers sort as needed.
    """
    resolved = parse_groupers(groupers)
    matches = build_filter(filters or {})
    buckets: dict[tuple[Any, ...], Aggregation] = {}

    for record in records:
        if not matches(record):
            continue
        values = tuple(grouper.value_of(record) for grouper in resolved)
        bucket = buckets.get(values)
        if bucket is None:
            bucket = Aggregation(
                groupers={
                    grouper.value: value for grouper, value in zip(resolved, values)
                }
            )
            buckets[values] = bucket
        bucket.duration_seconds += record.duration_seconds

    return list(buckets.values())
