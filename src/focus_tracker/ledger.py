"""In-memory record arena and the query surface built on top of it."""

from __future__ import annotations

import dataclasses
import logging
import threading
from datetime import date
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence

from .aggregation import aggregate
from .categories import CategoriesResponse, CategorySnapshot, CategoryStore
from .config import TrackerSettings
from .consolidation import Consolidator
from .daylog import DayLogError, DayLogMissingError, iter_date_ids, read_day_log
from .models import Aggregation, Record, Sample
from .normalization import UrlNormalizer
from .paths import get_day_log_path, get_preferences_path
from .preferences import PreferencesFile, load_truncation_rules

logger = logging.getLogger(__name__)


class RecordArena:
    """Records held per day; each day's list is replaced as a whole."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._days: dict[int, tuple[Record, ...]] = {}

    def put_day(self, date_id: int, records: Iterable[Record]) -> None:
        with self._lock:
            self._days[date_id] = tuple(records)

    def drop_day(self, date_id: int) -> None:
        with self._lock:
            self._days.pop(date_id, None)

    def days(self) -> list[int]:
        with self._lock:
            return sorted(self._days)

    def records(self) -> list[Record]:
        with self._lock:
            days = [self._days[key] for key in sorted(self._days)]
        return [record for day in days for record in day]

    def __len__(self) -> int:
        with self._lock:
            return sum(len(day) for day in self._days.values())

    def recategorize(self, snapshot: CategorySnapshot) -> None:
        """Recompute every record's category from ``snapshot``."""
        with self._lock:
            for date_id, day in self._days.items():
                self._days[date_id] = _recategorized(day, snapshot)
        logger.debug("Recategorized records at category version %d.", snapshot.version)


def _recategorized(records: Iterable[Record], snapshot: CategorySnapshot) -> tuple[Record, ...]:
    refreshed = []
    for record in records:
        category = snapshot.categorize(record.exe_path, record.url)
        if category != record.category:
            record = dataclasses.replace(record, category=category)
        refreshed.append(record)
    return tuple(refreshed)


class ActivityLedger:
    """Owns the category store, URL rules and consolidated records."""

    def __init__(
        self,
        store: CategoryStore,
        normalizer: UrlNormalizer,
        *,
        data_dir: Optional[Path] = None,
        settings: Optional[TrackerSettings] = None,
    ) -> None:
        self.store = store
        self.normalizer = normalizer
        self.data_dir = Path(data_dir) if data_dir is not None else None
        self.settings = settings or TrackerSettings()
        self.arena = RecordArena()
        self._errors_lock = threading.Lock()
        self._day_errors: dict[int, str] = {}
        store.add_reassign_listener(self.arena.recategorize)

    @classmethod
    def from_data_dir(
        cls, data_dir: Path, settings: Optional[TrackerSettings] = None
    ) -> "ActivityLedger":
        """Load preferences from ``data_dir`` and wire persistence back to them."""
        preferences = PreferencesFile(get_preferences_path(Path(data_dir)))
        document = preferences.load()
        store = CategoryStore.from_document(document, persist=preferences.save)
        normalizer = UrlNormalizer(load_truncation_rules(document))
        return cls(store, normalizer, data_dir=data_dir, settings=settings)

    def consolidate_day(self, date_id: int, samples: Sequence[Sample]) -> list[Record]:
        """Consolidate one day's samples and install them in the arena."""
        snapshot = self.store.snapshot()
        consolidator = Consolidator(self.normalizer, snapshot.categorize, self.settings)
        records = consolidator.consolidate(samples)
        with self.store.lock:
            current = self.store.snapshot()
            if current.version != snapshot.version:
                records = list(_recategorized(records, current))
            self.arena.put_day(date_id, records)
        return records

    def load_day(self, date_id: int) -> list[Record]:
        """Read and consolidate the log for ``date_id``.

        Read failures are recorded in ``day_errors`` and leave the day empty.
        """
        path = get_day_log_path(date_id, self.data_dir)
        try:
            samples = read_day_log(path)
        except DayLogMissingError:
            logger.debug("No day log for %d.", date_id)
            self._record_error(date_id, None)
            self.arena.drop_day(date_id)
            return []
        except DayLogError as exc:
            logger.warning("Skipping day %d: %s", date_id, exc)
            self._record_error(date_id, str(exc))
            self.arena.put_day(date_id, ())
            return []
        self._record_error(date_id, None)
        return self.consolidate_day(date_id, samples)

    def load_history(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> int:
        """Load every day from ``start`` (default: settings) through ``end`` (today)."""
        first = start or self.settings.history_start
        last = end or date.today()
        loaded = 0
        for date_id in iter_date_ids(first, last):
            if stop_event is not None and stop_event.is_set():
                logger.info("History loading interrupted at %d.", date_id)
                break
            loaded += len(self.load_day(date_id))
        logger.info("Loaded %d records from %s to %s.", loaded, first, last)
        return loaded

    def _record_error(self, date_id: int, message: Optional[str]) -> None:
        with self._errors_lock:
            if message is None:
                self._day_errors.pop(date_id, None)
            else:
                self._day_errors[date_id] = message

    @property
    def day_errors(self) -> dict[int, str]:
        with self._errors_lock:
            return dict(self._day_errors)

    def get_aggregations(
        self, groupers: Sequence[str], filters: Optional[Mapping[str, str]] = None
    ) -> list[Aggregation]:
        return aggregate(self.arena.records(), groupers, filters or {})

    def get_categories(self) -> CategoriesResponse:
        return self.store.get_categories()

    def set_item_category(self, identifier: str, category: str, is_app: bool) -> None:
        self.store.set_item_category(identifier, category, is_app)

    def create_category(self, name: str) -> None:
        self.store.create_category(name)

    def reorder_categories(self, order: Sequence[str]) -> None:
        self.store.reorder_categories(order)
