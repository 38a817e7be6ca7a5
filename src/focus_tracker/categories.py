"""Identifier to category assignments with a reverse index and display order."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from .preferences import CATEGORIES_KEY, CATEGORY_ORDER_KEY

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ("Work", "Productivity", "Entertainment", "Games")
UNCATEGORIZED = "Other"


class CategoryStoreError(ValueError):
    """Base class for rejected category store operations."""


class AlreadyExistsError(CategoryStoreError):
    pass


class UnknownCategoryError(CategoryStoreError):
    pass


class InvalidOrderError(CategoryStoreError):
    pass


class CategoryItems(BaseModel):
    """Identifiers assigned to one category."""

    sites: list[str] = Field(default_factory=list)
    apps: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("sites", "apps", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class CategoriesResponse(BaseModel):
    categories: dict[str, CategoryItems]
    order: list[str]


_ORDER_ADAPTER = TypeAdapter(list[str])

PersistHook = Callable[[dict[str, Any]], None]


@dataclass(slots=True, frozen=True)
class CategorySnapshot:
    """Immutable view of the assignments at one store version.

    URL matching scans identifiers longest first, then alphabetically, so the
    most specific identifier wins when several are contained in a URL.
    """

    version: int
    assignments: Mapping[str, str]
    scan_order: tuple[str, ...]

    @classmethod
    def build(cls, version: int, assignments: Mapping[str, str]) -> "CategorySnapshot":
        return cls(
            version=version,
            assignments=MappingProxyType(dict(assignments)),
            scan_order=tuple(sorted(assignments, key=lambda key: (-len(key), key))),
        )

    def categorize(self, exe_path: str, url: str) -> str:
        if url:
            for identifier in self.scan_order:
                if identifier in url:
                    return self.assignments[identifier]
            return UNCATEGORIZED
        return self.assignments.get(exe_path, UNCATEGORIZED)


ReassignHook = Callable[[CategorySnapshot], None]


class CategoryStore:
    """Mutable category assignments shared by the loader and API callers.

    Every mutation runs under ``lock`` together with the reassignment
    listeners, so a listener sweeping cached records observes the store either
    entirely before or entirely after a change.
    """

    def __init__(
        self,
        categories: Optional[Mapping[str, CategoryItems]] = None,
        order: Optional[Sequence[str]] = None,
        *,
        persist: Optional[PersistHook] = None,
    ) -> None:
        self.lock = threading.RLock()
        self._persist = persist
        self._listeners: list[ReassignHook] = []
        self._reverse: dict[str, CategoryItems] = {}
        self._forward: dict[str, str] = {}
        self._version = 0
        self._snapshot: Optional[CategorySnapshot] = None

        for name, items in (categories or {}).items():
            self._reverse[name] = CategoryItems(
                sites=self._claim(name, items.sites),
                apps=self._claim(name, items.apps),
            )
        self._order = _reconcile_order(order or (), self._reverse)

    @classmethod
    def from_document(
        cls, document: Mapping[str, Any], *, persist: Optional[PersistHook] = None
    ) -> "CategoryStore":
        """Build a store from a preferences document.

        Categories that fail validation are dropped one by one. The default
        categories are used when nothing usable remains, but they are only
        written back when the document had no ``categories`` section at all,
        so a damaged file is never overwritten on load.
        """
        raw = document.get(CATEGORIES_KEY)
        categories = _validate_categories(raw)
        order: list[str] = []
        try:
            order = _ORDER_ADAPTER.validate_python(document.get(CATEGORY_ORDER_KEY) or [])
        except ValidationError:
            logger.warning("Ignoring malformed %r section in preferences.", CATEGORY_ORDER_KEY)

        if categories:
            return cls(categories, order, persist=persist)

        store = cls(
            {name: CategoryItems() for name in DEFAULT_CATEGORIES},
            DEFAULT_CATEGORIES,
            persist=persist,
        )
        if raw:
            logger.warning("No usable categories in preferences; using defaults in memory.")
        else:
            logger.info("No categories configured; using defaults.")
            store.save()
        return store

    def _claim(self, category: str, identifiers: Iterable[str]) -> list[str]:
        claimed: list[str] = []
        for identifier in identifiers:
            owner = self._forward.get(identifier)
            if owner is not None:
                logger.warning(
                    "Identifier %r listed under %r and %r; keeping %r.",
                    identifier,
                    owner,
                    category,
                    owner,
                )
                continue
            self._forward[identifier] = category
            claimed.append(identifier)
        return claimed

    @property
    def version(self) -> int:
        return self._version

    @property
    def order(self) -> list[str]:
        with self.lock:
            return list(self._order)

    def snapshot(self) -> CategorySnapshot:
        with self.lock:
            if self._snapshot is None or self._snapshot.version != self._version:
                self._snapshot = CategorySnapshot.build(self._version, self._forward)
            return self._snapshot

    def categorize(self, exe_path: str, url: str) -> str:
        return self.snapshot().categorize(exe_path, url)

    def category_of(self, identifier: str) -> Optional[str]:
        with self.lock:
            return self._forward.get(identifier)

    def get_categories(self) -> CategoriesResponse:
        with self.lock:
            return CategoriesResponse(
                categories={
                    name: items.model_copy(deep=True)
                    for name, items in self._reverse.items()
                },
                order=list(self._order),
            )

    def to_document(self) -> dict[str, Any]:
        with self.lock:
            return {
                CATEGORIES_KEY: {
                    name: items.model_dump() for name, items in self._reverse.items()
                },
                CATEGORY_ORDER_KEY: list(self._order),
            }

    def add_reassign_listener(self, listener: ReassignHook) -> None:
        with self.lock:
            self._listeners.append(listener)

    def set_item_category(self, identifier: str, category: str, is_app: bool) -> None:
        """Move ``identifier`` into ``category``; an empty category uncategorizes it."""
        if not identifier:
            raise CategoryStoreError("identifier must not be empty")
        with self.lock:
            if category and category not in self._reverse:
                raise UnknownCategoryError(f"unknown category '{category}'")

            previous = self._forward.pop(identifier, None)
            if previous is not None:
                items = self._reverse[previous]
                items.apps = [item for item in items.apps if item != identifier]
                items.sites = [item for item in items.sites if item != identifier]

            if category:
                items = self._reverse[category]
                bucket = items.apps if is_app else items.sites
                bucket.append(identifier)
                self._forward[identifier] = category

            self._version += 1
            logger.info(
                "Moved %r from %r to %r.", identifier, previous, category or None
            )
            snapshot = self.snapshot()
            for listener in self._listeners:
                listener(snapshot)
            self.save()

    def create_category(self, name: str) -> None:
        name = name.strip()
        if not name:
            raise CategoryStoreError("category name must not be empty")
        with self.lock:
            if name in self._reverse:
                raise AlreadyExistsError(f"category '{name}' already exists")
            self._reverse[name] = CategoryItems()
            self._order.append(name)
            logger.info("Created category %r.", name)
            self.save()

    def reorder_categories(self, order: Sequence[str]) -> None:
        with self.lock:
            new_order = list(order)
            if len(new_order) != len(self._reverse):
                raise InvalidOrderError(
                    "order length does not match number of categories"
                )
            for name in new_order:
                if name not in self._reverse:
                    raise UnknownCategoryError(f"unknown category '{name}'")
            if len(set(new_order)) != len(new_order):
                raise InvalidOrderError("order lists a category more than once")
            self._order = new_order
            self.save()

    def save(self) -> None:
        if self._persist is None:
            return
        self._persist(self.to_document())


def _validate_categories(raw: Any) -> dict[str, CategoryItems]:
    if not raw:
        return {}
    if not isinstance(raw, Mapping):
        logger.warning("Ignoring malformed %r section in preferences.", CATEGORIES_KEY)
        return {}
    categories: dict[str, CategoryItems] = {}
    for name, items in raw.items():
        try:
            categories[str(name)] = CategoryItems.model_validate(items or {})
        except ValidationError:
            logger.warning("Ignoring malformed category %r in preferences.", name)
    return categories


def _reconcile_order(order: Iterable[str], categories: Mapping[str, Any]) -> list[str]:
    """Drop unknown or repeated names and append categories the order misses."""
    reconciled: list[str] = []
    for name in order:
        if name in categories and name not in reconciled:
            reconciled.append(name)
    for name in categories:
        if name not in reconciled:
            reconciled.append(name)
    return reconciled
