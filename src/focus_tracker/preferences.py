"""JSON preferences document shared by the category store and URL normalizer."""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Mapping

from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

CATEGORIES_KEY = "categories"
CATEGORY_ORDER_KEY = "category_order"
URL_TRUNCATION_KEY = "url_truncation"

_TRUNCATION_ADAPTER = TypeAdapter(dict[str, list[str]])


class PreferencesError(RuntimeError):
    """Raised when the preferences document cannot be written."""


class PreferencesFile:
    """A JSON object on disk; writers only replace the keys they own."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def load(self) -> dict[str, Any]:
        """Return the document, or an empty mapping if absent or malformed."""
        with self._lock:
            return self._read_locked()

    def save(self, updates: Mapping[str, Any]) -> None:
        """Merge ``updates`` into the stored document, keeping all other keys."""
        with self._lock:
            document = self._read_locked()
            document.update(updates)
            tmp = self.path.with_suffix(".tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp.write_text(json.dumps(document, indent=2), encoding="utf-8")
                os.replace(tmp, self.path)
            except OSError as exc:
                tmp.unlink(missing_ok=True)
                raise PreferencesError(f"Failed to write {self.path}: {exc}") from exc
        logger.debug("Saved preferences keys %s to %s", sorted(updates), self.path)

    def _read_locked(self) -> dict[str, Any]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError:
            logger.exception("Failed to read preferences from %s", self.path)
            return {}
        try:
            document = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("Preferences file %s is not valid JSON; ignoring it.", self.path)
            return {}
        if not isinstance(document, dict):
            logger.warning("Preferences file %s is not a JSON object; ignoring it.", self.path)
            return {}
        return document


def load_truncation_rules(document: Mapping[str, Any]) -> dict[str, list[str]]:
    """Extract the ``url_truncation`` section, tolerating a malformed value."""
    raw = document.get(URL_TRUNCATION_KEY)
    if raw is None:
        return {}
    try:
        return _TRUNCATION_ADAPTER.validate_python(raw)
    except ValidationError:
        logger.warning("Ignoring malformed %r section in preferences.", URL_TRUNCATION_KEY)
        return {}
