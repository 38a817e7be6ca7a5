"""Utilities to normalize browser URLs into stable site identities."""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence
from urllib.parse import unquote, urlsplit

logger = logging.getLogger(__name__)

WILDCARD = "*"
_WWW_PREFIX = "www."


class UrlNormalizer:
    """Canonicalize URLs using per-domain truncation patterns.

    ``rules`` maps a base domain (without ``www.``) to an ordered list of
    patterns such as ``"watch/*"`` or ``"r/*/comments"``. Patterns are tried in
    order and the first one matching the whole path wins.
    """

    def __init__(self, rules: Optional[Mapping[str, Sequence[str]]] = None) -> None:
        self._rules: dict[str, tuple[tuple[str, ...], ...]] = {
            domain: tuple(_split_segments(pattern) for pattern in patterns)
            for domain, patterns in (rules or {}).items()
        }

    @property
    def rules(self) -> dict[str, list[str]]:
        return {
            domain: ["/".join(segments) for segments in patterns]
            for domain, patterns in self._rules.items()
        }

    def normalize(self, raw_url: str) -> str:
        if not raw_url:
            return ""

        parse_target = raw_url if "://" in raw_url else f"http://{raw_url}"
        try:
            parts = urlsplit(parse_target)
            # Accessing the port validates it.
            parts.port
        except ValueError:
            logger.debug("Leaving unparseable URL untouched: %s", raw_url)
            return raw_url

        host = parts.netloc.rpartition("@")[2]
        if host.startswith(_WWW_PREFIX):
            host = host[len(_WWW_PREFIX) :]

        patterns = self._rules.get(host)
        if not patterns:
            return host

        path_segments = _split_segments(unquote(parts.path))
        for pattern in patterns:
            matched = _match_segments(pattern, path_segments)
            if matched is None:
                continue
            if matched:
                return host + "/" + "/".join(matched)
            return host
        return host


def _split_segments(path: str) -> tuple[str, ...]:
    trimmed = path.strip("/")
    if not trimmed:
        return ()
    return tuple(trimmed.split("/"))


def _match_segments(
    pattern: tuple[str, ...], path: tuple[str, ...]
) -> Optional[tuple[str, ...]]:
    if len(pattern) != len(path):
        return None
    for expected, actual in zip(pattern, path):
        if expected != WILDCARD and expected != actual:
            return None
    return path
