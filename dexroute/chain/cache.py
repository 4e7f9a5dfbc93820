"""TTL cache for chain reads."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

_MISSING = object()


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at < self.ttl


class TTLCache:
    """Key -> (value, timestamp) map with per-entry TTL.

    Expired entries are kept until the next purge so they can serve as a
    degraded fallback; get_fresh() never returns them.

    Args:
        clock: Returns current time in seconds
        default_ttl: TTL for entries stored without an explicit one
        purge_threshold: Size above which expired entries are dropped on set()
    """

    def __init__(self, clock: Callable[[], float], default_ttl: float, purge_threshold: int = 50) -> None:
        self._clock = clock
        self.default_ttl = default_ttl
        self.purge_threshold = purge_threshold
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get_fresh(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is not None and entry.is_fresh(self._clock()):
            return entry.value
        return default

    def get_any(self, key: str, default: Any = None) -> Any:
        """Return the cached value regardless of age."""
        entry = self._entries.get(key)
        return entry.value if entry is not None else default

    def has_fresh(self, key: str) -> bool:
        return self.get_fresh(key, _MISSING) is not _MISSING

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        self._entries[key] = CacheEntry(value, self._clock(), self.default_ttl if ttl is None else ttl)
        if len(self._entries) > self.purge_threshold:
            self.purge()

    def purge(self) -> int:
        """Drop expired entries. Returns the number removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if not e.is_fresh(now)]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()


__all__ = ["CacheEntry", "TTLCache"]
