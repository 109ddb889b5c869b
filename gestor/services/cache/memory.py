"""Bounded in-process cache with lazy TTL expiry."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from gestor.core.logging import get_logger
from gestor.services.cache.constants import DEFAULT_MAX_ENTRIES, EVICTION_FRACTION

logger = get_logger(__name__)


@dataclass(slots=True)
class CacheEntry:
    payload: Any
    created_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.created_at > self.ttl


class MemoryCache:
    """Dictionary-backed cache.

    Entries keep insertion order, so the front of the dict is always the
    oldest write. Expiry is checked when a key is read; ``purge_expired``
    sweeps the rest and is meant to run periodically.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._max_entries = max_entries
        self._clock = clock

    @property
    def capacity(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry.payload

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store ``value``; rewriting a key moves it to the newest position."""
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self._max_entries:
            self._evict()
        self._entries[key] = CacheEntry(payload=value, created_at=self._clock(), ttl=ttl)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> int:
        keys = [k for k in self._entries if k.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry, returning how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def get_stats(self) -> dict[str, int]:
        return {"count": len(self._entries), "capacity": self._max_entries}

    def _evict(self) -> None:
        removed = self.purge_expired()
        if len(self._entries) < self._max_entries:
            logger.debug("Cache evicted expired entries", removed=removed)
            return

        to_remove = max(1, int(self._max_entries * EVICTION_FRACTION))
        for key in list(self._entries)[:to_remove]:
            del self._entries[key]
        logger.debug("Cache evicted oldest entries", removed=removed + to_remove)
