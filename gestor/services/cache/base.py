"""Base cache operations - memory cache with an optional shared backend."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from gestor.core.logging import get_logger
from gestor.services.cache.constants import DEFAULT_TTL
from gestor.services.cache.memory import MemoryCache
from gestor.services.cache.remote import RemoteCache

logger = get_logger(__name__)

T = TypeVar("T")


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (list, dict)) and not value)


class BaseCacheOperations:
    """Low-level cache operations with graceful degradation.

    When a remote backend is configured it is tried first; any failure is
    logged and served by the memory cache instead. Deletes and clears are
    always applied to memory too, so values written during a remote outage
    are invalidated as well. None of these methods raise.
    """

    def __init__(self, memory: MemoryCache, remote: RemoteCache | None = None) -> None:
        self._memory = memory
        self._remote = remote
        self._hits = 0
        self._misses = 0

        if remote is None:
            logger.info("Remote cache not configured, using memory cache")
        else:
            logger.info("Remote cache initialized")

    @property
    def is_remote_available(self) -> bool:
        """Check if a shared backend is configured."""
        return self._remote is not None

    @property
    def memory(self) -> MemoryCache:
        return self._memory

    def _make_key(self, prefix: str, *parts: str | int) -> str:
        """Create a cache key from prefix and parts."""
        return f"{prefix}:{':'.join(str(p) for p in parts)}"

    # ========== Core operations ==========

    async def get(self, key: str) -> Any | None:
        """Get a value, counting the hit or miss."""
        value = await self._get(key)
        if value is None:
            self._misses += 1
        else:
            self._hits += 1
        return value

    async def _get(self, key: str) -> Any | None:
        if self._remote is not None:
            try:
                return await self._remote.get(key)
            except Exception as e:
                logger.warning("Remote cache get failed", key=key, error=str(e))
        return self._memory.get(key)

    async def set(self, key: str, value: Any, ttl: float = DEFAULT_TTL) -> None:
        """Set a value with a TTL in seconds."""
        if self._remote is not None:
            try:
                await self._remote.set(key, value, ttl)
                return
            except Exception as e:
                logger.warning("Remote cache set failed", key=key, error=str(e))
        self._memory.set(key, value, ttl)

    async def delete(self, key: str) -> bool:
        """Delete a key from every backend."""
        deleted = self._memory.delete(key)
        if self._remote is not None:
            try:
                deleted = await self._remote.delete(key) or deleted
            except Exception as e:
                logger.warning("Remote cache delete failed", key=key, error=str(e))
        return deleted

    async def delete_many(self, keys: list[str]) -> int:
        """Delete several keys concurrently."""
        results = await asyncio.gather(*(self.delete(key) for key in keys))
        return sum(1 for deleted in results if deleted)

    async def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``."""
        removed = self._memory.delete_prefix(prefix)
        if self._remote is not None:
            try:
                removed += await self._remote.delete_prefix(prefix)
            except Exception as e:
                logger.warning("Remote cache delete prefix failed", prefix=prefix, error=str(e))
        return removed

    async def clear(self) -> None:
        """Remove everything from every backend."""
        self._memory.clear()
        if self._remote is not None:
            try:
                await self._remote.clear()
            except Exception as e:
                logger.warning("Remote cache clear failed", error=str(e))
        logger.info("Cache cleared")

    def purge_expired(self) -> int:
        """Sweep expired memory entries; the remote backend expires on its own."""
        return self._memory.purge_expired()

    # ========== Read-through helper ==========

    async def read_through(
        self,
        key: str,
        loader: Callable[[], Awaitable[T]],
        ttl: float = DEFAULT_TTL,
    ) -> tuple[T, bool]:
        """Serve ``key`` from cache or load and populate it.

        Returns:
            ``(value, cached)`` where ``cached`` tells whether it was a hit
        """
        cached = await self.get(key)
        if cached is not None:
            return cached, True

        value = await loader()
        if not _is_empty(value):
            await self.set(key, value, ttl)
        return value, False

    # ========== Stats & health ==========

    def get_stats(self) -> dict[str, Any]:
        """Entry count, capacity, hit/miss counters."""
        total = self._hits + self._misses
        return {
            **self._memory.get_stats(),
            "hits": self._hits,
            "misses": self._misses,
            "hitRate": round(self._hits / total, 4) if total else 0.0,
            "remote": self.is_remote_available,
        }

    async def check_health(self, timeout: float = 5.0) -> bool:
        """Memory is always healthy; a configured remote must answer a ping."""
        if self._remote is None:
            return True

        try:
            return await self._remote.ping(timeout=timeout)
        except asyncio.TimeoutError:
            logger.error("Remote cache health check timed out", timeout=timeout)
            return False
        except Exception as e:
            logger.error("Remote cache health check failed", error=str(e))
            return False
