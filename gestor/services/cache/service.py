"""Main CacheService combining all cache operations."""

import time
from collections.abc import Callable

from gestor.core.config import Settings
from gestor.services.cache.entities import EntityCacheMixin
from gestor.services.cache.memory import MemoryCache
from gestor.services.cache.remote import RemoteCache


class CacheService(EntityCacheMixin):
    """Unified cache with graceful degradation.

    Combines:
    - BaseCacheOperations: get/set/delete with remote fallback, read-through
    - EntityCacheMixin: per-user entity keys, TTLs and invalidation
    """
    pass


def build_cache_service(
    settings: Settings,
    clock: Callable[[], float] = time.monotonic,
) -> CacheService:
    """Create the cache from settings; Upstash is used only when configured."""
    remote = None
    if settings.redis_available:
        remote = RemoteCache.from_credentials(
            settings.upstash_redis_rest_url,
            settings.upstash_redis_rest_token,
        )
    return CacheService(MemoryCache(settings.cache_max_entries, clock=clock), remote)
