"""Read-through / write-invalidate cache.

- MemoryCache: bounded in-process store, lazy TTL, oldest-first eviction
- RemoteCache: optional shared Upstash Redis backend
- CacheService: unified interface that never raises and falls back to memory
"""

from gestor.services.cache.constants import (
    KEY_PREFIX_ANALYSIS,
    KEY_PREFIX_EXPENSES,
    KEY_PREFIX_INVENTORY,
    KEY_PREFIX_ORDERS,
    KEY_PREFIX_PROFILE,
    KEY_PREFIX_RECIPES,
    TTL_ANALYSIS,
    TTL_EXPENSES,
    TTL_INVENTORY,
    TTL_ORDERS,
    TTL_PROFILE,
    TTL_RECIPES,
)
from gestor.services.cache.entities import normalize_query
from gestor.services.cache.memory import CacheEntry, MemoryCache
from gestor.services.cache.remote import RemoteCache
from gestor.services.cache.service import CacheService, build_cache_service

__all__ = [
    # TTL constants
    "TTL_PROFILE",
    "TTL_EXPENSES",
    "TTL_ORDERS",
    "TTL_RECIPES",
    "TTL_INVENTORY",
    "TTL_ANALYSIS",
    # Key prefix constants
    "KEY_PREFIX_PROFILE",
    "KEY_PREFIX_EXPENSES",
    "KEY_PREFIX_ORDERS",
    "KEY_PREFIX_RECIPES",
    "KEY_PREFIX_INVENTORY",
    "KEY_PREFIX_ANALYSIS",
    # Service
    "CacheEntry",
    "MemoryCache",
    "RemoteCache",
    "CacheService",
    "build_cache_service",
    "normalize_query",
]
