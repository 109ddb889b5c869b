"""Per-user entity cache helpers."""

import hashlib
import re
from typing import Any

from gestor.core.logging import get_logger
from gestor.services.cache.base import BaseCacheOperations
from gestor.services.cache.constants import (
    DEFAULT_TTL,
    ENTITY_TTLS,
    KEY_PREFIX_ANALYSIS,
    KEY_PREFIX_PROFILE,
    TTL_ANALYSIS,
    TTL_PROFILE,
    USER_ENTITY_KINDS,
)

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_query(query: str) -> str:
    """Trim, collapse whitespace and lower-case an analysis query."""
    return _WHITESPACE.sub(" ", query.strip()).lower()


class EntityCacheMixin(BaseCacheOperations):
    """Keys and TTLs for the per-user collections."""

    def entity_key(self, kind: str, uid: str) -> str:
        return self._make_key(kind, uid)

    def entity_ttl(self, kind: str) -> int:
        return ENTITY_TTLS.get(kind, DEFAULT_TTL)

    def analysis_key(self, uid: str, query: str) -> str:
        digest = hashlib.sha256(normalize_query(query).encode("utf-8")).hexdigest()
        return self._make_key(KEY_PREFIX_ANALYSIS, uid, digest)

    async def get_user_profile(self, uid: str) -> dict[str, Any] | None:
        return await self.get(self.entity_key(KEY_PREFIX_PROFILE, uid))

    async def set_user_profile(self, uid: str, profile: dict[str, Any]) -> None:
        await self.set(self.entity_key(KEY_PREFIX_PROFILE, uid), profile, TTL_PROFILE)

    async def get_analysis(self, uid: str, query: str) -> dict[str, Any] | None:
        return await self.get(self.analysis_key(uid, query))

    async def set_analysis(self, uid: str, query: str, result: dict[str, Any]) -> None:
        await self.set(self.analysis_key(uid, query), result, TTL_ANALYSIS)

    async def invalidate_entity(self, kind: str, uid: str) -> bool:
        return await self.delete(self.entity_key(kind, uid))

    async def invalidate_user_cache(self, uid: str) -> int:
        """Drop the profile and every collection listing of a user."""
        removed = await self.delete_many(
            [self.entity_key(kind, uid) for kind in USER_ENTITY_KINDS]
        )
        logger.debug("User cache invalidated", user_id=uid, removed=removed)
        return removed

    async def invalidate_user_analyses(self, uid: str) -> int:
        return await self.delete_prefix(self._make_key(KEY_PREFIX_ANALYSIS, uid) + ":")
