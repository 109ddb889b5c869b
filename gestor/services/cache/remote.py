"""Shared Upstash Redis backend.

Operations raise on failure; the caller decides how to degrade.
"""

import asyncio
import json
from typing import Any

from upstash_redis.asyncio import Redis

from gestor.core.logging import get_logger
from gestor.services.cache.constants import REMOTE_NAMESPACE

logger = get_logger(__name__)


class RemoteCache:
    """JSON values in Redis under a private key namespace."""

    def __init__(self, client: Redis, namespace: str = REMOTE_NAMESPACE) -> None:
        self._client = client
        self._namespace = namespace

    @classmethod
    def from_credentials(cls, url: str, token: str) -> "RemoteCache":
        return cls(Redis(url=url, token=token))

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> Any | None:
        result = await self._client.get(self._key(key))
        if result is None:
            return None
        return json.loads(result)

    async def set(self, key: str, value: Any, ttl: float) -> None:
        await self._client.set(self._key(key), json.dumps(value), ex=max(1, int(ttl)))

    async def delete(self, key: str) -> bool:
        return bool(await self._client.delete(self._key(key)))

    async def delete_prefix(self, prefix: str) -> int:
        # Upstash supports KEYS; key counts per prefix stay small
        keys = await self._client.keys(f"{self._key(prefix)}*")
        if keys:
            await self._client.delete(*keys)
        return len(keys or [])

    async def clear(self) -> None:
        await self.delete_prefix("")

    async def ping(self, timeout: float = 5.0) -> bool:
        return bool(await asyncio.wait_for(self._client.ping(), timeout=timeout))
