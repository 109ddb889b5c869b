"""Health, cache and metrics intents."""

from typing import Any

from gestor.core.logging import get_logger
from gestor.core.security import Identity
from gestor.db.store import utc_timestamp
from gestor.services.handlers.base import HandlerGroup, parse_payload, require_identity
from gestor.services.handlers.schemas import SystemMetricsRequest, UserMetricsRequest
from gestor.services.metrics import Handler, get_system_metrics, get_user_metrics

logger = get_logger(__name__)

FEATURES = ["cache", "monitoring", "backup", "onboarding", "admin"]


class SystemHandlers(HandlerGroup):
    def intents(self) -> dict[str, Handler]:
        return {
            "healthCheck": self.health_check,
            "getCacheStats": self.get_cache_stats,
            "invalidateCache": self.invalidate_cache,
            "clearAllCache": self.clear_all_cache,
            "getUserMetrics": self.get_user_metrics,
            "getSystemMetrics": self.get_system_metrics,
        }

    async def health_check(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        return {
            "success": True,
            "message": "O sistema está online e a operar!",
            "version": self.settings.app_version,
            "features": FEATURES,
            "cache": self.cache.get_stats(),
            "timestamp": utc_timestamp(),
        }

    async def get_cache_stats(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        require_identity(identity)
        return {
            "success": True,
            "message": "Estatísticas do cache obtidas",
            "stats": self.cache.get_stats(),
        }

    async def invalidate_cache(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        removed = await self.cache.invalidate_user_cache(uid)
        removed += await self.cache.invalidate_user_analyses(uid)
        return {
            "success": True,
            "message": "Cache do usuário invalidado com sucesso",
            "removed": removed,
        }

    async def clear_all_cache(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        await self.require_admin(identity)
        await self.cache.clear()
        logger.warning("Cache cleared by admin")
        return {"success": True, "message": "Cache limpo com sucesso"}

    async def get_user_metrics(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        request = parse_payload(UserMetricsRequest, payload)

        metrics = await get_user_metrics(self.store, uid, days=request.days)
        return {"success": True, "metrics": metrics, "period": f"{request.days} days"}

    async def get_system_metrics(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        await self.require_admin(identity)
        request = parse_payload(SystemMetricsRequest, payload)

        metrics = await get_system_metrics(
            self.store,
            hours=request.hours,
            cache_hit_rate=self.cache.get_stats()["hitRate"],
        )
        return {"success": True, "metrics": metrics, "period": f"{request.hours}h"}
