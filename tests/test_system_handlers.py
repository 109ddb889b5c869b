"""Tests for health, cache and metrics intents."""

import pytest

from gestor.core.exceptions import PermissionDeniedError


async def test_health_check(dispatcher, test_settings):
    result = await dispatcher.dispatch("healthCheck", {}, None)
    assert result["version"] == test_settings.app_version
    assert result["cache"]["remote"] is False


async def test_invalidate_cache_only_touches_caller(dispatcher, user, admin, services):
    await dispatcher.dispatch("criarNovaReceita", {"recipeName": "Pudim"}, user)
    await dispatcher.dispatch("criarNovaReceita", {"recipeName": "Bolo"}, admin)
    await dispatcher.dispatch("listarReceitas", {}, user)
    await dispatcher.dispatch("listarReceitas", {}, admin)

    result = await dispatcher.dispatch("invalidateCache", {}, user)

    assert result["removed"] == 1
    assert (await dispatcher.dispatch("listarReceitas", {}, user))["cached"] is False
    assert (await dispatcher.dispatch("listarReceitas", {}, admin))["cached"] is True


async def test_clear_all_cache_requires_admin(dispatcher, user, admin, services):
    await dispatcher.dispatch("criarNovaReceita", {"recipeName": "Pudim"}, user)
    await dispatcher.dispatch("listarReceitas", {}, user)

    with pytest.raises(PermissionDeniedError):
        await dispatcher.dispatch("clearAllCache", {}, user)

    await dispatcher.dispatch("clearAllCache", {}, admin)
    assert len(services.cache.memory) == 0


async def test_cache_stats(dispatcher, user):
    await dispatcher.dispatch("criarNovaReceita", {"recipeName": "Pudim"}, user)
    await dispatcher.dispatch("listarReceitas", {}, user)
    await dispatcher.dispatch("listarReceitas", {}, user)

    stats = (await dispatcher.dispatch("getCacheStats", {}, user))["stats"]

    assert stats["hits"] == 1
    assert stats["misses"] == 1


async def test_user_metrics(dispatcher, user, services):
    await dispatcher.dispatch("criarNovaReceita", {"recipeName": "Pudim"}, user)
    await services.metrics.flush_all()

    result = await dispatcher.dispatch("getUserMetrics", {"days": 1}, user)

    assert result["period"] == "1 days"
    assert result["metrics"]["actionCounts"] == {"criarNovaReceita": 1}


async def test_system_metrics(dispatcher, user, admin, services):
    await dispatcher.dispatch("criarNovaReceita", {"recipeName": "Pudim"}, user)
    await services.metrics.flush_all()

    result = await dispatcher.dispatch("getSystemMetrics", {"hours": 1}, admin)

    assert result["metrics"]["activeUsers"] == 1
    assert result["period"] == "1h"
