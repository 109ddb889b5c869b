"""Service wiring.

Everything stateful (store, cache, metrics buffers, limiter, AI client) is
built once per application and handed to the dispatcher and handlers.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gestor.core.config import Settings, get_settings
from gestor.db.session import get_session_factory
from gestor.db.store import DocumentStore
from gestor.services.cache import CacheService, build_cache_service
from gestor.services.llm import LLMService
from gestor.services.metrics import MetricsCollector
from gestor.services.plan_limits import PlanLimiter


@dataclass
class AppServices:
    settings: Settings
    store: DocumentStore
    cache: CacheService
    metrics: MetricsCollector
    limiter: PlanLimiter
    llm: LLMService


def build_services(
    settings: Settings | None = None,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    clock: Callable[[], float] = time.monotonic,
    llm: LLMService | None = None,
) -> AppServices:
    """Assemble the application services from settings."""
    settings = settings or get_settings()
    store = DocumentStore(session_factory or get_session_factory())

    return AppServices(
        settings=settings,
        store=store,
        cache=build_cache_service(settings, clock=clock),
        metrics=MetricsCollector(
            store,
            buffer_size=settings.metrics_buffer_size,
            slow_threshold_ms=settings.metrics_slow_threshold_ms,
        ),
        limiter=PlanLimiter(store),
        llm=llm or LLMService(settings),
    )
