"""Services module exports."""

from gestor.services.cache import CacheService, build_cache_service
from gestor.services.container import AppServices, build_services
from gestor.services.dispatcher import IntentDispatcher
from gestor.services.llm import LLMService
from gestor.services.metrics import MetricsCollector, with_timing
from gestor.services.plan_limits import PlanLimiter, PlanTier

__all__ = [
    # Cache
    "CacheService",
    "build_cache_service",
    # Wiring
    "AppServices",
    "build_services",
    # Dispatch
    "IntentDispatcher",
    # LLM
    "LLMService",
    # Metrics
    "MetricsCollector",
    "with_timing",
    # Plan limits
    "PlanLimiter",
    "PlanTier",
]
