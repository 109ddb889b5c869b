"""Health check and monitoring endpoints."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from gestor.api.deps import Services
from gestor.api.schemas import HealthResponse, ServiceHealth
from gestor.core.config import get_settings
from gestor.db.session import check_db_health

router = APIRouter(tags=["Health"])


def _database_type(url: str) -> str:
    return "sqlite" if url.startswith("sqlite") else "postgresql"


@router.get(
    "/",
    summary="Root endpoint",
    response_description="API information and basic health status",
)
async def root() -> dict[str, Any]:
    """Basic API metadata: name, version, environment and server time."""
    settings = get_settings()

    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "healthy",
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "documentation": "/docs",
    }


async def _timed_health_check(
    name: str,
    check_fn: Callable[[], Awaitable[bool]],
    timeout: float = 5.0,
) -> tuple[str, bool, float, str | None]:
    """Execute a health check and measure its latency with timeout.

    Returns:
        Tuple of (name, healthy, latency_ms, error_message)
    """
    start = time.perf_counter()
    try:
        result = await asyncio.wait_for(check_fn(), timeout=timeout)
        latency = (time.perf_counter() - start) * 1000
        return (name, result, latency, None)
    except asyncio.TimeoutError:
        latency = (time.perf_counter() - start) * 1000
        return (name, False, latency, f"Health check timed out after {timeout}s")
    except Exception as e:
        latency = (time.perf_counter() - start) * 1000
        return (name, False, latency, str(e))


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Comprehensive health check",
    response_description="Detailed health status of all services",
)
async def health_check(services: Services) -> HealthResponse:
    """
    Health of the document store and the cache, checked in parallel.

    - **Database** failing makes the service `unhealthy`.
    - **Cache** failing only degrades it: the in-process tier keeps serving.
    """
    settings = services.settings
    cache = services.cache

    results = await asyncio.gather(
        _timed_health_check("database", check_db_health),
        _timed_health_check("cache", cache.check_health),
    )

    checks: dict[str, ServiceHealth] = {}
    overall_status = "healthy"

    for name, healthy, latency, error in results:
        if name == "database":
            details: dict[str, Any] = {"type": _database_type(settings.processed_database_url)}
            if error:
                details["error"] = error
            checks["database"] = ServiceHealth(
                status="healthy" if healthy else "unhealthy",
                latency_ms=round(latency, 2),
                details=details,
            )
            if not healthy:
                overall_status = "unhealthy"
        else:
            cache_details: dict[str, Any] = {
                "provider": "upstash" if cache.is_remote_available else "memory",
                **cache.get_stats(),
            }
            if error:
                cache_details["error"] = error
            checks["cache"] = ServiceHealth(
                status="healthy" if healthy else "degraded",
                latency_ms=round(latency, 2),
                details=cache_details,
            )
            if not healthy and overall_status == "healthy":
                overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        services=checks,
    )


@router.get(
    "/health/live",
    summary="Liveness probe",
    response_description="Simple liveness check for orchestrators",
)
async def liveness() -> dict[str, str]:
    """Returns 200 while the process is running; no dependency checks."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get(
    "/health/ready",
    summary="Readiness probe",
    response_description="Readiness check for load balancers",
)
async def readiness() -> JSONResponse:
    """
    Returns 200 once the database answers, 503 Service Unavailable otherwise.
    """
    try:
        db_healthy = await asyncio.wait_for(check_db_health(), timeout=5.0)
    except asyncio.TimeoutError:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_timeout",
                "message": "Database health check timed out after 5s",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    if not db_healthy:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
                "message": "Database connection failed",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "ready",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
