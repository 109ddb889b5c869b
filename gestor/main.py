"""FastAPI application entry point."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.gzip import GZipMiddleware

from gestor.api import assistant_router, health_router
from gestor.core.config import get_settings
from gestor.core.exceptions import (
    AppError,
    app_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from gestor.core.logging import get_logger, setup_logging
from gestor.db.session import close_db, init_db
from gestor.services.container import build_services
from gestor.services.handlers import build_dispatcher
from gestor.services.scheduler import build_scheduler, shutdown_scheduler, start_scheduler

# Initialize logging first
setup_logging()
logger = get_logger(__name__)


async def _init_db_with_retry(attempts: int = 3) -> None:
    """Initialize database with retry logic for transient connection failures."""
    for attempt in range(attempts):
        try:
            await init_db()
            return
        except Exception as exc:
            if attempt == attempts - 1:
                logger.error(
                    "Failed to initialize database",
                    attempts=attempts,
                    error=str(exc),
                )
                raise
            logger.warning(
                "Database init failed, retrying...",
                attempt=attempt + 1,
                error=str(exc),
            )
            await asyncio.sleep(2 ** attempt)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events.

    Startup:
    - Initialize database connections
    - Build the services and the intent dispatcher
    - Pre-warm LLM adapters to eliminate first-request latency
    - Start the maintenance scheduler (metrics flush, cache purge,
      health check, metrics cleanup)

    Shutdown:
    - Stop the scheduler and flush pending metrics
    - Close database connections
    """
    settings = get_settings()

    logger.info(
        "Starting application",
        app_name=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
    )

    await _init_db_with_retry()
    logger.info("Database initialized")

    services = build_services(settings)
    app.state.services = services
    app.state.dispatcher = build_dispatcher(services)
    logger.info(
        "Services ready",
        intents=len(app.state.dispatcher.intents),
        remote_cache=services.cache.is_remote_available,
    )

    services.llm.prewarm_adapters()

    scheduler = build_scheduler(services)
    start_scheduler(scheduler)

    yield

    # Cleanup
    logger.info("Shutting down application")

    shutdown_scheduler(scheduler)

    await services.metrics.flush_all()
    logger.info("Pending metrics flushed")

    await close_db()
    logger.info("Database connections closed")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: Any, hsts: bool = True) -> None:
        super().__init__(app)
        self.hsts = hsts

    async def dispatch(self, request: Any, call_next: Any) -> Any:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if self.hsts:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Assistente de gestão para confeitarias: despesas, pedidos, receitas e estoque",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    app.add_middleware(SecurityHeadersMiddleware, hsts=not settings.debug)

    # GZip compression for responses
    app.add_middleware(GZipMiddleware, minimum_size=500)

    # Register exception handlers
    app.add_exception_handler(AppError, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Include routers
    app.include_router(health_router)
    app.include_router(assistant_router, prefix="/api/v1")

    return app


# Create application instance
app = create_app()
