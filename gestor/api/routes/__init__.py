"""Routes module exports."""

from gestor.api.routes.assistant import router as assistant_router
from gestor.api.routes.health import router as health_router

__all__ = [
    "assistant_router",
    "health_router",
]
