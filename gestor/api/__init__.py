"""API module exports."""

from gestor.api.deps import Dispatcher, OptionalIdentity, Services
from gestor.api.routes import assistant_router, health_router

__all__ = [
    # Routers
    "assistant_router",
    "health_router",
    # Dependencies
    "Dispatcher",
    "OptionalIdentity",
    "Services",
]
