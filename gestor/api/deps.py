"""API dependencies for FastAPI routes."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from gestor.core.logging import get_logger
from gestor.core.security import Identity, decode_identity_token
from gestor.services.container import AppServices
from gestor.services.dispatcher import IntentDispatcher

logger = get_logger(__name__)

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


async def get_optional_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Identity | None:
    """Resolve the caller identity from the bearer token.

    Missing, invalid or expired tokens yield None; the dispatcher decides
    whether the intent needs an identity.
    """
    if not credentials:
        return None

    identity = decode_identity_token(credentials.credentials)
    if identity is None:
        logger.debug("Ignoring invalid identity token")
    return identity


def get_services(request: Request) -> AppServices:
    """Services built in the application lifespan."""
    return request.app.state.services


def get_dispatcher(request: Request) -> IntentDispatcher:
    return request.app.state.dispatcher


# Type aliases for cleaner route signatures
OptionalIdentity = Annotated[Identity | None, Depends(get_optional_identity)]
Services = Annotated[AppServices, Depends(get_services)]
Dispatcher = Annotated[IntentDispatcher, Depends(get_dispatcher)]
