"""Shared plumbing for intent handler groups."""

from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel, ValidationError

from gestor.core.exceptions import (
    InvalidArgumentError,
    PermissionDeniedError,
    UnauthenticatedError,
)
from gestor.core.logging import get_logger
from gestor.core.security import Identity
from gestor.services.metrics import Handler

if TYPE_CHECKING:
    from gestor.services.container import AppServices

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

ADMIN_CONFIG_COLLECTION = "admin_config"
SUPER_ADMIN_DOC = "super_admin"


def parse_payload(model: type[M], payload: dict[str, Any]) -> M:
    """Validate an intent payload, mapping failures to invalid-argument."""
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise InvalidArgumentError(
            "Dados inválidos: " + ", ".join(fields),
            {"fields": fields},
        ) from e


def require_identity(identity: Identity | None) -> Identity:
    if identity is None:
        raise UnauthenticatedError("Usuário não autenticado")
    return identity


class HandlerGroup:
    """A set of related intents sharing the application services.

    Subclasses return their intent table from ``intents``; each handler
    takes ``(payload, identity)`` and returns the response body.
    """

    def __init__(self, services: "AppServices") -> None:
        self.services = services
        self.settings = services.settings
        self.store = services.store
        self.cache = services.cache
        self.metrics = services.metrics
        self.limiter = services.limiter

    def intents(self) -> dict[str, Handler]:
        raise NotImplementedError

    async def is_admin(self, identity: Identity) -> bool:
        """Configured super admin, or the one registered via setupSuperAdmin."""
        if self.settings.super_admin_uid and identity.uid == self.settings.super_admin_uid:
            return True

        config = await self.store.get(ADMIN_CONFIG_COLLECTION, SUPER_ADMIN_DOC)
        return bool(config and config.get("isActive") and config.get("uid") == identity.uid)

    async def require_admin(self, identity: Identity | None) -> Identity:
        identity = require_identity(identity)
        if not await self.is_admin(identity):
            logger.warning("Admin access denied")
            raise PermissionDeniedError("Acesso negado - apenas administradores")
        return identity
