"""Single entry point routing tagged intents to their handlers.

A request moves through a fixed sequence: authentication gate, last-login
refresh, handler dispatch, then metrics recording whatever the outcome.
The intent and caller are bound to the logging context for the duration,
so every log line emitted underneath carries them.
"""

import time
from typing import Any

import structlog

from gestor.core.exceptions import AppError, InternalError, UnauthenticatedError
from gestor.core.logging import get_logger
from gestor.core.security import Identity
from gestor.db.store import USERS, DocumentStore, utc_timestamp
from gestor.services.metrics import Handler, MetricsCollector, with_timing

logger = get_logger(__name__)

HEALTH_CHECK_INTENT = "healthCheck"
DISPATCH_METRIC_NAME = "assistenteHttp"


class IntentDispatcher:
    """Maps intent names to timed handlers."""

    def __init__(self, store: DocumentStore, metrics: MetricsCollector) -> None:
        self._store = store
        self._metrics = metrics
        self._handlers: dict[str, Handler] = {}

    @property
    def intents(self) -> list[str]:
        return sorted(self._handlers)

    def register(self, intent: str, handler: Handler) -> None:
        """Register ``handler`` for ``intent``, wrapped with timing."""
        if intent in self._handlers:
            raise ValueError(f"Intent already registered: {intent}")
        self._handlers[intent] = with_timing(intent, handler, self._metrics)

    def register_all(self, handlers: dict[str, Handler]) -> None:
        for intent, handler in handlers.items():
            self.register(intent, handler)

    async def dispatch(
        self,
        intent: str,
        payload: dict[str, Any],
        identity: Identity | None,
    ) -> dict[str, Any]:
        """Run one intent and return its response body.

        Raises:
            UnauthenticatedError: no identity for a non-public intent
            AppError: raised by the handler, propagated unchanged
            InternalError: any other failure
        """
        if identity is None and intent != HEALTH_CHECK_INTENT:
            raise UnauthenticatedError("A operação requer autenticação.")

        uid = identity.uid if identity else None
        tokens = structlog.contextvars.bind_contextvars(intent=intent, user_id=uid)
        logger.info("Intent received")

        start = time.perf_counter()
        success = True
        try:
            if uid and intent != HEALTH_CHECK_INTENT:
                await self._touch_last_login(uid)

            handler = self._handlers.get(intent)
            if handler is None:
                logger.warning("Intent not recognized")
                success = False
                return {"success": False, "message": f"Intent '{intent}' not recognized."}

            return await handler(payload, identity)
        except AppError:
            success = False
            raise
        except Exception as e:
            success = False
            logger.exception("Intent failed", error=str(e))
            raise InternalError(
                "Ocorreu um erro inesperado no servidor.",
                {"error": str(e)},
            ) from e
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            if uid:
                self._metrics.record_user_action(
                    uid,
                    intent,
                    success,
                    duration_ms,
                    metadata={"payloadKeys": sorted(payload)},
                )
            self._metrics.record_performance(DISPATCH_METRIC_NAME, duration_ms, success, uid)
            structlog.contextvars.reset_contextvars(**tokens)

    async def _touch_last_login(self, uid: str) -> None:
        # Profiles are created by setupUser; absent ones are left alone
        await self._store.update(USERS, uid, {"lastLogin": utc_timestamp()})
