"""Assistant endpoint: one POST carrying a tagged intent."""

from typing import Any

from fastapi import APIRouter

from gestor.api.deps import Dispatcher, OptionalIdentity
from gestor.api.schemas import ErrorResponse, IntentRequest

router = APIRouter(tags=["Assistant"])


@router.post(
    "/assistente",
    summary="Dispatch an intent",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid payload"},
        401: {"model": ErrorResponse, "description": "Authentication required"},
        403: {"model": ErrorResponse, "description": "Admin only"},
        404: {"model": ErrorResponse, "description": "Entity not found"},
        429: {"model": ErrorResponse, "description": "Plan limit reached"},
        501: {"model": ErrorResponse, "description": "Operation disabled"},
    },
)
async def assistente(
    request: IntentRequest,
    identity: OptionalIdentity,
    dispatcher: Dispatcher,
) -> dict[str, Any]:
    """
    Run one intent on behalf of the caller.

    **Request:** `{"intent": "registrarDespesa", "payload": {...}}`

    The bearer token is optional at this layer; every intent except
    `healthCheck` answers `unauthenticated` without one. Failures use the
    envelope `{"success": false, "error": {"kind", "message", "details"}}`.
    """
    return await dispatcher.dispatch(request.intent, request.payload, identity)
