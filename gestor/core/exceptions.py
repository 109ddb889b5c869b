"""Error taxonomy and FastAPI exception handlers.

Every failure reaching a caller carries a stable ``kind`` so clients can
branch on it (e.g. offer an upgrade for ``resource-exhausted``).
"""

from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gestor.core.logging import get_logger

logger = get_logger(__name__)


def _get_cors_headers(request: Request) -> dict[str, str]:
    """Get CORS headers for error responses."""
    origin = request.headers.get("origin", "")
    # Import here to avoid circular imports
    from gestor.core.config import get_settings
    settings = get_settings()

    if origin and (origin in settings.cors_origins or "*" in settings.cors_origins):
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
            "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
            "Access-Control-Allow-Headers": "Authorization, Content-Type",
        }
    return {}


class AppError(Exception):
    """Base application error."""

    kind: str = "internal"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_envelope(self) -> dict[str, Any]:
        """Render as the uniform failure envelope."""
        return {
            "success": False,
            "error": {
                "kind": self.kind,
                "message": self.message,
                "details": self.details,
            },
        }


class UnauthenticatedError(AppError):
    """No identity present where one is required."""

    kind = "unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class PermissionDeniedError(AppError):
    """Identity present but lacking the required role."""

    kind = "permission-denied"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message)


class InvalidArgumentError(AppError):
    """Missing or malformed payload field."""

    kind = "invalid-argument"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    """Referenced entity absent."""

    kind = "not-found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class ResourceExhaustedError(AppError):
    """Plan ceiling reached."""

    kind = "resource-exhausted"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str, action: str | None = None):
        super().__init__(message, {"action": action} if action else None)


class InternalError(AppError):
    """Unexpected failure (store, external service, programming error)."""

    kind = "internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class LLMProviderError(InternalError):
    """External AI provider failure."""

    def __init__(self, provider: str, message: str):
        super().__init__(
            f"LLM provider error ({provider}): {message}",
            {"provider": provider, "error": message},
        )


class UnimplementedError(AppError):
    """Deliberately disabled operation."""

    kind = "unimplemented"
    status_code = status.HTTP_501_NOT_IMPLEMENTED


async def app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle application errors."""
    logger.warning(
        "Application error",
        kind=exc.kind,
        status_code=exc.status_code,
        message=exc.message,
        details=exc.details,
        path=str(request.url),
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_envelope(),
        headers=_get_cors_headers(request),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render malformed request bodies as invalid-argument."""
    error = InvalidArgumentError(
        "Malformed request",
        {"error": "; ".join(str(e.get("msg", "")) for e in exc.errors())},
    )
    return await app_exception_handler(request, error)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=str(request.url),
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": {
                "kind": "internal" if exc.status_code >= 500 else "invalid-argument",
                "message": exc.detail,
                "details": {},
            },
        },
        headers=_get_cors_headers(request),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions."""
    logger.exception(
        "Unhandled exception",
        exc_info=exc,
        path=str(request.url),
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=InternalError("An internal error occurred. Please try again later.").to_envelope(),
        headers=_get_cors_headers(request),
    )
