"""Tests for gestor.core.exceptions — error taxonomy and handlers."""

import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi import HTTPException

from gestor.core.exceptions import (
    AppError,
    InternalError,
    InvalidArgumentError,
    LLMProviderError,
    NotFoundError,
    PermissionDeniedError,
    ResourceExhaustedError,
    UnauthenticatedError,
    UnimplementedError,
    app_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)


def _make_request(origin: str = "") -> MagicMock:
    """Build a minimal mock Starlette Request."""
    req = MagicMock()
    req.headers = {"origin": origin} if origin else {}
    req.url = "http://test/path"
    return req


@pytest.fixture(autouse=True)
def _patch_settings():
    """Patch get_settings so the CORS origin check works."""
    mock_settings = MagicMock()
    mock_settings.cors_origins = ["http://allowed.example.com"]
    with patch("gestor.core.config.get_settings", return_value=mock_settings):
        yield


# =============================================================================
# Error classes
# =============================================================================

class TestAppError:

    @pytest.mark.parametrize("error,kind,status_code", [
        (UnauthenticatedError(), "unauthenticated", 401),
        (PermissionDeniedError(), "permission-denied", 403),
        (InvalidArgumentError("bad"), "invalid-argument", 400),
        (NotFoundError("Expense"), "not-found", 404),
        (ResourceExhaustedError("full"), "resource-exhausted", 429),
        (InternalError("oops"), "internal", 500),
        (UnimplementedError("later"), "unimplemented", 501),
    ])
    def test_kinds_and_status_codes(self, error: AppError, kind: str, status_code: int):
        assert error.kind == kind
        assert error.status_code == status_code

    def test_not_found_message(self):
        assert NotFoundError("Expense").message == "Expense not found"

    def test_llm_provider_error_is_internal(self):
        err = LLMProviderError("gemini", "quota exceeded")
        assert isinstance(err, InternalError)
        assert err.details == {"provider": "gemini", "error": "quota exceeded"}

    def test_envelope(self):
        err = InvalidArgumentError("Dados inválidos: valor", {"fields": ["valor"]})
        assert err.to_envelope() == {
            "success": False,
            "error": {
                "kind": "invalid-argument",
                "message": "Dados inválidos: valor",
                "details": {"fields": ["valor"]},
            },
        }

    def test_resource_exhausted_carries_action(self):
        assert ResourceExhaustedError("full", action="create_order").details == {
            "action": "create_order"
        }


# =============================================================================
# app_exception_handler
# =============================================================================

class TestAppExceptionHandler:

    async def test_returns_status_and_envelope(self):
        resp = await app_exception_handler(_make_request(), NotFoundError("Order"))
        assert resp.status_code == 404
        body = json.loads(resp.body)
        assert body["success"] is False
        assert body["error"]["kind"] == "not-found"

    async def test_cors_headers_for_allowed_origin(self):
        req = _make_request(origin="http://allowed.example.com")
        resp = await app_exception_handler(req, UnauthenticatedError())
        assert resp.headers.get("Access-Control-Allow-Origin") == "http://allowed.example.com"

    async def test_no_cors_for_unknown_origin(self):
        req = _make_request(origin="http://evil.example.com")
        resp = await app_exception_handler(req, UnauthenticatedError())
        assert "Access-Control-Allow-Origin" not in resp.headers


# =============================================================================
# http_exception_handler
# =============================================================================

class TestHttpExceptionHandler:

    async def test_returns_status_and_body(self):
        exc = HTTPException(status_code=405, detail="Method Not Allowed")
        resp = await http_exception_handler(_make_request(), exc)
        assert resp.status_code == 405
        assert json.loads(resp.body)["error"]["message"] == "Method Not Allowed"


# =============================================================================
# unhandled_exception_handler
# =============================================================================

class TestUnhandledExceptionHandler:

    async def test_returns_500(self):
        resp = await unhandled_exception_handler(_make_request(), RuntimeError("kaboom"))
        assert resp.status_code == 500

    async def test_generic_message(self):
        resp = await unhandled_exception_handler(_make_request(), RuntimeError("secret"))
        body = bytes(resp.body)
        assert b"internal error" in body.lower()
        assert b"secret" not in body
