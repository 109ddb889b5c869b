"""Tests for middleware — security headers, GZip, CORS, error rendering.

Tests the SecurityHeadersMiddleware, GZipMiddleware, and exception handlers
defined in gestor/main.py and gestor/core/exceptions.py.
"""

import pytest
from httpx import AsyncClient

# ---------------------------------------------------------------------------
# Security headers
# ---------------------------------------------------------------------------

class TestSecurityHeaders:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("header,expected_value", [
        ("x-content-type-options", "nosniff"),
        ("x-frame-options", "DENY"),
        ("referrer-policy", "strict-origin-when-cross-origin"),
    ])
    async def test_security_header_present(self, client: AsyncClient, header: str, expected_value: str):
        resp = await client.get("/health/live")
        assert resp.headers.get(header) == expected_value

    @pytest.mark.asyncio
    async def test_headers_on_error_responses(self, client: AsyncClient):
        resp = await client.post("/api/v1/assistente", json={"intent": "listarDespesas"})
        assert resp.status_code == 401
        assert resp.headers.get("x-frame-options") == "DENY"


# ---------------------------------------------------------------------------
# GZip middleware
# ---------------------------------------------------------------------------

class TestGZipMiddleware:
    @pytest.mark.asyncio
    async def test_small_response_not_compressed(self, client: AsyncClient):
        resp = await client.get("/health/live", headers={"Accept-Encoding": "gzip"})
        assert resp.status_code == 200
        assert resp.headers.get("content-encoding") != "gzip"


# ---------------------------------------------------------------------------
# Error rendering
# ---------------------------------------------------------------------------

class TestExceptionHandlers:
    @pytest.mark.asyncio
    async def test_unknown_route_returns_404(self, client: AsyncClient):
        resp = await client.get("/nonexistent-endpoint-xyz")
        assert resp.status_code == 404
        assert isinstance(resp.json(), dict)

    @pytest.mark.asyncio
    async def test_wrong_method_is_rejected(self, client: AsyncClient):
        resp = await client.get("/api/v1/assistente")
        assert resp.status_code == 405


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

class TestCORS:
    @pytest.mark.asyncio
    async def test_preflight_for_allowed_origin(self, client: AsyncClient):
        resp = await client.options(
            "/api/v1/assistente",
            headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"},
        )
        assert resp.status_code == 200
        assert resp.headers.get("access-control-allow-origin") == "http://localhost:5173"
