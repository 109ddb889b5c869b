"""End-to-end tests for POST /api/v1/assistente."""

import pytest
from httpx import AsyncClient

from gestor.db.store import DocumentStore, user_collection

pytestmark = pytest.mark.asyncio

URL = "/api/v1/assistente"

EXPENSE = {
    "data": "2026-10-01",
    "tipo": "ingredientes",
    "valor": 150.5,
    "fornecedor": "Atacadão",
}


async def call(client: AsyncClient, intent: str, headers: dict[str, str] | None = None, **payload):
    return await client.post(URL, json={"intent": intent, "payload": payload}, headers=headers or {})


# =============================================================================
# Happy path
# =============================================================================


async def test_register_then_list_is_cached(client: AsyncClient, auth_headers):
    resp = await call(client, "registrarDespesa", auth_headers, **EXPENSE)
    assert resp.status_code == 200
    expense_id = resp.json()["expenseId"]

    first = await call(client, "listarDespesas", auth_headers)
    second = await call(client, "listarDespesas", auth_headers)

    assert first.json()["cached"] is False
    assert second.json()["cached"] is True
    [expense] = second.json()["expenses"]
    assert expense["id"] == expense_id
    assert expense["value"] == 150.5
    assert expense["supplier"] == "Atacadão"


async def test_mutation_invalidates_listing(client: AsyncClient, auth_headers):
    await call(client, "registrarDespesa", auth_headers, **EXPENSE)
    await call(client, "listarDespesas", auth_headers)

    await call(client, "registrarDespesa", auth_headers, **{**EXPENSE, "valor": 20})
    resp = await call(client, "listarDespesas", auth_headers)

    assert resp.json()["cached"] is False
    assert len(resp.json()["expenses"]) == 2


async def test_health_check_without_token(client: AsyncClient):
    resp = await call(client, "healthCheck")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert "cache" in body["features"]


async def test_unknown_intent(client: AsyncClient, auth_headers):
    resp = await call(client, "fazerBolo", auth_headers)
    assert resp.status_code == 200
    assert resp.json() == {"success": False, "message": "Intent 'fazerBolo' not recognized."}


# =============================================================================
# Failure envelopes
# =============================================================================


async def test_missing_token_is_unauthenticated(client: AsyncClient):
    resp = await call(client, "listarDespesas")
    assert resp.status_code == 401
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["kind"] == "unauthenticated"


async def test_invalid_token_is_treated_as_absent(client: AsyncClient):
    resp = await call(client, "listarDespesas", {"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["error"]["kind"] == "unauthenticated"


async def test_malformed_body_is_invalid_argument(client: AsyncClient, auth_headers):
    resp = await client.post(URL, json={"payload": {}}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["kind"] == "invalid-argument"


async def test_missing_payload_field_is_invalid_argument(client: AsyncClient, auth_headers):
    resp = await call(client, "registrarDespesa", auth_headers, tipo="x", valor=1)
    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["kind"] == "invalid-argument"
    assert "data" in error["details"]["fields"]


async def test_non_finite_amount_is_invalid_argument(client: AsyncClient, auth_headers):
    resp = await call(
        client, "registrarDespesa", auth_headers,
        data="2026-10-01", tipo="embalagens", valor="NaN", fornecedor="Embalex",
    )
    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["kind"] == "invalid-argument"
    assert "valor" in error["details"]["fields"]


async def test_plan_limit_is_resource_exhausted(
    client: AsyncClient, auth_headers, user, store: DocumentStore
):
    await store.add_many(
        user_collection(user.uid, "recipes"),
        [{"name": f"receita {i}"} for i in range(10)],
    )

    resp = await call(client, "criarNovaReceita", auth_headers, recipeName="Brigadeiro")

    assert resp.status_code == 429
    error = resp.json()["error"]
    assert error["kind"] == "resource-exhausted"
    assert error["details"] == {"action": "create_recipe"}


async def test_missing_document_is_not_found(client: AsyncClient, auth_headers):
    resp = await call(client, "excluirPedido", auth_headers, orderId="nope")
    assert resp.status_code == 404
    assert resp.json()["error"]["kind"] == "not-found"


async def test_admin_intent_denied_for_regular_user(client: AsyncClient, auth_headers):
    resp = await call(client, "getSystemMetrics", auth_headers)
    assert resp.status_code == 403
    assert resp.json()["error"]["kind"] == "permission-denied"


async def test_real_restore_is_unimplemented(client: AsyncClient, admin_headers):
    created = await call(client, "createBackup", admin_headers)
    backup_id = created.json()["backupId"]

    resp = await call(client, "simulateRestore", admin_headers, backupId=backup_id, dryRun=False)

    assert resp.status_code == 501
    assert resp.json()["error"]["kind"] == "unimplemented"
