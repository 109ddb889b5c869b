"""Expense bookkeeping intents."""

from typing import Any

from gestor.core.security import Identity
from gestor.services.cache import KEY_PREFIX_EXPENSES
from gestor.services.handlers.base import parse_payload, require_identity
from gestor.services.handlers.collections import UserCollectionHandlers
from gestor.services.handlers.schemas import ExpenseCreate, ExpenseRef, ExpenseUpdate, ListRequest
from gestor.services.metrics import Handler


class ExpenseHandlers(UserCollectionHandlers):
    kind = KEY_PREFIX_EXPENSES
    resource = "Expense"
    limit_action = "create_expense"

    def intents(self) -> dict[str, Handler]:
        return {
            "registrarDespesa": self.register_expense,
            "listarDespesas": self.list_expenses,
            "atualizarDespesa": self.update_expense,
            "excluirDespesa": self.delete_expense,
        }

    async def register_expense(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        expense = parse_payload(ExpenseCreate, payload)

        data: dict[str, Any] = {
            "date": expense.data,
            "type": expense.tipo,
            "value": expense.valor,
            "supplier": expense.fornecedor,
        }
        if expense.description is not None:
            data["description"] = expense.description
        if expense.category is not None:
            data["category"] = expense.category

        expense_id = await self.create_document(uid, data)
        return {
            "success": True,
            "message": "Despesa registrada com sucesso!",
            "expenseId": expense_id,
        }

    async def list_expenses(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        request = parse_payload(ListRequest, payload)

        expenses, cached = await self.list_documents(uid, request.limit)
        return {
            "success": True,
            "message": "Despesas recuperadas com sucesso!",
            "expenses": expenses,
            "cached": cached,
        }

    async def update_expense(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        update = parse_payload(ExpenseUpdate, payload)

        renames = {
            "data": "date",
            "tipo": "type",
            "valor": "value",
            "fornecedor": "supplier",
            "description": "description",
            "category": "category",
        }
        fields = update.model_dump(exclude_none=True, exclude={"expenseId"})
        changes = {renames[name]: value for name, value in fields.items()}

        await self.update_document(uid, update.expenseId, changes)
        return {"success": True, "message": "Despesa atualizada com sucesso!"}

    async def delete_expense(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        ref = parse_payload(ExpenseRef, payload)

        await self.delete_document(uid, ref.expenseId)
        return {"success": True, "message": "Despesa excluída com sucesso!"}
