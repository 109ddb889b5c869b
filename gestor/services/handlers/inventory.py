"""Ingredient stock intents."""

from typing import Any

from gestor.core.security import Identity
from gestor.db.store import utc_timestamp
from gestor.services.cache import KEY_PREFIX_INVENTORY
from gestor.services.handlers.base import parse_payload, require_identity
from gestor.services.handlers.collections import UserCollectionHandlers
from gestor.services.handlers.schemas import (
    InventoryItemCreate,
    InventoryItemRef,
    InventoryItemUpdate,
)
from gestor.services.metrics import Handler


def is_low_stock(item: dict[str, Any]) -> bool:
    return float(item.get("quantity") or 0) <= float(item.get("lowStockThreshold") or 0)


class InventoryHandlers(UserCollectionHandlers):
    kind = KEY_PREFIX_INVENTORY
    resource = "Inventory item"
    order_by = "name"
    descending = False

    def intents(self) -> dict[str, Handler]:
        return {
            "adicionarItemEstoque": self.add_item,
            "listarEstoque": self.list_items,
            "atualizarItemEstoque": self.update_item,
            "removerItemEstoque": self.remove_item,
            "listarEstoqueBaixo": self.list_low_stock,
        }

    async def add_item(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        item = parse_payload(InventoryItemCreate, payload)

        item_id = await self.create_document(uid, {
            **item.model_dump(),
            "updatedAt": utc_timestamp(),
        })
        return {
            "success": True,
            "message": f"Item {item.name} adicionado ao estoque!",
            "itemId": item_id,
        }

    async def list_items(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid

        items, cached = await self.list_documents(uid)
        return {
            "success": True,
            "message": "Estoque recuperado com sucesso!",
            "items": items,
            "cached": cached,
        }

    async def update_item(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        update = parse_payload(InventoryItemUpdate, payload)

        changes = update.model_dump(exclude_none=True, exclude={"itemId"})
        await self.update_document(uid, update.itemId, changes)
        return {"success": True, "message": "Item do estoque atualizado!"}

    async def remove_item(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        ref = parse_payload(InventoryItemRef, payload)

        await self.delete_document(uid, ref.itemId)
        return {"success": True, "message": "Item removido do estoque!"}

    async def list_low_stock(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid

        items, cached = await self.list_documents(uid)
        low = [item for item in items if is_low_stock(item)]
        return {
            "success": True,
            "message": f"{len(low)} itens com estoque baixo",
            "items": low,
            "cached": cached,
        }
