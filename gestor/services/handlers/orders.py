"""Customer order intents."""

from typing import Any

from gestor.core.security import Identity
from gestor.services.cache import KEY_PREFIX_ORDERS
from gestor.services.handlers.base import parse_payload, require_identity
from gestor.services.handlers.collections import UserCollectionHandlers
from gestor.services.handlers.schemas import ListRequest, OrderCreate, OrderRef, OrderStatusUpdate
from gestor.services.metrics import Handler


class OrderHandlers(UserCollectionHandlers):
    kind = KEY_PREFIX_ORDERS
    resource = "Order"
    limit_action = "create_order"

    def intents(self) -> dict[str, Handler]:
        return {
            "registrarPedido": self.register_order,
            "listarPedidos": self.list_orders,
            "atualizarStatusPedido": self.update_order_status,
            "excluirPedido": self.delete_order,
        }

    async def register_order(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        order = parse_payload(OrderCreate, payload)

        order_id = await self.create_document(uid, {
            "customer": order.cliente,
            "products": order.produtos,
            "deliveryDate": order.dataEntrega,
            "value": order.valor,
            "status": order.status.value,
        })
        return {
            "success": True,
            "message": f"Pedido para {order.cliente} registrado com sucesso!",
            "orderId": order_id,
        }

    async def list_orders(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        request = parse_payload(ListRequest, payload)

        orders, cached = await self.list_documents(uid, request.limit)
        return {
            "success": True,
            "message": "Pedidos recuperados com sucesso!",
            "orders": orders,
            "cached": cached,
        }

    async def update_order_status(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        update = parse_payload(OrderStatusUpdate, payload)

        await self.update_document(uid, update.orderId, {"status": update.status.value})
        return {
            "success": True,
            "message": "Status do pedido atualizado!",
            "status": update.status.value,
        }

    async def delete_order(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        uid = require_identity(identity).uid
        ref = parse_payload(OrderRef, payload)

        await self.delete_document(uid, ref.orderId)
        return {"success": True, "message": "Pedido excluído com sucesso!"}
