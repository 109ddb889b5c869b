"""Read-through / write-invalidate access to per-user collections."""

from typing import Any

from gestor.core.exceptions import NotFoundError
from gestor.core.logging import get_logger
from gestor.db.store import user_collection, utc_timestamp
from gestor.services.handlers.base import HandlerGroup

logger = get_logger(__name__)


class UserCollectionHandlers(HandlerGroup):
    """CRUD helpers for one ``users/<uid>/<kind>`` collection.

    Listings are cached under ``<kind>:<uid>``; every mutation drops that
    key before returning.
    """

    kind: str = ""
    resource: str = "Document"
    order_by: str = "createdAt"
    descending: bool = True
    limit_action: str | None = None

    def collection(self, uid: str) -> str:
        return user_collection(uid, self.kind)

    async def invalidate(self, uid: str) -> None:
        await self.cache.invalidate_entity(self.kind, uid)

    async def create_document(self, uid: str, data: dict[str, Any]) -> str:
        if self.limit_action:
            await self.limiter.enforce(uid, self.limit_action)

        doc_id = await self.store.add(
            self.collection(uid),
            {**data, "userId": uid, "createdAt": utc_timestamp()},
        )
        await self.invalidate(uid)
        logger.info("Document created", kind=self.kind, doc_id=doc_id)
        return doc_id

    async def list_documents(
        self, uid: str, limit: int | None = None
    ) -> tuple[list[dict[str, Any]], bool]:
        """Cached listing; returns ``(documents, cached)``."""

        async def load() -> list[dict[str, Any]]:
            return await self.store.query(
                self.collection(uid),
                order_by=self.order_by,
                descending=self.descending,
                limit=limit,
            )

        return await self.cache.read_through(
            self.cache.entity_key(self.kind, uid),
            load,
            self.cache.entity_ttl(self.kind),
        )

    async def get_document(self, uid: str, doc_id: str) -> dict[str, Any]:
        doc = await self.store.get(self.collection(uid), doc_id)
        if doc is None:
            raise NotFoundError(self.resource)
        return doc

    async def update_document(self, uid: str, doc_id: str, changes: dict[str, Any]) -> None:
        updated = await self.store.update(
            self.collection(uid),
            doc_id,
            {**changes, "updatedAt": utc_timestamp()},
        )
        if not updated:
            raise NotFoundError(self.resource)
        await self.invalidate(uid)

    async def delete_document(self, uid: str, doc_id: str) -> None:
        if not await self.store.delete(self.collection(uid), doc_id):
            raise NotFoundError(self.resource)
        await self.invalidate(uid)
        logger.info("Document deleted", kind=self.kind, doc_id=doc_id)
