"""Backup administration intents."""

from typing import Any

from gestor.core.exceptions import NotFoundError, UnimplementedError
from gestor.core.logging import get_logger
from gestor.core.security import Identity
from gestor.db.store import utc_timestamp
from gestor.services import backups
from gestor.services.handlers.base import HandlerGroup, parse_payload
from gestor.services.handlers.schemas import (
    BackupCreate,
    BackupListRequest,
    BackupRef,
    RestoreRequest,
)
from gestor.services.metrics import Handler

logger = get_logger(__name__)


class BackupHandlers(HandlerGroup):
    def intents(self) -> dict[str, Handler]:
        return {
            "createBackup": self.create_backup,
            "listBackups": self.list_backups,
            "deleteBackup": self.delete_backup,
            "getBackupStats": self.get_backup_stats,
            "simulateRestore": self.simulate_restore,
        }

    async def create_backup(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        admin = await self.require_admin(identity)
        request = parse_payload(BackupCreate, payload)

        record = await backups.record_backup(
            self.store,
            "manual",
            request.collections or self.settings.backup_collections,
            requested_by=admin.uid,
            description=request.description or "Backup manual",
        )
        return {
            "success": True,
            "message": "Backup criado com sucesso",
            "backupId": record["backupId"],
            "docId": record["id"],
        }

    async def list_backups(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        await self.require_admin(identity)
        request = parse_payload(BackupListRequest, payload)

        where = []
        if request.status:
            where.append(("status", "==", request.status))
        if request.type:
            where.append(("type", "==", request.type))

        found = await self.store.query(
            backups.BACKUPS_COLLECTION,
            where=where,
            order_by="timestamp",
            descending=True,
            limit=request.limit,
        )
        return {"success": True, "backups": found, "total": len(found)}

    async def delete_backup(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        admin = await self.require_admin(identity)
        ref = parse_payload(BackupRef, payload)

        backup = await backups.find_backup(self.store, ref.backupId)
        if backup is None:
            raise NotFoundError("Backup")

        await self.store.update(backups.BACKUPS_COLLECTION, backup["id"], {
            "status": backups.STATUS_DELETED,
            "deletedAt": utc_timestamp(),
            "deletedBy": admin.uid,
        })
        logger.info("Backup deleted", backup_id=ref.backupId, deleted_by=admin.uid)
        return {"success": True, "message": "Backup deletado com sucesso"}

    async def get_backup_stats(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        await self.require_admin(identity)
        return {"success": True, "stats": await backups.get_backup_stats(self.store)}

    async def simulate_restore(
        self, payload: dict[str, Any], identity: Identity | None
    ) -> dict[str, Any]:
        """Describe what a restore would do; real restores are disabled."""
        await self.require_admin(identity)
        request = parse_payload(RestoreRequest, payload)

        backup = await backups.find_backup(
            self.store, request.backupId, status=backups.STATUS_COMPLETED
        )
        if backup is None:
            raise NotFoundError("Completed backup")

        if not request.dryRun:
            logger.warning("Real restore requested", backup_id=request.backupId)
            raise UnimplementedError("Restauração real não implementada por segurança")

        logger.info("Restore simulated", backup_id=request.backupId)
        return {
            "success": True,
            "message": "Simulação de restauração concluída",
            "backupInfo": {
                "backupId": backup["backupId"],
                "timestamp": backup.get("timestamp"),
                "collections": backup.get("collections"),
            },
            "dryRun": True,
        }
