"""Backup bookkeeping.

Backups are recorded as metadata documents in ``backups``; the snapshot
itself is produced by the hosting platform. Deleting a backup only marks
its record, and records past the retention window are marked expired.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from gestor.core.config import Settings
from gestor.core.logging import get_logger
from gestor.db.store import DocumentStore, utc_timestamp

logger = get_logger(__name__)

BACKUPS_COLLECTION = "backups"
INTEGRITY_CHECKS_COLLECTION = "backup_integrity_checks"

STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_DELETED = "deleted"
STATUS_EXPIRED = "expired"

INTEGRITY_SAMPLE_SIZE = 7
STATS_WINDOW_DAYS = 30


def make_backup_id(kind: str, moment: datetime | None = None) -> str:
    """``<kind>-backup-<timestamp>`` with ``:`` and ``.`` replaced by ``-``."""
    stamp = (moment or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
    return f"{kind}-backup-{stamp.replace(':', '-').replace('.', '-')}"


def _days_ago(days: int) -> str:
    return utc_timestamp(datetime.now(timezone.utc) - timedelta(days=days))


async def record_backup(
    store: DocumentStore,
    kind: str,
    collections: list[str],
    *,
    requested_by: str | None = None,
    description: str | None = None,
) -> dict[str, Any]:
    """Register a completed backup and return its record."""
    record: dict[str, Any] = {
        "backupId": make_backup_id(kind),
        "timestamp": utc_timestamp(),
        "status": STATUS_COMPLETED,
        "collections": collections,
        "type": kind,
    }
    if requested_by is not None:
        record["requestedBy"] = requested_by
    if description is not None:
        record["description"] = description

    record["id"] = await store.add(BACKUPS_COLLECTION, record)
    logger.info("Backup recorded", backup_id=record["backupId"], type=kind)
    return record


async def find_backup(
    store: DocumentStore,
    backup_id: str,
    status: str | None = None,
) -> dict[str, Any] | None:
    where = [("backupId", "==", backup_id)]
    if status is not None:
        where.append(("status", "==", status))
    found = await store.query(BACKUPS_COLLECTION, where=where, limit=1)
    return found[0] if found else None


async def expire_old_backups(store: DocumentStore, retention_days: int) -> int:
    """Mark completed backups older than the retention window as expired."""
    old = await store.query(
        BACKUPS_COLLECTION,
        where=[
            ("timestamp", "<", _days_ago(retention_days)),
            ("status", "==", STATUS_COMPLETED),
        ],
    )
    now = utc_timestamp()
    for backup in old:
        await store.update(BACKUPS_COLLECTION, backup["id"], {
            "status": STATUS_EXPIRED,
            "expiredAt": now,
        })

    logger.info("Old backups expired", count=len(old), retention_days=retention_days)
    return len(old)


async def run_daily_backup(store: DocumentStore, settings: Settings) -> dict[str, Any]:
    """Scheduled backup: record it, then expire old records.

    A failure is itself recorded as a failed backup before re-raising.
    """
    collections = settings.backup_collections
    try:
        record = await record_backup(store, "daily", collections)
    except Exception as e:
        logger.error("Daily backup failed", error=str(e))
        await store.add(BACKUPS_COLLECTION, {
            "timestamp": utc_timestamp(),
            "status": STATUS_FAILED,
            "error": str(e),
            "collections": collections,
            "type": "daily",
        })
        raise

    await expire_old_backups(store, settings.backup_retention_days)
    return record


async def verify_backup_integrity(store: DocumentStore) -> dict[str, Any]:
    """Check the most recent completed backups for missing metadata."""
    recent = await store.query(
        BACKUPS_COLLECTION,
        where=[("status", "==", STATUS_COMPLETED)],
        order_by="timestamp",
        descending=True,
        limit=INTEGRITY_SAMPLE_SIZE,
    )

    healthy = 0
    issues = 0
    for backup in recent:
        if backup.get("backupId") and backup.get("collections") and backup.get("timestamp"):
            healthy += 1
        else:
            issues += 1
            logger.warning("Backup with incomplete metadata", doc_id=backup["id"])

    result = {
        "timestamp": utc_timestamp(),
        "healthyBackups": healthy,
        "issues": issues,
        "totalChecked": len(recent),
        "status": "healthy" if issues == 0 else "issues_found",
    }
    await store.add(INTEGRITY_CHECKS_COLLECTION, result)
    logger.info("Backup integrity verified", healthy=healthy, issues=issues)
    return result


async def get_backup_stats(store: DocumentStore, days: int = STATS_WINDOW_DAYS) -> dict[str, Any]:
    recent = await store.query(BACKUPS_COLLECTION, where=[("timestamp", ">=", _days_ago(days))])
    completed = sum(1 for b in recent if b.get("status") == STATUS_COMPLETED)
    failed = sum(1 for b in recent if b.get("status") == STATUS_FAILED)
    return {
        "total": len(recent),
        "completed": completed,
        "failed": failed,
        "successRate": completed / len(recent) * 100 if recent else 0.0,
        "period": f"{days} days",
    }
