# gestor/cli.py
import asyncio
import json
import os
from collections.abc import Awaitable, Callable
from typing import Any

import uvicorn
from alembic.config import main as alembic_main

from gestor.core.logging import get_logger, setup_logging
from gestor.db.session import close_db, init_db
from gestor.services import backups, metrics
from gestor.services.container import AppServices, build_services

logger = get_logger(__name__)


def dev() -> None:
    uvicorn.run("gestor.main:app", host="0.0.0.0", port=8000, reload=True)


def start() -> None:
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("gestor.main:app", host="0.0.0.0", port=port)


def migrate() -> None:
    alembic_main(["upgrade", "head"])


def pytest() -> None:
    import pytest
    # Run all tests in the tests/ directory, stop after first failure
    pytest.main(["-x", "tests"])


async def _run_job(name: str, job: Callable[[AppServices], Awaitable[Any]]) -> Any:
    """Run one maintenance job against freshly built services."""
    await init_db()
    services = build_services()
    try:
        result = await job(services)
        logger.info("Job finished", job=name)
        return result
    except Exception as e:
        logger.error("Job failed", job=name, error=str(e))
        raise
    finally:
        await services.metrics.flush_all()
        await close_db()


def _run(name: str, job: Callable[[AppServices], Awaitable[Any]]) -> None:
    setup_logging()
    result = asyncio.run(_run_job(name, job))
    print(json.dumps(result, indent=2, default=str))


# Scheduled jobs: run from cron or the platform scheduler

def daily_backup() -> None:
    _run("daily_backup", lambda s: backups.run_daily_backup(s.store, s.settings))


def verify_backups() -> None:
    _run("verify_backups", lambda s: backups.verify_backup_integrity(s.store))


def cleanup_metrics() -> None:
    _run(
        "cleanup_metrics",
        lambda s: metrics.cleanup_old_metrics(s.store, s.settings.metrics_retention_days),
    )


def health_report() -> None:
    _run("health_report", lambda s: metrics.check_system_health(s.store))
