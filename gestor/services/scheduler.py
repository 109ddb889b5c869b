"""In-process maintenance jobs run by APScheduler.

The API server flushes metric buffers and purges the local cache on a
fixed interval, checks error rate and latency every 15 minutes and prunes
old metric events once a day. Backups stay on the command line.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from gestor.core.logging import get_logger
from gestor.services import metrics
from gestor.services.container import AppServices

logger = get_logger(__name__)

METRICS_FLUSH_JOB = "flush_metrics"
CACHE_PURGE_JOB = "purge_cache"
HEALTH_CHECK_JOB = "check_system_health"
METRICS_CLEANUP_JOB = "cleanup_old_metrics"

Job = Callable[[AppServices], Awaitable[Any]]


async def flush_metrics(services: AppServices) -> None:
    await services.metrics.flush_all()


async def purge_cache(services: AppServices) -> int:
    purged = services.cache.purge_expired()
    if purged:
        logger.debug("Expired cache entries purged", count=purged)
    return purged


async def check_health(services: AppServices) -> dict[str, Any]:
    return await metrics.check_system_health(services.store)


async def cleanup_metrics(services: AppServices) -> int:
    return await metrics.cleanup_old_metrics(
        services.store,
        services.settings.metrics_retention_days,
    )


async def run_job(name: str, job: Job, services: AppServices) -> Any:
    """Run one scheduled job; a failure is logged and the schedule continues."""
    try:
        return await job(services)
    except Exception as e:
        logger.error("Scheduled job failed", job=name, error=str(e))
        return None


def build_scheduler(services: AppServices) -> AsyncIOScheduler:
    """Create a scheduler with every maintenance job registered (not started)."""
    settings = services.settings
    scheduler = AsyncIOScheduler(timezone="UTC")

    jobs: list[tuple[str, Job, Any]] = [
        (
            METRICS_FLUSH_JOB,
            flush_metrics,
            IntervalTrigger(seconds=settings.metrics_flush_interval_seconds),
        ),
        (
            CACHE_PURGE_JOB,
            purge_cache,
            IntervalTrigger(seconds=settings.cache_cleanup_interval_seconds),
        ),
        (
            HEALTH_CHECK_JOB,
            check_health,
            CronTrigger.from_crontab(settings.health_check_cron, timezone="UTC"),
        ),
        (
            METRICS_CLEANUP_JOB,
            cleanup_metrics,
            CronTrigger.from_crontab(settings.metrics_cleanup_cron, timezone="UTC"),
        ),
    ]
    for job_id, job, trigger in jobs:
        scheduler.add_job(
            run_job,
            trigger=trigger,
            id=job_id,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
            kwargs={"name": job_id, "job": job, "services": services},
        )
        logger.debug("Scheduled job registered", job=job_id, trigger=str(trigger))

    return scheduler


def start_scheduler(scheduler: AsyncIOScheduler) -> None:
    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started", jobs=[job.id for job in scheduler.get_jobs()])


def shutdown_scheduler(scheduler: AsyncIOScheduler) -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
