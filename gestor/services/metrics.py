"""Buffered usage and performance metrics.

Events are appended to in-memory buffers and written to the store in
batches. Recording never waits on persistence: a full buffer is swapped
for an empty one and the swapped batch is written on a background task.
"""

import asyncio
import functools
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from gestor.core.logging import get_logger
from gestor.core.security import Identity
from gestor.core.tasks import create_background_task
from gestor.db.store import DocumentStore, utc_timestamp

logger = get_logger(__name__)

METRICS_COLLECTION = "metrics"
PERFORMANCE_COLLECTION = "performance"

BUFFER_SIZE = 100
SLOW_CALL_THRESHOLD_MS = 5000.0

# Alert thresholds for check_system_health
ERROR_RATE_ALERT_PERCENT = 10.0
RESPONSE_TIME_ALERT_MS = 3000.0

Handler = Callable[[dict[str, Any], Identity | None], Awaitable[dict[str, Any]]]


class MetricsCollector:
    """Collects user actions and performance samples.

    Buffers are plain lists shared by every request on the event loop;
    swapping before the write is what keeps concurrent recorders safe.
    """

    def __init__(
        self,
        store: DocumentStore,
        buffer_size: int = BUFFER_SIZE,
        slow_threshold_ms: float = SLOW_CALL_THRESHOLD_MS,
    ) -> None:
        self._store = store
        self._buffer_size = buffer_size
        self._slow_threshold_ms = slow_threshold_ms
        self._buffers: dict[str, list[dict[str, Any]]] = {
            METRICS_COLLECTION: [],
            PERFORMANCE_COLLECTION: [],
        }
        self._pending: set[asyncio.Task[bool]] = set()
        # One write per collection at a time; a size-triggered flush needs
        # buffer_size events recorded since the last attempt
        self._inflight: dict[str, asyncio.Task[bool]] = {}
        self._since_attempt: dict[str, int] = {
            METRICS_COLLECTION: 0,
            PERFORMANCE_COLLECTION: 0,
        }

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    def pending_events(self, collection: str) -> list[dict[str, Any]]:
        """Events of ``collection`` not yet written."""
        return list(self._buffers[collection])

    def record_user_action(
        self,
        user_id: str,
        action: str,
        success: bool = True,
        duration_ms: float | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        event: dict[str, Any] = {
            "userId": user_id,
            "action": action,
            "timestamp": utc_timestamp(),
            "success": success,
        }
        if duration_ms is not None:
            event["duration"] = duration_ms
        if metadata is not None:
            event["metadata"] = metadata

        self._append(METRICS_COLLECTION, event)
        logger.info(
            "User action",
            user_id=user_id,
            action=action,
            success=success,
            duration_ms=duration_ms,
        )

    def record_performance(
        self,
        function_name: str,
        duration_ms: float,
        success: bool,
        user_id: str | None = None,
    ) -> None:
        event: dict[str, Any] = {
            "functionName": function_name,
            "duration": duration_ms,
            "timestamp": utc_timestamp(),
            "success": success,
        }
        if user_id is not None:
            event["userId"] = user_id

        self._append(PERFORMANCE_COLLECTION, event)
        logger.debug(
            "Performance sample",
            function_name=function_name,
            duration_ms=duration_ms,
            success=success,
        )
        if duration_ms > self._slow_threshold_ms:
            logger.warning(
                "Slow function",
                function_name=function_name,
                duration_ms=duration_ms,
                user_id=user_id,
            )

    async def flush_all(self) -> None:
        """Write both buffers and wait for every in-flight write.

        Batches requeued by a failed write are retried here.
        """
        if self._pending:
            await asyncio.gather(*list(self._pending))
        self._schedule_flush(METRICS_COLLECTION)
        self._schedule_flush(PERFORMANCE_COLLECTION)
        if self._pending:
            await asyncio.gather(*list(self._pending))

    def _append(self, collection: str, event: dict[str, Any]) -> None:
        buffer = self._buffers[collection]
        buffer.append(event)
        self._since_attempt[collection] += 1
        if self._since_attempt[collection] < self._buffer_size:
            return
        running = self._inflight.get(collection)
        if running is not None and not running.done():
            return
        self._schedule_flush(collection)

    def _schedule_flush(self, collection: str) -> None:
        batch = self._buffers[collection]
        if not batch:
            return
        self._buffers[collection] = []
        self._since_attempt[collection] = 0

        task = create_background_task(
            self._write(collection, batch),
            name=f"flush-{collection}",
        )
        self._inflight[collection] = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, collection: str, batch: list[dict[str, Any]]) -> bool:
        try:
            await self._store.add_many(collection, batch)
        except Exception as e:
            logger.error(
                "Metrics flush failed",
                collection=collection,
                count=len(batch),
                error=str(e),
            )
            # Only the swapped batch goes back, ahead of newer events
            self._buffers[collection][:0] = batch
            return False

        logger.info("Metrics flushed", collection=collection, count=len(batch))
        return True


def with_timing(name: str, fn: Handler, metrics: MetricsCollector) -> Handler:
    """Wrap a handler so every call records a performance sample."""

    @functools.wraps(fn)
    async def timed(payload: dict[str, Any], identity: Identity | None) -> dict[str, Any]:
        start = time.perf_counter()
        success = True
        try:
            return await fn(payload, identity)
        except Exception:
            success = False
            raise
        finally:
            metrics.record_performance(
                name,
                (time.perf_counter() - start) * 1000,
                success,
                identity.uid if identity else None,
            )

    return timed


# ========== Queries & maintenance ==========


def _since(delta: timedelta) -> str:
    return utc_timestamp(datetime.now(timezone.utc) - delta)


def _error_rate(events: list[dict[str, Any]]) -> float:
    if not events:
        return 0.0
    failed = sum(1 for e in events if not e.get("success"))
    return failed / len(events) * 100


def _avg_duration(events: list[dict[str, Any]]) -> float:
    durations = [float(e.get("duration") or 0) for e in events]
    return sum(durations) / len(durations) if durations else 0.0


async def get_system_metrics(
    store: DocumentStore,
    hours: int = 24,
    cache_hit_rate: float = 0.0,
) -> dict[str, Any]:
    """System-wide usage over the last ``hours``.

    ``errorRate`` and ``cacheHitRate`` are percentages; ``avgResponseTime``
    is in milliseconds.
    """
    since = _since(timedelta(hours=hours))
    actions = await store.query(METRICS_COLLECTION, where=[("timestamp", ">=", since)])
    samples = await store.query(PERFORMANCE_COLLECTION, where=[("timestamp", ">=", since)])

    return {
        "timestamp": utc_timestamp(),
        "activeUsers": len({a.get("userId") for a in actions}),
        "totalRequests": len(actions),
        "errorRate": _error_rate(actions),
        "avgResponseTime": _avg_duration(samples),
        "cacheHitRate": cache_hit_rate * 100,
    }


async def get_user_metrics(
    store: DocumentStore,
    user_id: str,
    days: int = 7,
    limit: int = 1000,
    recent: int = 50,
) -> dict[str, Any]:
    """Usage of one user over the last ``days``."""
    actions = await store.query(
        METRICS_COLLECTION,
        where=[
            ("userId", "==", user_id),
            ("timestamp", ">=", _since(timedelta(days=days))),
        ],
        order_by="timestamp",
        descending=True,
        limit=limit,
    )

    action_counts: dict[str, int] = {}
    for action in actions:
        name = action.get("action", "unknown")
        action_counts[name] = action_counts.get(name, 0) + 1

    return {
        "totalActions": len(actions),
        "successfulActions": sum(1 for a in actions if a.get("success")),
        "errorRate": _error_rate(actions),
        "actionCounts": action_counts,
        "recentActions": actions[:recent],
    }


async def cleanup_old_metrics(
    store: DocumentStore,
    retention_days: int = 30,
    limit: int = 500,
) -> int:
    """Delete events older than the retention window, ``limit`` per collection."""
    cutoff = _since(timedelta(days=retention_days))
    deleted = 0
    for collection in (METRICS_COLLECTION, PERFORMANCE_COLLECTION):
        old = await store.query(collection, where=[("timestamp", "<", cutoff)], limit=limit)
        deleted += await store.delete_many(collection, [doc["id"] for doc in old])

    if deleted:
        logger.info("Old metrics cleaned up", deleted=deleted, retention_days=retention_days)
    return deleted


async def check_system_health(
    store: DocumentStore,
    window_minutes: int = 15,
) -> dict[str, Any]:
    """Compare recent error rate and latency against alert thresholds."""
    since = _since(timedelta(minutes=window_minutes))
    actions = await store.query(METRICS_COLLECTION, where=[("timestamp", ">=", since)])
    samples = await store.query(PERFORMANCE_COLLECTION, where=[("timestamp", ">=", since)])

    report: dict[str, Any] = {
        "status": "ok",
        "period": f"{window_minutes} minutes",
        "totalRequests": len(actions),
        "errorRate": _error_rate(actions),
        "sampleSize": len(samples),
        "avgResponseTime": _avg_duration(samples),
    }

    if report["avgResponseTime"] > RESPONSE_TIME_ALERT_MS:
        report["status"] = "warning"
        logger.warning(
            "High response time alert",
            avg_response_time=report["avgResponseTime"],
            sample_size=len(samples),
            period=report["period"],
        )
    if report["errorRate"] > ERROR_RATE_ALERT_PERCENT:
        report["status"] = "error"
        logger.error(
            "High error rate alert",
            error_rate=report["errorRate"],
            total_requests=len(actions),
            period=report["period"],
        )
    return report
