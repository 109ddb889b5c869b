"""Tests for MetricsCollector buffering, with_timing and the metric queries."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from gestor.core.security import Identity
from gestor.db.store import DocumentStore, utc_timestamp
from gestor.services.metrics import (
    METRICS_COLLECTION,
    PERFORMANCE_COLLECTION,
    MetricsCollector,
    check_system_health,
    cleanup_old_metrics,
    get_system_metrics,
    get_user_metrics,
    with_timing,
)


def _mock_store() -> MagicMock:
    store = MagicMock(spec=DocumentStore)
    store.add_many = AsyncMock(return_value=[])
    return store


def _ago(**delta) -> str:
    return utc_timestamp(datetime.now(timezone.utc) - timedelta(**delta))


# =============================================================================
# Buffering
# =============================================================================

class TestBuffering:

    async def test_full_buffer_written_in_one_batch(self):
        store = _mock_store()
        collector = MetricsCollector(store, buffer_size=100)

        for i in range(100):
            collector.record_user_action("u1", f"action-{i}")
        # Recording is synchronous; the swapped buffer is already empty
        assert collector.pending_events(METRICS_COLLECTION) == []

        await collector.flush_all()

        store.add_many.assert_awaited_once()
        collection, batch = store.add_many.await_args.args
        assert collection == METRICS_COLLECTION
        assert [e["action"] for e in batch] == [f"action-{i}" for i in range(100)]

    async def test_below_threshold_stays_buffered(self):
        store = _mock_store()
        collector = MetricsCollector(store, buffer_size=100)

        for _ in range(99):
            collector.record_user_action("u1", "listarDespesas")
        await asyncio.sleep(0)

        store.add_many.assert_not_awaited()
        assert len(collector.pending_events(METRICS_COLLECTION)) == 99

    async def test_flush_all_writes_both_buffers(self):
        store = _mock_store()
        collector = MetricsCollector(store)
        collector.record_user_action("u1", "setupUser", duration_ms=12.0)
        collector.record_performance("setupUser", 12.0, True, "u1")

        await collector.flush_all()

        written = {call.args[0]: call.args[1] for call in store.add_many.await_args_list}
        assert set(written) == {METRICS_COLLECTION, PERFORMANCE_COLLECTION}
        assert written[METRICS_COLLECTION][0]["duration"] == 12.0
        assert written[PERFORMANCE_COLLECTION][0]["functionName"] == "setupUser"
        assert written[PERFORMANCE_COLLECTION][0]["userId"] == "u1"

    async def test_flush_all_with_empty_buffers(self):
        store = _mock_store()
        await MetricsCollector(store).flush_all()
        store.add_many.assert_not_awaited()

    async def test_failed_batch_is_requeued_ahead_of_new_events(self):
        store = _mock_store()
        store.add_many.side_effect = RuntimeError("database unavailable")
        collector = MetricsCollector(store, buffer_size=100)

        for i in range(100):
            collector.record_user_action("u1", f"old-{i}")
        collector.record_user_action("u1", "new-0")
        collector.record_user_action("u1", "new-1")
        await asyncio.sleep(0)

        pending = [e["action"] for e in collector.pending_events(METRICS_COLLECTION)]
        assert pending == [f"old-{i}" for i in range(100)] + ["new-0", "new-1"]

    async def test_requeued_events_written_on_next_flush(self):
        store = _mock_store()
        store.add_many.side_effect = [RuntimeError("database unavailable"), []]
        collector = MetricsCollector(store, buffer_size=10)

        for i in range(10):
            collector.record_performance("fn", float(i), True)
        await asyncio.sleep(0)
        assert len(collector.pending_events(PERFORMANCE_COLLECTION)) == 10

        await collector.flush_all()

        assert store.add_many.await_count == 2
        assert len(store.add_many.await_args.args[1]) == 10
        assert collector.pending_events(PERFORMANCE_COLLECTION) == []

    async def test_store_outage_does_not_write_per_event(self):
        store = _mock_store()
        store.add_many.side_effect = RuntimeError("database unavailable")
        collector = MetricsCollector(store, buffer_size=100)

        for i in range(100):
            collector.record_user_action("u1", f"old-{i}")
        await asyncio.sleep(0)
        for i in range(10):
            collector.record_user_action("u1", f"new-{i}")
            await asyncio.sleep(0)

        assert store.add_many.await_count == 1
        pending = [e["action"] for e in collector.pending_events(METRICS_COLLECTION)]
        assert pending == [f"old-{i}" for i in range(100)] + [f"new-{i}" for i in range(10)]

        # The next full buffer of new events retries the whole backlog once
        for i in range(10, 100):
            collector.record_user_action("u1", f"new-{i}")
        await asyncio.sleep(0)

        assert store.add_many.await_count == 2
        assert len(store.add_many.await_args.args[1]) == 200

    async def test_full_buffer_waits_for_in_flight_write(self):
        store = _mock_store()
        release = asyncio.Event()

        async def slow_write(collection, batch):
            await release.wait()
            return []

        store.add_many.side_effect = slow_write
        collector = MetricsCollector(store, buffer_size=5)

        for _ in range(10):
            collector.record_performance("fn", 1.0, True)
        await asyncio.sleep(0)

        assert store.add_many.await_count == 1
        assert len(collector.pending_events(PERFORMANCE_COLLECTION)) == 5

        release.set()
        await collector.flush_all()

        assert store.add_many.await_count == 2
        assert collector.pending_events(PERFORMANCE_COLLECTION) == []

    async def test_slow_call_warns(self):
        collector = MetricsCollector(_mock_store(), slow_threshold_ms=5000)
        with patch("gestor.services.metrics.logger") as mock_logger:
            collector.record_performance("gerarAnalise", 5001.0, True, "u1")
            collector.record_performance("listarDespesas", 40.0, True, "u1")

        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.args[0] == "Slow function"
        assert mock_logger.warning.call_args.kwargs["function_name"] == "gerarAnalise"


# =============================================================================
# with_timing
# =============================================================================

class TestWithTiming:

    async def test_records_success(self):
        collector = MetricsCollector(_mock_store())
        handler = AsyncMock(return_value={"success": True})

        timed = with_timing("listarPedidos", handler, collector)
        result = await timed({}, Identity(uid="u1"))

        assert result == {"success": True}
        [sample] = collector.pending_events(PERFORMANCE_COLLECTION)
        assert sample["functionName"] == "listarPedidos"
        assert sample["success"] is True
        assert sample["userId"] == "u1"
        assert sample["duration"] >= 0

    async def test_records_failure_and_reraises(self):
        collector = MetricsCollector(_mock_store())
        handler = AsyncMock(side_effect=ValueError("boom"))

        timed = with_timing("registrarPedido", handler, collector)
        with pytest.raises(ValueError):
            await timed({}, None)

        [sample] = collector.pending_events(PERFORMANCE_COLLECTION)
        assert sample["success"] is False
        assert "userId" not in sample


# =============================================================================
# Queries & maintenance
# =============================================================================

class TestQueries:

    async def test_system_metrics(self, store: DocumentStore):
        await store.add_many(METRICS_COLLECTION, [
            {"userId": "u1", "action": "a", "success": True, "timestamp": _ago(hours=1)},
            {"userId": "u2", "action": "a", "success": False, "timestamp": _ago(hours=2)},
            {"userId": "u3", "action": "a", "success": True, "timestamp": _ago(hours=30)},
        ])
        await store.add_many(PERFORMANCE_COLLECTION, [
            {"functionName": "a", "duration": 100.0, "success": True, "timestamp": _ago(hours=1)},
            {"functionName": "a", "duration": 300.0, "success": True, "timestamp": _ago(hours=1)},
        ])

        metrics = await get_system_metrics(store, hours=24, cache_hit_rate=0.25)

        assert metrics["activeUsers"] == 2
        assert metrics["totalRequests"] == 2
        assert metrics["errorRate"] == 50.0
        assert metrics["avgResponseTime"] == 200.0
        assert metrics["cacheHitRate"] == 25.0

    async def test_user_metrics(self, store: DocumentStore):
        await store.add_many(METRICS_COLLECTION, [
            {"userId": "u1", "action": "registrarDespesa", "success": True, "timestamp": _ago(days=1)},
            {"userId": "u1", "action": "registrarDespesa", "success": False, "timestamp": _ago(hours=1)},
            {"userId": "u1", "action": "listarDespesas", "success": True, "timestamp": _ago(minutes=5)},
            {"userId": "u2", "action": "listarDespesas", "success": True, "timestamp": _ago(minutes=5)},
            {"userId": "u1", "action": "listarDespesas", "success": True, "timestamp": _ago(days=10)},
        ])

        metrics = await get_user_metrics(store, "u1", days=7)

        assert metrics["totalActions"] == 3
        assert metrics["successfulActions"] == 2
        assert metrics["actionCounts"] == {"registrarDespesa": 2, "listarDespesas": 1}
        assert metrics["recentActions"][0]["action"] == "listarDespesas"

    async def test_cleanup_old_metrics(self, store: DocumentStore):
        await store.add_many(METRICS_COLLECTION, [
            {"action": "old", "timestamp": _ago(days=40)},
            {"action": "new", "timestamp": _ago(days=1)},
        ])
        await store.add_many(PERFORMANCE_COLLECTION, [
            {"functionName": "old", "timestamp": _ago(days=31)},
        ])

        assert await cleanup_old_metrics(store, retention_days=30) == 2
        remaining = await store.query(METRICS_COLLECTION)
        assert [m["action"] for m in remaining] == ["new"]

    async def test_health_ok(self, store: DocumentStore):
        await store.add(METRICS_COLLECTION, {"success": True, "timestamp": _ago(minutes=1)})
        report = await check_system_health(store)
        assert report["status"] == "ok"
        assert report["totalRequests"] == 1

    async def test_health_warns_on_slow_responses(self, store: DocumentStore):
        await store.add(PERFORMANCE_COLLECTION, {"duration": 3500.0, "timestamp": _ago(minutes=1)})
        with patch("gestor.services.metrics.logger") as mock_logger:
            report = await check_system_health(store)
        assert report["status"] == "warning"
        mock_logger.warning.assert_called_once()

    async def test_health_errors_on_high_error_rate(self, store: DocumentStore):
        await store.add_many(METRICS_COLLECTION, [
            {"success": False, "timestamp": _ago(minutes=1)},
            {"success": True, "timestamp": _ago(minutes=2)},
        ])
        with patch("gestor.services.metrics.logger") as mock_logger:
            report = await check_system_health(store)
        assert report["status"] == "error"
        assert report["errorRate"] == 50.0
        mock_logger.error.assert_called_once()
