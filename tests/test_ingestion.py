import asyncio
from datetime import datetime, timedelta

import pytest

from vita_engine.config import EngineConfig
from vita_engine.data_models import RawScreenSample, RawStepSample
from vita_engine.events import ScreenTimeTracker, StepSensor
from vita_engine.ingestion import ActivityDataService, RetentionBuffer
from vita_engine.storage import InMemoryKeyValueStore, KeyValueStore, PersistenceError

NOW = datetime(2025, 9, 15, 12, 0)


class FailingStore(KeyValueStore):
    def __init__(self, fail_reads=False):
        self.fail_reads = fail_reads

    async def get(self, key):
        if self.fail_reads:
            raise PersistenceError("disk unavailable")
        return None

    async def set(self, key, value):
        raise PersistenceError("disk full")


class BrokenStore(InMemoryKeyValueStore):
    def __init__(self, fail_sets=0, fail_gets=0):
        super().__init__()
        self.fail_sets = fail_sets
        self.fail_gets = fail_gets

    async def get(self, key):
        if self.fail_gets:
            self.fail_gets -= 1
            raise RuntimeError("corrupt index")
        return await super().get(key)

    async def set(self, key, value):
        if self.fail_sets:
            self.fail_sets -= 1
            raise ValueError("unexpected payload")
        await super().set(key, value)


def _step(minutes_ago=0, count=10):
    return RawStepSample(timestamp=NOW - timedelta(minutes=minutes_ago), count=count)


def _screen(minutes_ago=0, app_name="Calm"):
    return RawScreenSample(
        timestamp=NOW - timedelta(minutes=minutes_ago),
        app_name=app_name,
        duration_minutes=5,
        category="wellness",
        is_wellness_app=True,
    )


def _service(store=None, **config):
    summaries = []
    service = ActivityDataService(
        store or InMemoryKeyValueStore(),
        config=EngineConfig(**config),
        on_summary=summaries.append,
        clock=lambda: NOW,
    )
    return service, summaries


def test_retention_buffer_is_bounded_and_time_windowed():
    buffer = RetentionBuffer(max_samples=3, retention=timedelta(days=1))
    for minutes_ago in (3000, 4, 3, 2, 1):
        buffer.append(_step(minutes_ago))

    assert len(buffer) == 3
    assert [sample.timestamp for sample in buffer.samples()] == [
        NOW - timedelta(minutes=3),
        NOW - timedelta(minutes=2),
        NOW - timedelta(minutes=1),
    ]

    buffer.append(_step(3000))
    assert buffer.evict_older_than(NOW) == 1
    assert len(buffer) == 2


def test_process_batch_emits_summary_and_stores_batch():
    service, summaries = _service()
    service.add_step_data(_step(10, count=40))
    service.add_step_data(_step(5, count=60))
    service.add_screen_time_data(_screen())

    summary = asyncio.run(service.process_batch())

    assert summary.total_steps == 100
    assert summaries == [summary]
    assert service.pending_counts == {"steps": 0, "screen_time": 0}
    assert service.last_processed_timestamp == NOW

    stats = asyncio.run(service.get_storage_stats())
    assert stats["steps"] == {"total": 1_000_000, "used": 2}
    assert stats["screen_time"] == {"total": 100_000, "used": 1}


def test_empty_batch_is_skipped_unless_forced():
    service, summaries = _service()

    assert asyncio.run(service.process_batch()) is None
    assert summaries == []

    summary = asyncio.run(service.process_batch(force=True))
    assert summary.total_steps == 0
    assert len(asyncio.run(service.load())["batches"]) == 1


def test_failed_write_requeues_batch_and_raises():
    service, _ = _service(store=FailingStore())
    for minutes_ago in range(3):
        service.add_step_data(_step(minutes_ago))

    with pytest.raises(PersistenceError):
        asyncio.run(service.process_batch())

    assert service.pending_counts == {"steps": 3, "screen_time": 0}
    assert service.last_processed_timestamp is None
    assert not service.is_service_healthy()


def test_unexpected_write_error_requeues_batch():
    service, summaries = _service(store=BrokenStore(fail_sets=1))
    service.add_step_data(_step())

    with pytest.raises(ValueError):
        asyncio.run(service.process_batch())

    assert service.pending_counts == {"steps": 1, "screen_time": 0}
    assert summaries == []

    asyncio.run(service.process_batch())

    assert service.pending_counts == {"steps": 0, "screen_time": 0}
    assert len(asyncio.run(service.load())["batches"]) == 1


def test_failing_summary_callback_keeps_saved_batch():
    def explode(summary):
        raise ValueError("listener crashed")

    service = ActivityDataService(InMemoryKeyValueStore(), on_summary=explode, clock=lambda: NOW)
    service.add_step_data(_step(count=25))

    with pytest.raises(ValueError):
        asyncio.run(service.process_batch())

    data = asyncio.run(service.load())
    assert len(data["batches"]) == 1
    assert len(data["batches"][0]["steps"]) == 1
    assert service.pending_counts == {"steps": 0, "screen_time": 0}
    assert service.last_processed_timestamp == NOW


def test_failed_read_returns_empty_defaults():
    service, _ = _service(store=FailingStore(fail_reads=True))

    assert asyncio.run(service.load()) == {"batches": []}
    assert asyncio.run(service.cleanup_old_data()) == 0


def test_range_queries_read_stored_samples():
    service, _ = _service()
    service.add_step_data(_step(120))
    service.add_step_data(_step(30))
    service.add_screen_time_data(_screen(45))
    asyncio.run(service.process_batch())

    recent_steps = asyncio.run(service.get_step_data_for_range(NOW - timedelta(hours=1), NOW))
    screens = asyncio.run(service.get_screen_time_data_for_range(NOW - timedelta(hours=1), NOW))

    assert [sample.timestamp for sample in recent_steps] == [NOW - timedelta(minutes=30)]
    assert screens[0].app_name == "Calm"


def test_cleanup_removes_batches_past_retention():
    store = InMemoryKeyValueStore()
    old = (NOW - timedelta(days=100)).isoformat()
    fresh = (NOW - timedelta(days=1)).isoformat()
    asyncio.run(
        store.set(
            "vita_navigator_activity_data",
            {"batches": [
                {"steps": [], "screen_time": [], "timestamp": old},
                {"steps": [], "screen_time": [], "timestamp": fresh},
            ]},
        )
    )
    service, _ = _service(store=store)

    assert asyncio.run(service.cleanup_old_data()) == 1
    assert [batch["timestamp"] for batch in asyncio.run(service.load())["batches"]] == [fresh]


def test_cleanup_keeps_batches_with_unreadable_timestamps():
    store = InMemoryKeyValueStore()
    old = (NOW - timedelta(days=100)).isoformat()
    fresh = (NOW - timedelta(days=1)).isoformat()
    asyncio.run(
        store.set(
            "vita_navigator_activity_data",
            {"batches": [
                {"steps": [], "screen_time": []},
                {"steps": [], "screen_time": [], "timestamp": "yesterday"},
                {"steps": [], "screen_time": [], "timestamp": old},
                {"steps": [], "screen_time": [], "timestamp": fresh},
            ]},
        )
    )
    service, _ = _service(store=store)

    assert asyncio.run(service.cleanup_old_data()) == 1
    assert [batch.get("timestamp") for batch in asyncio.run(service.load())["batches"]] == [
        None,
        "yesterday",
        fresh,
    ]


def test_stop_flushes_after_periodic_job_failure():
    store = BrokenStore(fail_gets=1)
    service, _ = _service(store=store, cleanup_interval_seconds=0.001)

    async def scenario():
        service.start()
        while store.fail_gets:
            await asyncio.sleep(0.001)
        await asyncio.sleep(0)
        service.add_step_data(_step())
        await service.stop()
        return await service.load()

    data = asyncio.run(scenario())

    assert len(data["batches"]) == 1
    assert len(data["batches"][0]["steps"]) == 1


def test_full_batch_is_flushed_on_running_loop():
    service, summaries = _service(batch_size=2)

    async def scenario():
        service.add_step_data(_step(2))
        service.add_step_data(_step(1))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        return await service.load()

    data = asyncio.run(scenario())

    assert len(data["batches"]) == 1
    assert len(summaries) == 1
    assert service.is_service_healthy()


def test_full_batch_without_loop_stays_pending():
    service, _ = _service(batch_size=1)
    service.add_step_data(_step())

    assert service.pending_counts["steps"] == 1


def test_stop_forces_final_flush():
    service, _ = _service()

    async def scenario():
        service.start()
        service.add_screen_time_data(_screen())
        await service.stop()
        return await service.load()

    data = asyncio.run(scenario())

    assert len(data["batches"]) == 1
    assert len(data["batches"][0]["screen_time"]) == 1


def test_tracking_wires_event_sources():
    service, _ = _service()
    sensor = StepSensor()
    tracker = ScreenTimeTracker()

    service.start_tracking(sensor, tracker)
    sensor.handle_motion(0, 0, 12, NOW)
    tracker.handle_focus(NOW)
    tracker.handle_blur(NOW + timedelta(minutes=3))

    assert service.is_tracking
    assert service.pending_counts == {"steps": 1, "screen_time": 1}

    service.stop_tracking()

    assert not service.is_tracking
    assert not sensor.is_tracking
    assert sensor.subscriber_count == 0
    assert tracker.subscriber_count == 0
