"""Tests for AnalysisScheduler admission, queueing and debounce."""

import asyncio

import pytest

from codementor.config import EngineConfig
from codementor.exceptions import QueueOverflowError
from codementor.scheduling import AnalysisScheduler


class TestAdmission:
    """At most max_concurrent jobs run; the rest wait in FIFO order."""

    def test_five_requests_three_slots(self):
        async def scenario():
            scheduler = AnalysisScheduler(max_concurrent=3)
            gate = asyncio.Event()
            started = []

            async def job(i):
                async with scheduler.slot("ws"):
                    started.append(i)
                    await gate.wait()

            tasks = [asyncio.create_task(job(i)) for i in range(5)]
            await asyncio.sleep(0)
            snapshot = (scheduler.running("ws"), scheduler.queued("ws"), list(started))

            gate.set()
            await asyncio.gather(*tasks)
            return snapshot, started, scheduler.running("ws")

        (running, queued, early), started, after = asyncio.run(scenario())
        assert (running, queued) == (3, 2)
        assert early == [0, 1, 2]
        assert started == [0, 1, 2, 3, 4]
        assert after == 0

    def test_workspaces_are_independent(self):
        async def scenario():
            scheduler = AnalysisScheduler(max_concurrent=1)
            await scheduler.acquire("a")
            await scheduler.acquire("b")
            return scheduler.running("a"), scheduler.running("b"), scheduler.queued("a")

        assert asyncio.run(scenario()) == (1, 1, 0)

    def test_overflow(self):
        async def scenario():
            scheduler = AnalysisScheduler(max_concurrent=1, max_queue_depth=1)
            await scheduler.acquire("ws")
            waiter = asyncio.create_task(scheduler.acquire("ws"))
            await asyncio.sleep(0)
            try:
                await scheduler.acquire("ws")
            finally:
                scheduler.release("ws")
                await waiter
                scheduler.release("ws")

        with pytest.raises(QueueOverflowError):
            asyncio.run(scenario())

    def test_cancelled_waiter_leaves_queue(self):
        async def scenario():
            scheduler = AnalysisScheduler(max_concurrent=1)
            await scheduler.acquire("ws")
            waiter = asyncio.create_task(scheduler.acquire("ws"))
            await asyncio.sleep(0)
            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter
            queued = scheduler.queued("ws")
            scheduler.release("ws")
            return queued, scheduler.running("ws")

        assert asyncio.run(scenario()) == (0, 0)

    def test_configure(self):
        scheduler = AnalysisScheduler()
        scheduler.configure(EngineConfig(max_concurrent_jobs=7, max_queue_depth=2))
        assert scheduler.max_concurrent == 7
        assert scheduler.max_queue_depth == 2


class TestDebounce:
    """Sustained load stretches the debounce interval; it relaxes afterwards."""

    def test_grows_with_latency_and_caps(self):
        scheduler = AnalysisScheduler(load_latency_threshold_ms=1000, max_debounce_ms=600)
        assert scheduler.debounce_seconds("ws") == 0.0
        delays = []
        for _ in range(3):
            scheduler.release("ws", 5000.0)
            delays.append(scheduler.debounce_seconds("ws"))
        assert delays == [0.25, 0.5, 0.6]

    def test_grows_with_queue_depth_then_relaxes(self):
        async def scenario():
            scheduler = AnalysisScheduler(max_concurrent=1, load_queue_threshold=1)
            await scheduler.acquire("ws")
            waiter = asyncio.create_task(scheduler.acquire("ws"))
            await asyncio.sleep(0)
            loaded = scheduler.debounce_seconds("ws")
            scheduler.release("ws", 1.0)
            await waiter
            scheduler.release("ws", 1.0)
            return loaded, scheduler.debounce_seconds("ws")

        assert asyncio.run(scenario()) == (0.25, 0.0)

    def test_base_interval_is_floor(self):
        scheduler = AnalysisScheduler(base_debounce_ms=100)
        scheduler.release("ws", 1.0)
        assert scheduler.debounce_seconds("ws") == 0.1

    def test_stats(self):
        scheduler = AnalysisScheduler()
        scheduler.release("ws", 12.0)
        stats = scheduler.stats("ws")
        assert stats["completed"] == 1
        assert stats["latency_ms"] == 12.0
        assert stats["running"] == 0
