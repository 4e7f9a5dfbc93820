"""Tests for virtual time and scheduling."""

import asyncio

import pytest

from dexroute.clock import AsyncioScheduler, ManualClock, ManualScheduler, SystemClock


class TestManualClock:
    @pytest.mark.asyncio
    async def test_sleep_advances_time(self):
        clock = ManualClock(start=100.0)
        await clock.sleep(2.5)
        assert clock.time() == 102.5
        assert clock.sleeps == [2.5]

    @pytest.mark.asyncio
    async def test_non_positive_sleep_keeps_time(self):
        clock = ManualClock(start=100.0)
        await clock.sleep(0)
        await clock.sleep(-1)
        assert clock.time() == 100.0

    @pytest.mark.asyncio
    async def test_concurrent_sleepers_wake_in_deadline_order(self):
        clock = ManualClock(start=0.0)
        woke = []

        async def sleeper(name, seconds):
            await clock.sleep(seconds)
            woke.append((name, clock.time()))

        await asyncio.gather(sleeper("late", 3), sleeper("early", 1), sleeper("middle", 2))
        assert woke == [("early", 1.0), ("middle", 2.0), ("late", 3.0)]

    def test_advance_and_set(self):
        clock = ManualClock(start=0.0)
        clock.advance(5)
        assert clock.time() == 5.0
        clock.set(42.0)
        assert clock.time() == 42.0


class TestManualScheduler:
    """Tests for deterministic periodic ticks."""

    @pytest.mark.asyncio
    async def test_runs_due_ticks_in_order(self):
        clock = ManualClock(start=0.0)
        scheduler = ManualScheduler(clock)
        seen = []

        async def tick():
            seen.append(clock.time())

        scheduler.every(10, tick)
        assert await scheduler.advance(25) == 3
        assert seen == [0.0, 10.0, 20.0]
        assert clock.time() == 25.0

    @pytest.mark.asyncio
    async def test_delayed_first_run(self):
        clock = ManualClock(start=0.0)
        scheduler = ManualScheduler(clock)
        seen = []

        async def tick():
            seen.append(clock.time())

        scheduler.every(10, tick, run_immediately=False)
        await scheduler.advance(10)
        assert seen == [10.0]

    @pytest.mark.asyncio
    async def test_cancel(self):
        clock = ManualClock()
        scheduler = ManualScheduler(clock)

        async def tick():
            pass

        handle = scheduler.every(10, tick)
        handle.cancel()
        assert handle.cancelled
        assert await scheduler.advance(100) == 0
        assert scheduler.pending == 0

    def test_rejects_non_positive_interval(self):
        scheduler = ManualScheduler(ManualClock())

        async def tick():
            pass

        with pytest.raises(ValueError):
            scheduler.every(0, tick)


class TestAsyncioScheduler:
    @pytest.mark.asyncio
    async def test_failing_tick_keeps_schedule(self):
        """An exception in one tick does not stop later ticks."""
        calls = []

        async def tick():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("first tick fails")

        handle = AsyncioScheduler().every(0.001, tick)
        for _ in range(100):
            if len(calls) >= 2:
                break
            await asyncio.sleep(0.005)
        handle.cancel()
        for _ in range(3):
            await asyncio.sleep(0)

        assert len(calls) >= 2
        assert handle.cancelled


class TestSystemClock:
    @pytest.mark.asyncio
    async def test_time_moves_forward(self):
        clock = SystemClock()
        start = clock.time()
        await clock.sleep(0)
        assert clock.time() >= start
