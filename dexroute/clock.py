"""Time sources and periodic schedulers.

Components that wait or poll take a Clock and a Scheduler instead of
calling time.time() / asyncio.sleep() directly. Production code uses
SystemClock and AsyncioScheduler; tests use ManualClock and
ManualScheduler to advance virtual time deterministically.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

import structlog

logger = structlog.get_logger()

TickCallback = Callable[[], Awaitable[None]]


class Clock(Protocol):
    def time(self) -> float:
        """Current Unix time in seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for `seconds`."""
        ...


class SystemClock:
    def time(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(seconds, 0))


class ManualClock:
    """Virtual clock for tests.

    sleep() does not wait in real time. Concurrent sleepers wake one at a
    time in deadline order, and each lets already-running tasks settle
    before virtual time moves to its deadline.

    Args:
        start: Initial Unix time
    """

    # Event-loop passes a sleeper yields as the earliest deadline before waking
    SETTLE_ITERATIONS = 10

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self._now = start
        self.sleeps: list[float] = []  # Track calls for assertions
        self._sleepers: list[tuple[float, int]] = []
        self._sequence = itertools.count()

    def time(self) -> float:
        return self._now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        entry = (self._now + max(seconds, 0.0), next(self._sequence))
        heapq.heappush(self._sleepers, entry)
        settled = 0
        try:
            while settled < self.SETTLE_ITERATIONS:
                await asyncio.sleep(0)
                settled = settled + 1 if self._sleepers[0] == entry else 0
        finally:
            self._sleepers.remove(entry)
            heapq.heapify(self._sleepers)
        self._now = max(self._now, entry[0])

    def advance(self, seconds: float) -> None:
        self._now += seconds

    def set(self, now: float) -> None:
        self._now = now


class TaskHandle(Protocol):
    def cancel(self) -> None: ...

    @property
    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    def every(self, interval: float, callback: TickCallback, *, run_immediately: bool = True) -> TaskHandle:
        """Run `callback` every `interval` seconds until the handle is cancelled."""
        ...


class _AsyncioHandle:
    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task

    def cancel(self) -> None:
        self._task.cancel()

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled() or self._task.done()


class AsyncioScheduler:
    """Scheduler backed by a background asyncio task per registration.

    A failing tick is logged and the schedule keeps running.
    """

    def every(self, interval: float, callback: TickCallback, *, run_immediately: bool = True) -> TaskHandle:
        task = asyncio.get_running_loop().create_task(self._loop(interval, callback, run_immediately))
        return _AsyncioHandle(task)

    async def _loop(self, interval: float, callback: TickCallback, run_immediately: bool) -> None:
        if not run_immediately:
            await asyncio.sleep(interval)
        while True:
            try:
                await callback()
            except Exception:
                logger.exception("scheduled_tick_failed", interval=interval)
            await asyncio.sleep(interval)


@dataclass
class _ManualJob:
    interval: float
    callback: TickCallback
    next_run: float
    cancelled: bool = field(default=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by explicit advance() calls on a ManualClock."""

    def __init__(self, clock: ManualClock) -> None:
        self.clock = clock
        self._jobs: list[_ManualJob] = []

    def every(self, interval: float, callback: TickCallback, *, run_immediately: bool = True) -> TaskHandle:
        if interval <= 0:
            raise ValueError(f"Interval must be positive: {interval}")
        now = self.clock.time()
        job = _ManualJob(interval, callback, now if run_immediately else now + interval)
        self._jobs.append(job)
        return job

    @property
    def pending(self) -> int:
        return sum(1 for job in self._jobs if not job.cancelled)

    async def advance(self, seconds: float = 0.0) -> int:
        """Move virtual time forward, running every tick that comes due.

        Ticks run in time order; the clock is set to each tick's due time
        before its callback runs.

        Returns:
            Number of ticks run
        """
        target = self.clock.time() + seconds
        ran = 0
        while True:
            due = [job for job in self._jobs if not job.cancelled and job.next_run <= target]
            if not due:
                break
            job = min(due, key=lambda j: j.next_run)
            self.clock.set(max(self.clock.time(), job.next_run))
            job.next_run += job.interval
            await job.callback()
            ran += 1
        self.clock.set(max(self.clock.time(), target))
        self._jobs = [job for job in self._jobs if not job.cancelled]
        return ran


__all__ = [
    "Clock",
    "SystemClock",
    "ManualClock",
    "TaskHandle",
    "Scheduler",
    "AsyncioScheduler",
    "ManualScheduler",
]
