"""Adaptive minimum-interval gate for outgoing requests."""

from __future__ import annotations

from dexroute.clock import Clock


class AdaptiveThrottle:
    """Spaces out requests by a minimum interval that adapts to node health.

    Each error multiplies the interval by `widen_factor` (capped at
    `max_interval`). After `narrow_after` consecutive successes the
    interval shrinks by `narrow_factor`, never below `min_interval`.
    """

    def __init__(
        self,
        clock: Clock,
        min_interval: float,
        max_interval: float,
        widen_factor: float = 2.0,
        narrow_factor: float = 0.8,
        narrow_after: int = 5,
    ) -> None:
        self._clock = clock
        self.min_interval = min_interval
        self.max_interval = max_interval
        self.widen_factor = widen_factor
        self.narrow_factor = narrow_factor
        self.narrow_after = narrow_after
        self.interval = min_interval
        self._last_request: float | None = None
        self._success_streak = 0

    async def wait(self) -> float:
        """Sleep until the next request is allowed, then claim the slot.

        Returns:
            Seconds waited
        """
        now = self._clock.time()
        delay = 0.0
        if self._last_request is not None:
            delay = self._last_request + self.interval - now
        # Claim the slot before sleeping so concurrent waiters queue behind it
        self._last_request = now + max(delay, 0.0)
        if delay > 0:
            await self._clock.sleep(delay)
            return delay
        return 0.0

    def record_success(self) -> None:
        self._success_streak += 1
        if self._success_streak >= self.narrow_after:
            self._success_streak = 0
            self.interval = max(self.min_interval, self.interval * self.narrow_factor)

    def record_error(self) -> None:
        self._success_streak = 0
        self.interval = min(self.max_interval, self.interval * self.widen_factor)


__all__ = ["AdaptiveThrottle"]
