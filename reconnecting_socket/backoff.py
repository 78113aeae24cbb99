"""
Backoff scheduler.

Usage:
    scheduler = BackoffScheduler(BackoffConfig(strategy="exponential"),
                                 on_backoff=..., on_ready=..., on_fail=...)
    scheduler.backoff()   # one failure: schedules `on_ready` or reports `on_fail`
    scheduler.reset()     # success or stop: cancel the timer, attempt count back to 0

Delays are computed from the number of failures seen before the current one, so
the first failure after a reset always waits the initial delay. The wait is a
timer on the event loop (`loop.call_later`), never a blocking sleep.
"""
import asyncio
import logging
import random
from typing import Any, Callable, Optional

from reconnecting_socket.config import BackoffConfig
from reconnecting_socket.exceptions import BackoffInProgressError

BackoffCallback = Callable[[int, float], None]
FailCallback = Callable[[int], None]


class BackoffScheduler:
    def __init__(
        self,
        config: Optional[BackoffConfig] = None,
        on_backoff: Optional[BackoffCallback] = None,
        on_ready: Optional[BackoffCallback] = None,
        on_fail: Optional[FailCallback] = None,
        rng: Optional[random.Random] = None,
        loop: Optional[Any] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or BackoffConfig()
        self.log = logger or logging.getLogger(__name__)
        self.on_backoff = on_backoff
        self.on_ready = on_ready
        self.on_fail = on_fail
        self._rng = rng or random.Random()
        # anything with call_later(); defaults to the running loop at schedule time
        self._loop = loop
        self._timer = None
        self._attempts = 0

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def pending(self) -> bool:
        return self._timer is not None

    @property
    def exhausted(self) -> bool:
        fail_after = self.config.fail_after
        return fail_after is not None and self._attempts >= fail_after

    def base_delay(self, attempt: int) -> float:
        """Un-jittered delay in ms after `attempt` earlier failures."""
        initial = float(self.config.initial_delay)
        cap = float(self.config.max_delay)
        ceiling = cap / initial
        growth = 1
        if self.config.strategy == "exponential":
            for _ in range(attempt):
                growth *= 2
                if growth >= ceiling:
                    break
        else:
            # fib(k + 2) / fib(2), fib(2) == 1
            prev, growth = 1, 1
            for _ in range(attempt):
                prev, growth = growth, prev + growth
                if growth >= ceiling:
                    break
        return min(cap, initial * growth)

    def jitter(self, delay: float) -> float:
        factor = self.config.randomization_factor
        if not factor:
            return delay
        spread = delay * factor
        return max(0.0, delay + (spread * (2 * (self._rng.random() - 0.5))))

    def next_delay(self, attempt: int) -> float:
        return self.jitter(self.base_delay(attempt))

    def backoff(self) -> Optional[float]:
        """
        Signal one failure. Returns the scheduled delay in ms, or None when the
        configured attempt bound was reached and `on_fail` was reported instead.
        """
        if self._timer is not None:
            raise BackoffInProgressError(
                "backoff already in progress",
                context={"attempts": self._attempts},
            )

        fail_after = self.config.fail_after
        if fail_after is not None and self._attempts + 1 >= fail_after:
            self._attempts = fail_after
            self.log.info("Backoff: giving up after %d attempts", self._attempts)
            if self.on_fail:
                self.on_fail(self._attempts)
            return None

        loop = self._loop or asyncio.get_running_loop()
        delay = self.next_delay(self._attempts)
        self._attempts += 1
        self._timer = loop.call_later(delay / 1000.0, self._fire, self._attempts, delay)
        self.log.info("Backoff: waiting %.0f ms (attempt=%d)", delay, self._attempts)
        if self.on_backoff:
            self.on_backoff(self._attempts, delay)
        return delay

    def reset(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._attempts = 0

    def _fire(self, number: int, delay: float) -> None:
        self._timer = None
        if self.on_ready:
            self.on_ready(number, delay)
