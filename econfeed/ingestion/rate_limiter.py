"""Fixed-window rate limiter for API calls."""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable

from econfeed.config.constants import RATE_LIMIT_WINDOW


@dataclass
class RateLimiter:
    """Fixed-window request counter with delay-based admission.

    Attributes:
        limit_per_window: Maximum requests admitted per window
        window_seconds: Window length
        window_start: Start of the current window (monotonic clock)
        count: Requests admitted in the current window
    """

    limit_per_window: int
    window_seconds: float = RATE_LIMIT_WINDOW
    window_start: float = field(init=False)
    count: int = field(init=False, default=0)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def __post_init__(self) -> None:
        if self.limit_per_window <= 0:
            raise ValueError("limit_per_window must be positive")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.window_start = self.clock()

    @classmethod
    def from_per_minute(cls, requests_per_minute: int) -> "RateLimiter":
        """Create rate limiter from requests per minute."""
        return cls(limit_per_window=requests_per_minute, window_seconds=60.0)

    def _roll(self, now: float) -> None:
        """Start a new window if the current one has elapsed."""
        if now - self.window_start >= self.window_seconds:
            self.window_start = now
            self.count = 0

    async def admit(self) -> float:
        """Wait for a request slot in the current window.

        Returns:
            Total seconds spent waiting (0 if admitted immediately)
        """
        waited = 0.0
        while True:
            async with self._lock:
                now = self.clock()
                self._roll(now)

                if self.count < self.limit_per_window:
                    self.count += 1
                    return waited

                wait_time = self.window_seconds - (now - self.window_start)

            # Sleep outside the lock, then re-check the window
            await asyncio.sleep(max(wait_time, 0.0))
            waited += max(wait_time, 0.0)

    def try_admit(self) -> bool:
        """Take a slot without waiting.

        Returns:
            True if a slot was taken, False if the window is full
        """
        self._roll(self.clock())

        if self.count < self.limit_per_window:
            self.count += 1
            return True
        return False

    @property
    def remaining(self) -> int:
        """Slots left in the current window."""
        self._roll(self.clock())
        return self.limit_per_window - self.count

    @property
    def seconds_until_reset(self) -> float:
        """Time until the current window rolls over."""
        elapsed = self.clock() - self.window_start
        return max(self.window_seconds - elapsed, 0.0)
