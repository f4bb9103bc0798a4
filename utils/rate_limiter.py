"""
In-memory sliding-window rate limiters.

RateLimiter throttles Discord commands per (scope, user). DualWindowRateLimiter
keeps outbound Riot API traffic under both of Riot's request caps; it is
owned by the client that uses it and takes an injectable clock and sleep so
tests can drive it deterministically.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after_seconds: float = 0.0


class SlidingWindow:
    """Allow `limit` events per `per_seconds` window."""

    def __init__(self, limit: int, per_seconds: float) -> None:
        self.limit = limit
        self.per_seconds = per_seconds
        self._hits: deque[float] = deque()

    def _prune(self, now: float) -> None:
        window_start = now - self.per_seconds
        while self._hits and self._hits[0] <= window_start:
            self._hits.popleft()

    def retry_after(self, now: float) -> float:
        """Seconds until a slot frees up (0 when one is free now)."""
        self._prune(now)
        if len(self._hits) < self.limit:
            return 0.0
        return max(0.0, self._hits[0] + self.per_seconds - now)

    def record(self, now: float) -> None:
        self._hits.append(now)

    def __len__(self) -> int:
        return len(self._hits)


class RateLimiter:
    """
    Per-key limiter for interactive commands.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        # (scope, user_id) -> window
        self._windows: dict[tuple[str, int], SlidingWindow] = {}

    def check(self, *, scope: str, user_id: int, limit: int, per_seconds: int) -> RateLimitResult:
        now = self._clock()
        key = (scope, user_id)
        window = self._windows.get(key)
        if window is None or window.limit != limit or window.per_seconds != per_seconds:
            window = SlidingWindow(limit, per_seconds)
            self._windows[key] = window

        wait = window.retry_after(now)
        if wait > 0:
            return RateLimitResult(allowed=False, retry_after_seconds=wait)
        window.record(now)
        return RateLimitResult(allowed=True)


GLOBAL_RATE_LIMITER = RateLimiter()


class DualWindowRateLimiter:
    """
    Two stacked sliding windows, e.g. 20 requests/second and 100 requests/2 minutes.

    acquire() queues the caller behind a cooperative poll-and-sleep gate
    instead of rejecting it.
    """

    def __init__(
        self,
        short_limit: int = 20,
        short_window: float = 1.0,
        long_limit: int = 100,
        long_window: float = 120.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        poll_interval: float = 0.05,
    ) -> None:
        self.short = SlidingWindow(short_limit, short_window)
        self.long = SlidingWindow(long_limit, long_window)
        self._clock = clock
        self._sleep = sleep
        self.poll_interval = poll_interval

    def try_acquire(self) -> RateLimitResult:
        """Take a slot if both windows have room; never waits."""
        now = self._clock()
        wait = max(self.short.retry_after(now), self.long.retry_after(now))
        if wait > 0:
            return RateLimitResult(allowed=False, retry_after_seconds=wait)
        self.short.record(now)
        self.long.record(now)
        return RateLimitResult(allowed=True)

    async def acquire(self) -> float:
        """
        Wait for a slot and take it.

        Returns:
            Total seconds spent waiting
        """
        waited = 0.0
        while True:
            result = self.try_acquire()
            if result.allowed:
                return waited
            # Until the earliest slot frees, never less than one poll interval
            delay = max(self.poll_interval, result.retry_after_seconds)
            await self._sleep(delay)
            waited += delay
