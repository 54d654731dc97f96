"""Async token bucket used to stay inside GitHub's request quotas."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

from loguru import logger

from ..config.defaults import RATE_LIMIT_WINDOW_SECONDS
from ..core.exceptions import RateLimitError


class TokenBucket:
    """Token bucket that refills continuously over a rolling window.

    A bucket with ``capacity`` tokens per ``window`` seconds gains
    ``capacity / window`` tokens per second and never holds more than
    ``capacity``. ``acquire`` waits until enough tokens are available.

    Args:
        capacity: Requests allowed per window
        window: Window length in seconds
        tokens: Tokens available right now (defaults to a full bucket)
        clock: Monotonic time source
        sleep: Coroutine used to wait for a refill
    """

    def __init__(
        self,
        capacity: int,
        window: float = RATE_LIMIT_WINDOW_SECONDS,
        tokens: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if capacity < 1 or window <= 0:
            raise RateLimitError(
                "Rate limit must allow at least one request per window",
                {"capacity": capacity, "window": window},
            )
        self.capacity = float(capacity)
        self.window = window
        self.refill_rate = self.capacity / window
        if tokens is None:
            self._tokens = self.capacity
        else:
            self._tokens = max(0.0, min(float(tokens), self.capacity))
        self._clock = clock
        self._sleep = sleep
        self._updated = clock()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_rate)
        self._updated = now

    @property
    def available(self) -> float:
        """Tokens available at this moment."""
        self._refill()
        return self._tokens

    async def acquire(self, tokens: int = 1) -> None:
        """Take ``tokens`` from the bucket, waiting for a refill if needed.

        Raises:
            RateLimitError: If more tokens are requested than the bucket holds
        """
        if tokens > self.capacity:
            raise RateLimitError(
                "Requested more tokens than the bucket can hold",
                {"requested": tokens, "capacity": self.capacity},
            )
        async with self._lock:
            while True:
                self._refill()
                if self._tokens >= tokens:
                    self._tokens -= tokens
                    return
                delay = (tokens - self._tokens) / self.refill_rate
                logger.debug(f"Rate limit reached, waiting {delay:.2f}s")
                await self._sleep(delay)

    def __repr__(self) -> str:
        return (
            f"TokenBucket(capacity={self.capacity:g}, window={self.window:g}, "
            f"tokens={self._tokens:.2f})"
        )
