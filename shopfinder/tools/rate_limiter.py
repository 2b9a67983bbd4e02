"""
Minimum-interval gate for an outbound provider.

One limiter instance is shared process-wide, so every caller across every
conversation contends for the same gate. Holders are serialized and each
request starts no sooner than ``min_interval`` after the previous one
finished.

Usage:
    limiter = RateLimiter(min_interval=1.1)
    async with limiter.acquire():
        response = await do_request()
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """Serializing throttle owning its own last-request timestamp."""

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if min_interval < 0:
            raise ValueError(f"min_interval must be >= 0, got {min_interval}")
        self._min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_finished: Optional[float] = None
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[None]:
        """Suspend until the interval has elapsed, then hold the gate."""
        async with self._lock:
            if self._last_finished is not None:
                wait = self._min_interval - (self._clock() - self._last_finished)
                if wait > 0:
                    logger.debug("Throttling outbound request for %.3fs", wait)
                    await self._sleep(wait)
            try:
                yield
            finally:
                self._last_finished = self._clock()
