"""Shared outbound throttle and retry policy for Scryfall traffic."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """How the client retries a request.

    Transient failures back off linearly (``attempt * base_delay``) up to
    ``max_attempts`` tries. Rate-limit responses wait ``Retry-After`` (or
    ``rate_limit_wait``) and have their own budget.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    rate_limit_wait: float = 1.0
    max_rate_limit_waits: int = 10

    def delay_for(self, attempt: int) -> float:
        """Delay after the ``attempt``-th failed try (1-based)."""
        return attempt * self.base_delay


class RateLimiter:
    """Minimum spacing between request departures, shared by every caller.

    Scryfall asks for at most 10 requests/second, hence the 100ms default.
    """

    def __init__(
        self,
        min_interval: float = 0.1,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_request: Optional[float] = None

    @property
    def last_request(self) -> Optional[float]:
        return self._last_request

    async def throttle(self) -> None:
        """Wait until a request may depart, then record the departure."""
        async with self._lock:
            if self._last_request is not None:
                elapsed = self._clock() - self._last_request
                if elapsed < self.min_interval:
                    wait = self.min_interval - elapsed
                    logger.debug(f"Throttling outbound request for {wait * 1000:.0f}ms")
                    await self._sleep(wait)
            self._last_request = self._clock()
