"""
Rate Limiter - Per-Provider Minimum Inter-Call Interval

Each Content Provider owns one RateLimiter. The limiter converts a
requests-per-minute budget into a minimum interval between permitted calls
and suspends callers that arrive too early.

State:
    The last-permitted timestamp lives as long as the provider instance.
    It is safe under the orchestrator's sequential call discipline; callers
    running several orchestrations concurrently against one provider must
    serialize ``acquire()`` themselves.

Author: Shubham Singh
Date: January 2026
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from loguru import logger

from clinical_document_processing.core.exceptions import ConfigurationError


class RateLimiter:
    """
    Minimum-interval throttle for one content provider.

    What it does:
        On ``acquire()``, if less than ``60 / requests_per_minute`` seconds
        have passed since the last permitted call, sleeps for the remainder,
        then stamps "now" as the last permitted time.

    Why clock and sleep are injectable:
        Tests drive the limiter with a fake clock instead of waiting.

    Example:
        >>> limiter = RateLimiter(requests_per_minute=10)
        >>> await limiter.acquire()  # immediate
        >>> await limiter.acquire()  # waits ~6 seconds
    """

    def __init__(
        self,
        requests_per_minute: int,
        name: str = "provider",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the rate limiter.

        Args:
            requests_per_minute: Permitted calls per minute (must be positive)
            name: Provider name, for logging
            clock: Monotonic clock returning seconds
            sleep: Coroutine function suspending for the given seconds
        """
        if requests_per_minute <= 0:
            raise ConfigurationError(
                f"requests_per_minute must be positive, got {requests_per_minute}",
                context={"provider": name},
            )

        self._name = name
        self._requests_per_minute = requests_per_minute
        self._min_interval = 60.0 / requests_per_minute
        self._clock = clock
        self._sleep = sleep
        self._last_permitted: Optional[float] = None

    @property
    def min_interval_ms(self) -> float:
        """Minimum milliseconds between two permitted calls."""
        return self._min_interval * 1000

    @property
    def last_permitted(self) -> Optional[float]:
        """Clock reading of the last permitted call (None before the first)."""
        return self._last_permitted

    async def acquire(self) -> float:
        """
        Suspend until a call is permitted.

        Returns:
            Seconds spent waiting (0.0 when no wait was needed)
        """
        waited = 0.0

        if self._last_permitted is not None:
            elapsed = self._clock() - self._last_permitted
            if elapsed < self._min_interval:
                waited = self._min_interval - elapsed
                logger.debug(f"Rate limit | Provider: {self._name} | Waiting {waited:.3f}s")
                await self._sleep(waited)

        self._last_permitted = self._clock()
        return waited
