"""Rate limiting primitives for provider clients.

Every provider client owns its limiter instances; nothing here is module
state. Clocks and sleep functions are injectable so tests can run without
real waiting.

- SlidingWindowLimiter: N units per rolling window (Twelve Data credits,
  Finnhub calls)
- MinIntervalThrottle: fixed minimum gap between calls (Alpha Vantage, SEC
  EDGAR, Yahoo, Massive)
- DailyQuota: hard per-day request budget (Alpha Vantage)
- BackoffPolicy / request_with_backoff: bounded exponential retry on 429
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date

import httpx

from pennytrace.core.constants import RETRY_MAX_DELAY_SECONDS
from pennytrace.core.exceptions import QuotaExhaustedError, RateLimitExceededError
from pennytrace.core.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class SlidingWindowLimiter:
    """Rolling-window limiter measured in units (calls or credits)."""

    def __init__(
        self,
        max_units: int,
        window_seconds: float,
        *,
        name: str = "",
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._max_units = max_units
        self._window = window_seconds
        self._name = name
        self._clock = clock
        self._sleep = sleep
        self._usage: list[tuple[float, int]] = []
        self._lock = asyncio.Lock()

    @property
    def used_units(self) -> int:
        now = self._clock()
        return sum(units for t, units in self._usage if t > now - self._window)

    async def acquire(self, units: int = 1) -> None:
        """Wait until `units` fit in the current window, then record them."""
        if units > self._max_units:
            raise ValueError(f"Request needs {units} units, window allows {self._max_units}")

        async with self._lock:
            while True:
                now = self._clock()
                self._usage = [(t, u) for t, u in self._usage if t > now - self._window]
                if sum(u for _, u in self._usage) + units <= self._max_units:
                    break
                # Wait until the oldest usage leaves the window
                sleep_time = self._window - (now - self._usage[0][0]) + 0.1
                logger.debug("Rate limit window full", provider=self._name, wait=sleep_time)
                await self._sleep(max(sleep_time, 0.0))

            self._usage.append((self._clock(), units))


class MinIntervalThrottle:
    """Enforces a minimum delay between consecutive calls."""

    def __init__(
        self,
        min_interval: float,
        *,
        name: str = "",
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._min_interval = min_interval
        self._name = name
        self._clock = clock
        self._sleep = sleep
        self._last_call: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        async with self._lock:
            if self._last_call is not None:
                elapsed = self._clock() - self._last_call
                if elapsed < self._min_interval:
                    wait = self._min_interval - elapsed
                    logger.debug("Throttling request", provider=self._name, wait=wait)
                    await self._sleep(wait)
            self._last_call = self._clock()


class DailyQuota:
    """Per-day request budget that resets when the local date changes."""

    def __init__(
        self,
        limit: int,
        *,
        name: str = "",
        today: Callable[[], date] = date.today,
    ) -> None:
        self._limit = limit
        self._name = name
        self._today = today
        self._day = today()
        self._used = 0

    @property
    def remaining(self) -> int:
        self._maybe_reset()
        return self._limit - self._used

    def _maybe_reset(self) -> None:
        current = self._today()
        if current != self._day:
            self._day = current
            self._used = 0

    def consume(self) -> None:
        """Count one request, raising once the daily budget is gone."""
        self._maybe_reset()
        if self._used >= self._limit:
            raise QuotaExhaustedError(
                f"{self._name or 'Provider'} daily limit ({self._limit} requests) exceeded. "
                "Try again tomorrow.",
                provider=self._name,
            )
        self._used += 1


@dataclass(frozen=True)
class BackoffPolicy:
    """Bounded exponential backoff for HTTP 429 responses."""

    max_attempts: int = 5
    base_delay: float = 1.0
    max_delay: float = RETRY_MAX_DELAY_SECONDS

    def delay_for(self, attempt: int) -> float:
        """Delay after the given (1-based) failed attempt."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)


async def request_with_backoff(
    send: Callable[[], Awaitable[httpx.Response]],
    policy: BackoffPolicy,
    *,
    provider: str,
    sleep: Sleep = asyncio.sleep,
) -> httpx.Response:
    """Issue a request, re-sending the identical request while it returns 429.

    Raises:
        RateLimitExceededError: every attempt was answered with 429
    """
    for attempt in range(1, policy.max_attempts + 1):
        response = await send()
        if response.status_code != 429:
            return response
        if attempt == policy.max_attempts:
            break
        delay = policy.delay_for(attempt)
        logger.warning("Rate limited, backing off", provider=provider, attempt=attempt, delay=delay)
        await sleep(delay)

    raise RateLimitExceededError(
        f"{provider} still rate limited after {policy.max_attempts} attempts",
        provider=provider,
    )
