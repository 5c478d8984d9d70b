"""Provider protocols and the shared HTTP client base.

Provider Types:
- DailyHistoryProvider: daily price history for a symbol over a date range
  (Yahoo Finance, Twelve Data, Finnhub, Massive)
- HTTPProviderClient: lazily created httpx client, per-instance rate
  limiting and bounded 429 backoff shared by every remote client
"""

from __future__ import annotations

import asyncio
from typing import Any, ClassVar, Protocol, runtime_checkable

import httpx

from pennytrace.core.logging import get_logger
from pennytrace.core.ratelimit import BackoffPolicy, Sleep, request_with_backoff
from pennytrace.models import DataSource, RawTradeRecord

logger = get_logger(__name__)


@runtime_checkable
class DailyHistoryProvider(Protocol):
    """Protocol for providers that serve daily price history.

    Implementations return an empty list when the provider has no data or
    fails terminally; they never raise for a single symbol's outage.
    """

    source: ClassVar[DataSource]

    async def get_daily_history(
        self, symbol: str, start_date: str, end_date: str
    ) -> list[RawTradeRecord]:
        """Get daily records for `symbol` between two YYYY-MM-DD dates."""
        ...

    async def close(self) -> None:
        """Clean up resources."""
        ...


class HTTPProviderClient:
    """Base for remote provider clients.

    Subclasses set `source`, override `_acquire()` with their rate-limit
    contract and `_client_headers()` when the API needs fixed headers.
    """

    source: ClassVar[DataSource]
    timeout: ClassVar[float] = 30.0

    def __init__(
        self,
        *,
        backoff: BackoffPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._http_client: httpx.AsyncClient | None = None
        self._backoff = backoff or BackoffPolicy()
        self._sleep = sleep

    @property
    def name(self) -> str:
        return self.source.value

    def _client_headers(self) -> dict[str, str]:
        return {}

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers=self._client_headers(),
            )
        return self._http_client

    async def _acquire(self) -> None:
        """Wait for the provider's rate limit. No-op by default."""

    async def _get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Rate-limited GET, re-sent with backoff while the provider answers 429."""

        async def send() -> httpx.Response:
            await self._acquire()
            return await self._get_http_client().get(url, **kwargs)

        return await request_with_backoff(
            send, self._backoff, provider=self.name, sleep=self._sleep
        )

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("Provider client closed", provider=self.name)
