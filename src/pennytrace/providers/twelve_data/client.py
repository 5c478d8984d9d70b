"""Twelve Data API client.

Free tier: 8 credits/minute, 800 credits/day. A daily time_series call costs
one credit. Errors arrive in the body as {"status": "error", "message": ...}.
"""

from __future__ import annotations

import asyncio
from typing import Any, Literal

import httpx
import orjson

from pennytrace.core.constants import TWELVE_DATA_BASE_URL, TWELVE_DATA_CREDITS_PER_MINUTE
from pennytrace.core.dates import market_close_stamp
from pennytrace.core.exceptions import MissingCredentialsError, RateLimitExceededError
from pennytrace.core.logging import get_logger
from pennytrace.core.ratelimit import BackoffPolicy, SlidingWindowLimiter, Sleep
from pennytrace.models import DataSource, RawTradeRecord
from pennytrace.providers.base import HTTPProviderClient

logger = get_logger(__name__)

TimeInterval = Literal[
    "1min", "5min", "15min", "30min", "45min", "1h", "2h", "4h", "8h", "1day", "1week", "1month"
]

_DAILY_INTERVALS = frozenset({"1day", "1week", "1month"})


class TwelveDataClient(HTTPProviderClient):
    """Client for Twelve Data time series.

    Usage:
        client = TwelveDataClient(api_key="...")
        records = await client.get_time_series("LGAL", start_date="2008-01-01")
        await client.close()
    """

    source = DataSource.twelve_data

    def __init__(
        self,
        api_key: str,
        *,
        limiter: SlidingWindowLimiter | None = None,
        backoff: BackoffPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if not api_key:
            raise MissingCredentialsError(
                "Missing required environment variable: TWELVE_DATA_API_KEY"
            )
        super().__init__(backoff=backoff, sleep=sleep)
        self._api_key = api_key
        self._limiter = limiter or SlidingWindowLimiter(
            TWELVE_DATA_CREDITS_PER_MINUTE, 60.0, name=self.name, sleep=sleep
        )

    async def _acquire(self) -> None:
        await self._limiter.acquire(1)

    async def _request(self, endpoint: str, params: dict[str, str]) -> dict[str, Any] | None:
        try:
            resp = await self._get(
                f"{TWELVE_DATA_BASE_URL}{endpoint}", params={**params, "apikey": self._api_key}
            )
            resp.raise_for_status()
            data = orjson.loads(resp.content)
        except RateLimitExceededError as e:
            logger.error("Twelve Data rate limit exhausted", endpoint=endpoint, error=str(e))
            return None
        except (httpx.HTTPError, orjson.JSONDecodeError) as e:
            logger.error("Twelve Data request failed", endpoint=endpoint, error=str(e))
            return None

        if not isinstance(data, dict):
            return None
        if data.get("status") == "error":
            logger.warning("Twelve Data error", endpoint=endpoint, message=data.get("message"))
            return None
        return data

    async def get_time_series(
        self,
        symbol: str,
        interval: TimeInterval = "1day",
        start_date: str | None = None,
        end_date: str | None = None,
        outputsize: int | None = None,
    ) -> list[RawTradeRecord]:
        """Get OHLCV bars as close-price records, in the order the API returns them."""
        params = {"symbol": symbol, "interval": interval}
        if start_date:
            params["start_date"] = start_date
        if end_date:
            params["end_date"] = end_date
        if outputsize:
            params["outputsize"] = str(outputsize)

        logger.info("Fetching Twelve Data time series", symbol=symbol, interval=interval)
        data = await self._request("/time_series", params)
        values = data.get("values") if data else None
        if not values:
            logger.info("No Twelve Data time series", symbol=symbol)
            return []

        daily = interval in _DAILY_INTERVALS
        records: list[RawTradeRecord] = []
        for bar in values:
            try:
                stamp = bar["datetime"]
                records.append(
                    RawTradeRecord(
                        datetime=market_close_stamp(stamp) if daily else stamp,
                        price=float(bar["close"]),
                        volume=int(float(bar.get("volume") or 0)),
                        source=self.source,
                    )
                )
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping malformed Twelve Data bar", symbol=symbol, bar=bar)

        logger.info("Retrieved Twelve Data time series", symbol=symbol, records=len(records))
        return records

    async def get_daily_history(
        self, symbol: str, start_date: str, end_date: str
    ) -> list[RawTradeRecord]:
        return await self.get_time_series(
            symbol, "1day", start_date=start_date, end_date=end_date, outputsize=5000
        )
