"""Finnhub API client.

Free tier: 30 calls/second. Candles come back as parallel arrays:
{"s": "ok", "t": [...], "c": [...], "v": [...]}; "no_data" means nothing
in range.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any

import httpx
import orjson

from pennytrace.core.constants import FINNHUB_BASE_URL, FINNHUB_CALLS_PER_SECOND
from pennytrace.core.dates import market_close_stamp
from pennytrace.core.exceptions import MissingCredentialsError, RateLimitExceededError
from pennytrace.core.logging import get_logger
from pennytrace.core.ratelimit import BackoffPolicy, SlidingWindowLimiter, Sleep
from pennytrace.models import DataSource, RawTradeRecord
from pennytrace.providers.base import HTTPProviderClient

logger = get_logger(__name__)


def _to_epoch(day: str) -> int:
    return int(datetime.fromisoformat(day).replace(tzinfo=UTC).timestamp())


class FinnhubClient(HTTPProviderClient):
    """Client for Finnhub candles and quotes."""

    source = DataSource.finnhub

    def __init__(
        self,
        api_key: str,
        *,
        limiter: SlidingWindowLimiter | None = None,
        backoff: BackoffPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if not api_key:
            raise MissingCredentialsError("Missing required environment variable: FINNHUB_API_KEY")
        super().__init__(backoff=backoff, sleep=sleep)
        self._api_key = api_key
        self._limiter = limiter or SlidingWindowLimiter(
            FINNHUB_CALLS_PER_SECOND, 1.0, name=self.name, sleep=sleep
        )

    async def _acquire(self) -> None:
        await self._limiter.acquire()

    async def _request(self, endpoint: str, params: dict[str, str]) -> Any:
        try:
            resp = await self._get(
                f"{FINNHUB_BASE_URL}{endpoint}", params={**params, "token": self._api_key}
            )
            resp.raise_for_status()
            return orjson.loads(resp.content)
        except RateLimitExceededError as e:
            logger.error("Finnhub rate limit retries exhausted", endpoint=endpoint, error=str(e))
            return None
        except (httpx.HTTPError, orjson.JSONDecodeError) as e:
            logger.error("Finnhub request failed", endpoint=endpoint, error=str(e))
            return None

    async def get_candles(
        self,
        symbol: str,
        start_date: str,
        end_date: str,
        resolution: str = "D",
    ) -> list[RawTradeRecord]:
        """Get candles between two YYYY-MM-DD dates as close-price records."""
        logger.info("Fetching Finnhub candles", symbol=symbol, start=start_date, end=end_date)
        data = await self._request(
            "/stock/candle",
            {
                "symbol": symbol,
                "resolution": resolution,
                "from": str(_to_epoch(start_date)),
                "to": str(_to_epoch(end_date)),
            },
        )
        if not isinstance(data, dict) or data.get("s") != "ok":
            logger.info("No Finnhub candles", symbol=symbol)
            return []

        timestamps = data.get("t") or []
        closes = data.get("c") or []
        volumes = data.get("v") or []
        daily = resolution in ("D", "W", "M")
        records: list[RawTradeRecord] = []
        for ts, close, volume in zip(timestamps, closes, volumes, strict=False):
            if close is None or volume is None:
                continue
            stamp = datetime.fromtimestamp(ts, UTC)
            records.append(
                RawTradeRecord(
                    datetime=(
                        market_close_stamp(stamp.date().isoformat())
                        if daily
                        else stamp.strftime("%Y-%m-%d %H:%M:%S")
                    ),
                    price=float(close),
                    volume=int(volume),
                    source=self.source,
                )
            )

        logger.info("Retrieved Finnhub candles", symbol=symbol, records=len(records))
        return records

    async def get_quote(self, symbol: str) -> dict[str, Any] | None:
        """Get the current quote ({c, h, l, o, pc, t, ...}) or None."""
        data = await self._request("/quote", {"symbol": symbol})
        return data if isinstance(data, dict) and data else None

    async def get_daily_history(
        self, symbol: str, start_date: str, end_date: str
    ) -> list[RawTradeRecord]:
        return await self.get_candles(symbol, start_date, end_date)
