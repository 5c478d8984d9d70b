"""Massive (formerly Polygon.io) API client.

Aggregates: /v2/aggs/ticker/{symbol}/range/1/day/{from}/{to}
Reference:  /v3/reference/tickers/{symbol}

403 means the endpoint needs a paid plan; {"status": "ERROR"} carries an
error message in the body. Both are treated as "no data".
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any

import httpx
import orjson

from pennytrace.core.constants import MASSIVE_BASE_URL, MASSIVE_REQUEST_INTERVAL_SECONDS
from pennytrace.core.dates import market_close_stamp
from pennytrace.core.exceptions import MissingCredentialsError, RateLimitExceededError
from pennytrace.core.logging import get_logger
from pennytrace.core.ratelimit import BackoffPolicy, MinIntervalThrottle, Sleep
from pennytrace.models import DataSource, RawTradeRecord
from pennytrace.providers.base import HTTPProviderClient

logger = get_logger(__name__)


class MassiveClient(HTTPProviderClient):
    """Client for Massive daily aggregates and ticker reference data."""

    source = DataSource.massive

    def __init__(
        self,
        api_key: str,
        *,
        throttle: MinIntervalThrottle | None = None,
        backoff: BackoffPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if not api_key:
            raise MissingCredentialsError("Missing required environment variable: MASSIVE_API_KEY")
        super().__init__(backoff=backoff, sleep=sleep)
        self._api_key = api_key
        self._throttle = throttle or MinIntervalThrottle(
            MASSIVE_REQUEST_INTERVAL_SECONDS, name=self.name, sleep=sleep
        )

    async def _acquire(self) -> None:
        await self._throttle.acquire()

    async def _request(
        self, endpoint: str, params: dict[str, str] | None = None
    ) -> dict[str, Any] | None:
        try:
            resp = await self._get(
                f"{MASSIVE_BASE_URL}{endpoint}", params={**(params or {}), "apiKey": self._api_key}
            )
            if resp.status_code == 403:
                logger.warning("Massive access denied, paid plan required", endpoint=endpoint)
                return None
            resp.raise_for_status()
            data = orjson.loads(resp.content)
        except RateLimitExceededError as e:
            logger.error("Massive rate limit retries exhausted", endpoint=endpoint, error=str(e))
            return None
        except (httpx.HTTPError, orjson.JSONDecodeError) as e:
            logger.error("Massive request failed", endpoint=endpoint, error=str(e))
            return None

        if not isinstance(data, dict):
            return None
        if data.get("status") == "ERROR":
            logger.warning("Massive error", endpoint=endpoint, message=data.get("error"))
            return None
        return data

    async def get_daily_aggregates(
        self, symbol: str, start_date: str, end_date: str
    ) -> list[RawTradeRecord]:
        """Get daily bars between two YYYY-MM-DD dates as close-price records."""
        logger.info("Fetching Massive aggregates", symbol=symbol, start=start_date, end=end_date)
        data = await self._request(
            f"/v2/aggs/ticker/{symbol}/range/1/day/{start_date}/{end_date}",
            {"adjusted": "true", "sort": "asc", "limit": "50000"},
        )
        results = data.get("results") if data else None
        if not results:
            logger.info("No Massive aggregates", symbol=symbol)
            return []

        records: list[RawTradeRecord] = []
        for bar in results:
            try:
                day = datetime.fromtimestamp(bar["t"] / 1000, UTC).date().isoformat()
                records.append(
                    RawTradeRecord(
                        datetime=market_close_stamp(day),
                        price=float(bar["c"]),
                        volume=int(bar.get("v") or 0),
                        source=self.source,
                    )
                )
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping malformed Massive bar", symbol=symbol, bar=bar)

        logger.info("Retrieved Massive aggregates", symbol=symbol, records=len(records))
        return records

    async def get_ticker(self, symbol: str) -> dict[str, Any] | None:
        """Get reference details (name, market, listing dates) or None."""
        data = await self._request(f"/v3/reference/tickers/{symbol}")
        return data.get("results") if data else None

    async def get_daily_history(
        self, symbol: str, start_date: str, end_date: str
    ) -> list[RawTradeRecord]:
        return await self.get_daily_aggregates(symbol, start_date, end_date)
