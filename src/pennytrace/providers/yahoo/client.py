"""Yahoo Finance chart API client.

Unofficial, keyless endpoint: /v8/finance/chart/{symbol}?period1=&period2=&interval=1d
A 200 response can still carry {"chart": {"error": {...}}}, which means "no data".
Bar timestamps mark the session open in UTC; meta.gmtoffset shifts them to the
exchange-local trading day.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any

import httpx
import orjson

from pennytrace.core.constants import (
    YAHOO_CHART_URL,
    YAHOO_REQUEST_INTERVAL_SECONDS,
    YAHOO_USER_AGENT,
)
from pennytrace.core.dates import market_close_stamp
from pennytrace.core.exceptions import RateLimitExceededError
from pennytrace.core.logging import get_logger
from pennytrace.core.ratelimit import BackoffPolicy, MinIntervalThrottle, Sleep
from pennytrace.models import DataSource, RawTradeRecord
from pennytrace.providers.base import HTTPProviderClient

logger = get_logger(__name__)


def _to_epoch(day: str) -> int:
    return int(datetime.fromisoformat(day).replace(tzinfo=UTC).timestamp())


def _trading_day(ts: int | float, gmtoffset: int) -> str:
    return datetime.fromtimestamp(ts + gmtoffset, UTC).date().isoformat()


class YahooFinanceClient(HTTPProviderClient):
    """Daily history from the Yahoo Finance chart API."""

    source = DataSource.yahoo_finance

    def __init__(
        self,
        *,
        throttle: MinIntervalThrottle | None = None,
        backoff: BackoffPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        super().__init__(backoff=backoff, sleep=sleep)
        self._throttle = throttle or MinIntervalThrottle(
            YAHOO_REQUEST_INTERVAL_SECONDS, name=self.name, sleep=sleep
        )

    def _client_headers(self) -> dict[str, str]:
        return {"User-Agent": YAHOO_USER_AGENT}

    async def _acquire(self) -> None:
        await self._throttle.acquire()

    async def get_historical_data(
        self, symbol: str, start_date: str, end_date: str
    ) -> list[RawTradeRecord]:
        """Get daily closes and volumes between two YYYY-MM-DD dates."""
        logger.info("Fetching Yahoo Finance data", symbol=symbol, start=start_date, end=end_date)
        params = {
            "period1": str(_to_epoch(start_date)),
            "period2": str(_to_epoch(end_date)),
            "interval": "1d",
        }
        try:
            resp = await self._get(f"{YAHOO_CHART_URL}/{symbol}", params=params)
            resp.raise_for_status()
            data: dict[str, Any] = orjson.loads(resp.content)
        except RateLimitExceededError as e:
            logger.error("Yahoo Finance rate limit retries exhausted", symbol=symbol, error=str(e))
            return []
        except (httpx.HTTPError, orjson.JSONDecodeError) as e:
            logger.error("Yahoo Finance request failed", symbol=symbol, error=str(e))
            return []

        chart = data.get("chart") or {}
        if chart.get("error"):
            description = (chart["error"] or {}).get("description", "")
            logger.info("Yahoo Finance returned no data", symbol=symbol, reason=description)
            return []

        results = chart.get("result") or []
        result = results[0] if results else {}
        timestamps = result.get("timestamp") or []
        quotes = ((result.get("indicators") or {}).get("quote") or [None])[0]
        if not timestamps or not quotes:
            logger.info("No Yahoo Finance history", symbol=symbol)
            return []

        gmtoffset = int((result.get("meta") or {}).get("gmtoffset") or 0)
        closes = quotes.get("close") or []
        volumes = quotes.get("volume") or []
        records: list[RawTradeRecord] = []
        for i, ts in enumerate(timestamps):
            close = closes[i] if i < len(closes) else None
            volume = volumes[i] if i < len(volumes) else None
            if close is None or volume is None:
                continue
            records.append(
                RawTradeRecord(
                    datetime=market_close_stamp(_trading_day(ts, gmtoffset)),
                    price=float(close),
                    volume=int(volume),
                    source=self.source,
                )
            )

        logger.info("Retrieved Yahoo Finance data", symbol=symbol, records=len(records))
        return records

    async def get_daily_history(
        self, symbol: str, start_date: str, end_date: str
    ) -> list[RawTradeRecord]:
        return await self.get_historical_data(symbol, start_date, end_date)
