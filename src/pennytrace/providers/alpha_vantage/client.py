"""Alpha Vantage API client.

Free tier: 5 requests/minute, 25 requests/day.
- Daily series: function=TIME_SERIES_DAILY
- Intraday for a historical month: function=TIME_SERIES_INTRADAY&month=YYYY-MM

The minute limit is enforced by a 12 second minimum interval. The daily
quota is terminal: once exhausted, every further call raises
QuotaExhaustedError for the rest of the run.
"""

from __future__ import annotations

import asyncio
from typing import Any, Literal

import httpx
import orjson

from pennytrace.core.constants import (
    ALPHA_VANTAGE_BASE_URL,
    ALPHA_VANTAGE_DAILY_LIMIT,
    ALPHA_VANTAGE_REQUEST_INTERVAL_SECONDS,
)
from pennytrace.core.dates import market_close_stamp
from pennytrace.core.exceptions import MissingCredentialsError, RateLimitExceededError
from pennytrace.core.logging import get_logger
from pennytrace.core.ratelimit import BackoffPolicy, DailyQuota, MinIntervalThrottle, Sleep
from pennytrace.models import DataSource, RawTradeRecord
from pennytrace.providers.base import HTTPProviderClient

logger = get_logger(__name__)

Interval = Literal["1min", "5min", "15min", "30min", "60min"]


class AlphaVantageClient(HTTPProviderClient):
    """Client for Alpha Vantage daily and historical intraday series.

    Usage:
        client = AlphaVantageClient(api_key="...")
        daily = await client.get_daily_time_series("LGAL")
        intraday = await client.get_intraday_for_month("LGAL", "2009-01")
        await client.close()
    """

    source = DataSource.alpha_vantage

    def __init__(
        self,
        api_key: str,
        *,
        throttle: MinIntervalThrottle | None = None,
        quota: DailyQuota | None = None,
        backoff: BackoffPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if not api_key:
            raise MissingCredentialsError(
                "Missing required environment variable: ALPHA_VANTAGE_API_KEY"
            )
        super().__init__(backoff=backoff, sleep=sleep)
        self._api_key = api_key
        self._throttle = throttle or MinIntervalThrottle(
            ALPHA_VANTAGE_REQUEST_INTERVAL_SECONDS, name=self.name, sleep=sleep
        )
        self._quota = quota or DailyQuota(ALPHA_VANTAGE_DAILY_LIMIT, name=self.name)

    async def _acquire(self) -> None:
        # Quota first: an exhausted day must fail fast, not after a 12s wait
        self._quota.consume()
        await self._throttle.acquire()

    async def _query(self, params: dict[str, str], symbol: str) -> dict[str, Any] | None:
        """Run one API query. Returns None for any "no data" or failed response."""
        try:
            resp = await self._get(
                ALPHA_VANTAGE_BASE_URL, params={**params, "apikey": self._api_key}
            )
            resp.raise_for_status()
            data = orjson.loads(resp.content)
        except RateLimitExceededError as e:
            logger.error("Alpha Vantage rate limit retries exhausted", symbol=symbol, error=str(e))
            return None
        except (httpx.HTTPError, orjson.JSONDecodeError) as e:
            logger.error("Alpha Vantage request failed", symbol=symbol, error=str(e))
            return None

        if not isinstance(data, dict):
            logger.warning("Unexpected Alpha Vantage response", symbol=symbol)
            return None
        if "Error Message" in data:
            logger.warning("Alpha Vantage error", symbol=symbol, message=data["Error Message"])
            return None
        if "Note" in data:
            logger.warning("Alpha Vantage note", symbol=symbol, note=data["Note"])
        if "Information" in data:
            # Usually the soft rate-limit envelope
            logger.warning("Alpha Vantage information", symbol=symbol, info=data["Information"])
            return None
        return data

    def _parse_series(
        self, series: dict[str, dict[str, str]], symbol: str, date_only: bool
    ) -> list[RawTradeRecord]:
        records: list[RawTradeRecord] = []
        skipped = 0
        for stamp, values in series.items():
            try:
                records.append(
                    RawTradeRecord(
                        datetime=market_close_stamp(stamp) if date_only else stamp,
                        price=float(values["4. close"]),
                        volume=int(values["5. volume"]),
                        source=self.source,
                    )
                )
            except (KeyError, TypeError, ValueError):
                skipped += 1
        if skipped:
            logger.warning("Skipped malformed Alpha Vantage bars", symbol=symbol, skipped=skipped)
        return records

    async def get_daily_time_series(
        self,
        symbol: str,
        output_size: Literal["compact", "full"] = "full",
    ) -> list[RawTradeRecord]:
        """Get the daily close/volume series, stamped at market close.

        Raises:
            QuotaExhaustedError: daily request budget used up
        """
        logger.info("Fetching Alpha Vantage daily data", symbol=symbol)
        data = await self._query(
            {"function": "TIME_SERIES_DAILY", "symbol": symbol, "outputsize": output_size},
            symbol,
        )
        series = data.get("Time Series (Daily)") if data else None
        if not series:
            logger.info("No Alpha Vantage daily data", symbol=symbol)
            return []

        records = self._parse_series(series, symbol, date_only=True)
        logger.info("Retrieved Alpha Vantage daily data", symbol=symbol, records=len(records))
        return records

    async def get_intraday_for_month(
        self,
        symbol: str,
        month: str,
        interval: Interval = "5min",
    ) -> list[RawTradeRecord]:
        """Get one historical month (YYYY-MM) of intraday bars.

        Raises:
            QuotaExhaustedError: daily request budget used up
        """
        logger.info("Fetching Alpha Vantage intraday data", symbol=symbol, month=month)
        data = await self._query(
            {
                "function": "TIME_SERIES_INTRADAY",
                "symbol": symbol,
                "interval": interval,
                "month": month,
                "outputsize": "full",
            },
            symbol,
        )
        series = data.get(f"Time Series ({interval})") if data else None
        if not series:
            logger.info("No Alpha Vantage intraday data", symbol=symbol, month=month)
            return []

        records = self._parse_series(series, symbol, date_only=False)
        logger.info(
            "Retrieved Alpha Vantage intraday data",
            symbol=symbol,
            month=month,
            records=len(records),
        )
        return records
