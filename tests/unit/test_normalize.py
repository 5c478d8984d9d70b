"""Tests for daily aggregation and period metrics."""

from __future__ import annotations

from datetime import date
from typing import Any
from unittest.mock import AsyncMock, patch

import httpx
import orjson
import pytest

from pennytrace.config import Settings
from pennytrace.core.exceptions import StageInputError
from pennytrace.core.ratelimit import (
    BackoffPolicy,
    DailyQuota,
    MinIntervalThrottle,
    SlidingWindowLimiter,
)
from pennytrace.models import (
    ConsolidatedEntityData,
    DailyOHLCV,
    DataSource,
    DateRange,
    PeriodMetrics,
    RawTradeRecord,
)
from pennytrace.pipeline.consolidate import deduplicate_records, sort_records
from pennytrace.pipeline.normalize import (
    aggregate_to_daily,
    calculate_metrics,
    normalize_entity,
    run_normalize,
)
from pennytrace.pipeline.storage import write_json
from pennytrace.providers.alpha_vantage import AlphaVantageClient
from pennytrace.providers.twelve_data import TwelveDataClient
from pennytrace.providers.yahoo import YahooFinanceClient


def _record(dt: str, price: float, volume: int = 0) -> RawTradeRecord:
    return RawTradeRecord(
        datetime=dt, price=price, volume=volume, source=DataSource.local_cache
    )


def _bar(day: str, open_: float, high: float, low: float, close: float, volume: int):
    return DailyOHLCV(
        date=day,
        open=open_,
        high=high,
        low=low,
        close=close,
        volume=volume,
        dollar_volume=close * volume,
        trade_count=1,
    )


# ---------------------------------------------------------------------------
# Daily aggregation
# ---------------------------------------------------------------------------


class TestAggregateToDaily:
    def test_single_day_bucket(self) -> None:
        records = [
            _record("2020-01-02 09:30:00", 10, 100),
            _record("2020-01-02 10:00:00", 12, 200),
            _record("2020-01-02 15:00:00", 9, 50),
        ]

        (bar,) = aggregate_to_daily(records)

        assert bar.date == "2020-01-02"
        assert (bar.open, bar.high, bar.low, bar.close) == (10, 12, 9, 9)
        assert bar.volume == 350
        assert bar.dollar_volume == pytest.approx(3150)
        assert bar.trade_count == 3
        assert bar.sources == [DataSource.local_cache]

    def test_open_close_follow_time_not_input_order(self) -> None:
        records = [
            _record("2020-01-02 15:00:00", 9, 50),
            _record("2020-01-02 09:30:00", 10, 100),
        ]

        (bar,) = aggregate_to_daily(records)

        assert bar.open == 10
        assert bar.close == 9

    def test_zero_prices_ignored_for_ohlc(self) -> None:
        records = [
            _record("2020-01-02 09:30:00", 0, 500),
            _record("2020-01-02 10:00:00", 5, 100),
            _record("2020-01-02 11:00:00", 0, 0),
        ]

        (bar,) = aggregate_to_daily(records)

        assert bar.open == bar.close == bar.low == 5
        assert bar.volume == 600
        assert bar.trade_count == 3

    def test_day_without_price_dropped(self) -> None:
        records = [_record("2020-01-02", 0, 1000), _record("2020-01-03", 1.5, 10)]

        bars = aggregate_to_daily(records)

        assert [b.date for b in bars] == ["2020-01-03"]

    def test_negative_volume_not_summed(self) -> None:
        (bar,) = aggregate_to_daily([_record("2020-01-02", 1, -5), _record("2020-01-02", 1, 10)])
        assert bar.volume == 10

    def test_sorted_by_date_across_formats(self) -> None:
        records = [
            _record("2020-01-03 10:00:00", 2),
            _record("01/02/2020 10:00:00", 1),
            _record("2019-12-31T14:30:00.000Z", 3),
        ]

        assert [b.date for b in aggregate_to_daily(records)] == [
            "2019-12-31",
            "2020-01-02",
            "2020-01-03",
        ]

    def test_invariants(self) -> None:
        records = [
            _record(f"2020-01-0{day} {hour:02d}:00:00", price, vol)
            for day, hour, price, vol in [
                (2, 9, 1.0, 10), (2, 12, 3.0, 20), (2, 15, 2.0, 0),
                (3, 9, 0.5, 5), (3, 16, 0.7, 0),
            ]
        ]
        for bar in aggregate_to_daily(records):
            assert bar.low <= bar.high
            assert bar.low > 0
            assert bar.volume >= 0
            assert bar.dollar_volume == pytest.approx(bar.close * bar.volume)

    def test_empty(self) -> None:
        assert aggregate_to_daily([]) == []


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


class TestCalculateMetrics:
    def test_empty_series(self) -> None:
        assert calculate_metrics([]) == PeriodMetrics()

    def test_full_series(self) -> None:
        daily = [
            _bar("2020-01-02", 1.0, 2.0, 0.8, 1.5, 100),
            _bar("2020-01-03", 1.5, 3.0, 1.2, 2.5, 400),
            _bar("2020-01-06", 2.5, 2.8, 0.5, 0.6, 50),
        ]

        m = calculate_metrics(daily)

        assert (m.peak_price, m.peak_date) == (3.0, "2020-01-03")
        assert (m.low_price, m.low_date) == (0.5, "2020-01-06")
        assert m.avg_price == pytest.approx((1.5 + 2.5 + 0.6) / 3)
        assert (m.highest_volume_day, m.highest_volume_amount) == ("2020-01-03", 400)
        assert m.highest_dollar_volume_day == "2020-01-03"
        assert m.highest_dollar_volume_amount == pytest.approx(1000.0)
        assert m.total_volume == 550
        assert m.total_dollar_volume == pytest.approx(150 + 1000 + 30)
        assert m.trading_days == 3
        assert (m.first_trade_date, m.last_trade_date) == ("2020-01-02", "2020-01-06")
        assert m.price_change == pytest.approx(-0.4)
        assert m.price_change_percent == pytest.approx(-40.0)

    def test_ties_keep_first_day(self) -> None:
        daily = [
            _bar("2020-01-02", 1, 2, 1, 1, 100),
            _bar("2020-01-03", 1, 2, 1, 1, 100),
        ]

        m = calculate_metrics(daily)

        assert m.peak_date == "2020-01-02"
        assert m.low_date == "2020-01-02"
        assert m.highest_volume_day == "2020-01-02"
        assert m.highest_dollar_volume_day == "2020-01-02"

    def test_no_positive_low(self) -> None:
        daily = [_bar("2020-01-02", 0, 0, 0, 0, 0)]

        m = calculate_metrics(daily)

        assert m.low_price == 0
        assert m.low_date == ""

    def test_zero_first_open_percent_guard(self) -> None:
        daily = [_bar("2020-01-02", 0, 1, 1, 1, 10), _bar("2020-01-03", 1, 2, 1, 2, 10)]

        m = calculate_metrics(daily)

        assert m.price_change == 2
        assert m.price_change_percent == 0

    def test_no_volume_leaves_volume_day_empty(self) -> None:
        m = calculate_metrics([_bar("2020-01-02", 1, 1, 1, 1, 0)])
        assert m.highest_volume_day == ""
        assert m.highest_volume_amount == 0


# ---------------------------------------------------------------------------
# Stage
# ---------------------------------------------------------------------------


def _consolidated(records: list[RawTradeRecord]) -> ConsolidatedEntityData:
    return ConsolidatedEntityData(
        cik="CIK0000878146",
        ticker="LGAL",
        company="Legal Access Technologies, Inc.",
        records=records,
        sources=[DataSource.local_cache],
        date_range=DateRange(start="2020-01-02", end="2020-01-03"),
        consolidated_at="2026-01-05T00:00:00.000Z",
    )


def test_normalize_entity_carries_identity() -> None:
    result = normalize_entity(_consolidated([_record("2020-01-02 09:30:00", 10, 100)]))

    assert result.cik == "CIK0000878146"
    assert result.period == DateRange(start="2020-01-02", end="2020-01-03")
    assert result.metrics.trading_days == 1
    assert result.sources == [DataSource.local_cache]


class TestRunNormalize:
    async def test_missing_input_dir(self, settings: Settings) -> None:
        with pytest.raises(StageInputError, match="run consolidation first"):
            await run_normalize(settings)

    async def test_writes_normalized_files(self, settings: Settings) -> None:
        records = [
            _record("2020-01-02 09:30:00", 10, 100),
            _record("2020-01-02 10:00:00", 12, 200),
            _record("2020-01-02 15:00:00", 9, 50),
        ]
        write_json(settings.consolidated_dir / "CIK0000878146-LGAL.json", _consolidated(records))
        write_json(settings.consolidated_dir / "summary.json", {"entities": []})

        result = await run_normalize(settings)

        assert len(result) == 1
        payload = orjson.loads(
            (settings.normalized_dir / "CIK0000878146-LGAL.json").read_bytes()
        )
        assert payload["dailyData"][0] == {
            "date": "2020-01-02",
            "open": 10.0,
            "high": 12.0,
            "low": 9.0,
            "close": 9.0,
            "volume": 350,
            "dollarVolume": 3150.0,
            "tradeCount": 3,
            "sources": ["local-cache"],
        }
        assert payload["metrics"]["peakPrice"] == 12.0

        summary = orjson.loads((settings.normalized_dir / "summary.json").read_bytes())
        assert summary["entities"][0]["tradingDays"] == 1

    async def test_rerun_overwrites(self, settings: Settings) -> None:
        path = settings.consolidated_dir / "CIK0000878146-LGAL.json"
        write_json(path, _consolidated([_record("2020-01-02", 1, 10)]))
        await run_normalize(settings)
        write_json(path, _consolidated([_record("2020-01-02", 2, 10)]))

        (result,) = await run_normalize(settings)

        assert result.metrics.peak_price == 2


# ---------------------------------------------------------------------------
# Daily bars from several providers on one trading day
# ---------------------------------------------------------------------------


def _response(payload: Any) -> httpx.Response:
    return httpx.Response(
        200, content=orjson.dumps(payload), request=httpx.Request("GET", "https://example.test")
    )


async def _fetch(client, call, payload: Any) -> list[RawTradeRecord]:
    with patch.object(client, "_get_http_client") as mock_http:
        mock_http.return_value.get = AsyncMock(return_value=_response(payload))
        return await call()


class TestMixedDailySources:
    async def test_daily_bars_collapse_onto_archive_ticks(self, no_sleep) -> None:
        backoff = BackoffPolicy(max_attempts=1, base_delay=0.0)
        alpha_vantage = AlphaVantageClient(
            api_key="av-key",
            quota=DailyQuota(25, today=lambda: date(2026, 1, 5)),
            backoff=backoff,
            sleep=no_sleep,
        )
        twelve_data = TwelveDataClient(
            "td-key",
            limiter=SlidingWindowLimiter(8, 60.0, sleep=no_sleep),
            backoff=backoff,
            sleep=no_sleep,
        )
        yahoo = YahooFinanceClient(
            throttle=MinIntervalThrottle(0, sleep=no_sleep), backoff=backoff, sleep=no_sleep
        )

        av_records = await _fetch(
            alpha_vantage,
            lambda: alpha_vantage.get_daily_time_series("LGAL"),
            {"Time Series (Daily)": {"2009-01-02": {"4. close": "0.08", "5. volume": "300"}}},
        )
        td_records = await _fetch(
            twelve_data,
            lambda: twelve_data.get_daily_history("LGAL", "2009-01-01", "2009-01-31"),
            {"values": [{"datetime": "2009-01-02", "close": "0.08", "volume": "300"}]},
        )
        yahoo_records = await _fetch(
            yahoo,
            lambda: yahoo.get_daily_history("LGAL", "2009-01-01", "2009-01-31"),
            {
                "chart": {
                    "result": [
                        {
                            "meta": {"gmtoffset": -18000},
                            "timestamp": [1230906600],
                            "indicators": {"quote": [{"close": [0.08], "volume": [300]}]},
                        }
                    ]
                }
            },
        )
        archive = [
            _record("2009-01-02 09:35:00", 0.10, 100),
            _record("2009-01-02 15:55:00", 0.08, 200),
        ]

        ordered, dropped = sort_records([*archive, *av_records, *td_records, *yahoo_records])
        (bar,) = aggregate_to_daily(deduplicate_records(ordered))

        assert dropped == 0
        assert bar.open == pytest.approx(0.10)
        assert bar.close == pytest.approx(0.08)
        # The three provider bars share one close stamp; only the first survives
        assert bar.volume == 600
        assert bar.dollar_volume == pytest.approx(48.0)
        assert bar.trade_count == 3
        assert bar.sources == [DataSource.local_cache, DataSource.alpha_vantage]
