"""Normalization stage: bucket consolidated records into daily bars.

Reads:  {cache}/consolidated/CIK*.json
Writes: {cache}/normalized/{CIK}-{TICKER}.json, {cache}/normalized/summary.json

Metrics are recomputed wholesale on every run.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from pathlib import Path

from pennytrace.config import Settings, get_settings
from pennytrace.core.dates import date_key, parse_datetime, utc_now_iso
from pennytrace.core.exceptions import StageInputError
from pennytrace.core.logging import get_logger
from pennytrace.models import (
    ConsolidatedEntityData,
    DailyOHLCV,
    NormalizationSummary,
    NormalizedEntityData,
    NormalizedSummaryEntry,
    PeriodMetrics,
    RawTradeRecord,
)
from pennytrace.pipeline.storage import ensure_dirs, read_model, write_json

logger = get_logger(__name__)


def _bucket_by_date(records: Iterable[RawTradeRecord]) -> dict[str, list[RawTradeRecord]]:
    buckets: dict[str, list[RawTradeRecord]] = {}
    for record in records:
        day = date_key(record.datetime)
        if day is None:
            continue
        buckets.setdefault(day, []).append(record)
    return buckets


def _time_order(records: list[RawTradeRecord]) -> list[RawTradeRecord]:
    # Unparseable times sort first, keeping their relative order
    return sorted(records, key=lambda r: parse_datetime(r.datetime) or datetime.min)


def aggregate_to_daily(records: Iterable[RawTradeRecord]) -> list[DailyOHLCV]:
    """Aggregate raw records into one OHLCV bar per calendar date.

    open and close are the first and last positive prices in time order, so
    they are not necessarily the day's high or low. Days without a positive
    price are dropped. Output is sorted by date.
    """
    daily: list[DailyOHLCV] = []
    for day, day_records in _bucket_by_date(records).items():
        ordered = _time_order(day_records)
        prices = [r.price for r in ordered if r.price > 0]
        if not prices:
            continue

        volume = sum(r.volume for r in ordered if r.volume > 0)
        close = prices[-1]
        daily.append(
            DailyOHLCV(
                date=day,
                open=prices[0],
                high=max(prices),
                low=min(prices),
                close=close,
                volume=volume,
                dollar_volume=close * volume,
                trade_count=len(ordered),
                sources=list(dict.fromkeys(r.source for r in ordered)),
            )
        )

    daily.sort(key=lambda bar: bar.date)
    return daily


def calculate_metrics(daily: Sequence[DailyOHLCV]) -> PeriodMetrics:
    """Single pass over the daily series.

    Ties on peak, volume and dollar volume keep the earliest day. Only days
    with a positive low can set the low price; with none, lowPrice is 0 and
    lowDate is ''. An empty series yields the all-zero metrics object.
    """
    if not daily:
        return PeriodMetrics()

    peak_price, peak_date = 0.0, ""
    low_price: float | None = None
    low_date = ""
    top_volume, top_volume_day = 0, ""
    top_dollar, top_dollar_day = 0.0, ""
    total_volume = 0
    total_dollar = 0.0
    close_sum = 0.0

    for bar in daily:
        if bar.high > peak_price:
            peak_price, peak_date = bar.high, bar.date
        if bar.low > 0 and (low_price is None or bar.low < low_price):
            low_price, low_date = bar.low, bar.date
        if bar.volume > top_volume:
            top_volume, top_volume_day = bar.volume, bar.date
        if bar.dollar_volume > top_dollar:
            top_dollar, top_dollar_day = bar.dollar_volume, bar.date
        total_volume += bar.volume
        total_dollar += bar.dollar_volume
        close_sum += bar.close

    first, last = daily[0], daily[-1]
    price_change = last.close - first.open
    percent = (price_change / first.open) * 100 if first.open > 0 else 0.0

    return PeriodMetrics(
        peak_price=peak_price,
        peak_date=peak_date,
        low_price=low_price or 0.0,
        low_date=low_date,
        avg_price=close_sum / len(daily),
        highest_volume_day=top_volume_day,
        highest_volume_amount=top_volume,
        highest_dollar_volume_day=top_dollar_day,
        highest_dollar_volume_amount=top_dollar,
        total_volume=total_volume,
        total_dollar_volume=total_dollar,
        trading_days=len(daily),
        first_trade_date=first.date,
        last_trade_date=last.date,
        price_change=price_change,
        price_change_percent=percent,
    )


def normalize_entity(data: ConsolidatedEntityData) -> NormalizedEntityData:
    logger.info("Normalizing", ticker=data.ticker, cik=data.cik, records=len(data.records))
    daily = aggregate_to_daily(data.records)
    metrics = calculate_metrics(daily)
    logger.info(
        "Normalized",
        ticker=data.ticker,
        daily_bars=len(daily),
        peak_price=metrics.peak_price,
        peak_date=metrics.peak_date,
        low_price=metrics.low_price,
        low_date=metrics.low_date,
        total_volume=metrics.total_volume,
    )
    return NormalizedEntityData(
        cik=data.cik,
        ticker=data.ticker,
        company=data.company,
        period=data.date_range,
        metrics=metrics,
        daily_data=daily,
        sources=list(data.sources),
        normalized_at=utc_now_iso(),
    )


def consolidated_files(consolidated_dir: Path) -> list[Path]:
    """Per-ticker consolidated files, excluding summary.json."""
    return sorted(
        p for p in consolidated_dir.iterdir() if p.name.startswith("CIK") and p.suffix == ".json"
    )


def build_normalization_summary(
    normalized: Sequence[NormalizedEntityData],
) -> NormalizationSummary:
    return NormalizationSummary(
        entities=[
            NormalizedSummaryEntry(
                cik=n.cik,
                ticker=n.ticker,
                company=n.company,
                trading_days=n.metrics.trading_days,
                peak_price=n.metrics.peak_price,
                low_price=n.metrics.low_price,
                total_volume=n.metrics.total_volume,
                period=n.period,
            )
            for n in normalized
        ],
        normalized_at=utc_now_iso(),
    )


async def run_normalize(settings: Settings | None = None) -> list[NormalizedEntityData]:
    """Run the normalization stage over every consolidated file.

    Raises:
        StageInputError: the consolidated directory does not exist
    """
    settings = settings or get_settings()
    in_dir = settings.consolidated_dir
    out_dir = settings.normalized_dir
    if not in_dir.is_dir():
        raise StageInputError(f"Consolidated data not found at {in_dir}; run consolidation first")
    ensure_dirs(out_dir)

    normalized: list[NormalizedEntityData] = []
    for path in consolidated_files(in_dir):
        data = read_model(path, ConsolidatedEntityData)
        if data is None:
            continue
        result = normalize_entity(data)
        normalized.append(result)
        out_path = write_json(out_dir / f"{result.cik}-{result.ticker}.json", result)
        logger.info("Saved normalized data", path=str(out_path))

    write_json(out_dir / "summary.json", build_normalization_summary(normalized))
    logger.info("Normalization complete", entities=len(normalized))
    return normalized


