"""Publication stage: static JSON and CSV artifacts for the web front end.

Reads:  {cache}/normalized/{CIK}-{TICKER}.json, {cache}/sec-edgar/{CIK}-filings.json
Writes: {output}/json/entities/{CIK}-{TICKER}-{startYear}-{endYear}.json
        {output}/json/entities/{CIK}-{TICKER}-{startYear}-{endYear}-filings.json
        {output}/json/entities/{CIK}-filings.json
        {output}/csv/{CIK}-{TICKER}-{startYear}-{endYear}.csv
        {output}/json/entities-summary.json

Every configured entity appears in the summary. Entities without
normalized data are listed with hasData false rather than left out.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Sequence
from pathlib import Path

import orjson
from pydantic import ValidationError

from pennytrace.config import Settings, get_settings
from pennytrace.core.constants import (
    CSV_DOLLAR_DECIMALS,
    CSV_HEADER,
    CSV_PRICE_DECIMALS,
    EARLIEST_SENTINEL,
    LATEST_SENTINEL,
)
from pennytrace.core.dates import utc_now_iso, year_of
from pennytrace.core.logging import get_logger
from pennytrace.entities import (
    EntityConfig,
    generate_file_name,
    get_current_name,
    get_entities,
)
from pennytrace.models import (
    AllEntitiesSummary,
    DailyOHLCV,
    DataSource,
    DateRange,
    EntityStockData,
    EntitySummary,
    NormalizedEntityData,
    PeriodSummary,
    SummaryDateRange,
)
from pennytrace.pipeline.storage import ensure_dirs, read_json, read_model, write_json, write_text
from pennytrace.providers.sec_edgar import EntityFilings, PublishedFilings, SECFiling

logger = get_logger(__name__)


# ─────────────────────────────────────────────────────────────
# CSV
# ─────────────────────────────────────────────────────────────


def generate_csv(daily: Iterable[DailyOHLCV]) -> str:
    """Render daily bars as CSV: fixed column order, '\\n' separators, no trailing newline."""
    price = f".{CSV_PRICE_DECIMALS}f"
    dollars = f".{CSV_DOLLAR_DECIMALS}f"
    lines = [",".join(CSV_HEADER)]
    for bar in daily:
        lines.append(
            ",".join(
                [
                    bar.date,
                    format(bar.open, price),
                    format(bar.high, price),
                    format(bar.low, price),
                    format(bar.close, price),
                    str(bar.volume),
                    format(bar.dollar_volume, dollars),
                    str(bar.trade_count),
                    ";".join(s.value for s in bar.sources),
                ]
            )
        )
    return "\n".join(lines)


def parse_daily_csv(text: str) -> list[DailyOHLCV]:
    """Read bars back from generate_csv() output.

    Raises:
        ValueError: the header does not match or a row is malformed
    """
    reader = csv.reader(io.StringIO(text))
    header = next(reader, None)
    if header is None:
        return []
    if tuple(header) != CSV_HEADER:
        raise ValueError(f"Unexpected CSV header: {header}")

    bars: list[DailyOHLCV] = []
    for row in reader:
        if not row:
            continue
        if len(row) != len(CSV_HEADER):
            raise ValueError(f"Expected {len(CSV_HEADER)} fields, got {len(row)}: {row}")
        day, open_, high, low, close, volume, dollar_volume, trade_count, sources = row
        bars.append(
            DailyOHLCV(
                date=day,
                open=float(open_),
                high=float(high),
                low=float(low),
                close=float(close),
                volume=int(volume),
                dollar_volume=float(dollar_volume),
                trade_count=int(trade_count),
                sources=[DataSource(s) for s in sources.split(";") if s],
            )
        )
    return bars


# ─────────────────────────────────────────────────────────────
# SEC filings
# ─────────────────────────────────────────────────────────────


def load_sec_filings(cache_dir: Path, cik: str) -> list[SECFiling]:
    """Cached filings for an entity; [] when none were fetched."""
    path = cache_dir / DataSource.sec_edgar.value / f"{cik}-filings.json"
    if not path.is_file():
        return []
    try:
        return EntityFilings.model_validate(read_json(path)).filings
    except (orjson.JSONDecodeError, ValidationError) as e:
        logger.warning("Skipping unreadable filings cache", path=str(path), error=str(e))
        return []


def filter_filings_to_period(filings: Iterable[SECFiling], period: DateRange) -> list[SECFiling]:
    """Filings dated within [period.start, period.end], both ends inclusive."""
    return [f for f in filings if period.start <= f.filing_date <= period.end]


# ─────────────────────────────────────────────────────────────
# Summary index
# ─────────────────────────────────────────────────────────────


def build_master_summary(entities: Sequence[EntitySummary]) -> AllEntitiesSummary:
    """Cross-entity index with total trading days and the global date range."""
    total_records = 0
    earliest = EARLIEST_SENTINEL
    latest = LATEST_SENTINEL

    for entity in entities:
        for period in entity.periods:
            total_records += period.trading_days
            if period.start < earliest:
                earliest = period.start
            if period.end > latest:
                latest = period.end

    return AllEntitiesSummary(
        entities=list(entities),
        total_records=total_records,
        date_range=SummaryDateRange(
            earliest=earliest if earliest != EARLIEST_SENTINEL else "",
            latest=latest if latest != LATEST_SENTINEL else "",
        ),
        generated_at=utc_now_iso(),
    )


# ─────────────────────────────────────────────────────────────
# Stage
# ─────────────────────────────────────────────────────────────


class _Publisher:
    def __init__(self, settings: Settings) -> None:
        self.cache_dir = settings.cache_dir
        self.normalized_dir = settings.normalized_dir
        self.entities_dir = settings.json_output_dir / "entities"
        self.csv_dir = settings.csv_output_dir

    def write_filings(self, entity: EntityConfig, filings: list[SECFiling]) -> None:
        path = write_json(
            self.entities_dir / f"{entity.cik}-filings.json",
            PublishedFilings(
                cik=entity.cik,
                company=get_current_name(entity),
                filings=filings,
                generated_at=utc_now_iso(),
            ),
        )
        logger.info("Saved filings", path=str(path), count=len(filings))

    def publish_period(
        self,
        entity: EntityConfig,
        data: NormalizedEntityData,
        exchange: str,
        filings: list[SECFiling],
    ) -> PeriodSummary:
        name = generate_file_name(
            entity.cik, data.ticker, year_of(data.period.start), year_of(data.period.end)
        )

        stock_data = EntityStockData(
            cik=entity.cik,
            ticker=data.ticker,
            company=data.company,
            period=data.period,
            exchange=exchange,
            metrics=data.metrics,
            daily_data=data.daily_data,
            sources=data.sources,
            generated_at=utc_now_iso(),
        )
        json_path = write_json(self.entities_dir / f"{name}.json", stock_data)
        csv_path = write_text(self.csv_dir / f"{name}.csv", generate_csv(data.daily_data))

        period_filings = filter_filings_to_period(filings, data.period)
        write_json(
            self.entities_dir / f"{name}-filings.json",
            PublishedFilings(
                cik=entity.cik,
                company=data.company,
                filings=period_filings,
                generated_at=utc_now_iso(),
            ),
        )
        logger.info(
            "Published period",
            json=str(json_path),
            csv=str(csv_path),
            trading_days=data.metrics.trading_days,
            period_filings=len(period_filings),
        )

        return PeriodSummary(
            ticker=data.ticker,
            start=data.period.start,
            end=data.period.end,
            trading_days=data.metrics.trading_days,
            peak_price=data.metrics.peak_price,
            total_volume=data.metrics.total_volume,
        )

    def publish_entity(self, entity: EntityConfig) -> EntitySummary:
        logger.info("Generating files", cik=entity.cik)
        filings = load_sec_filings(self.cache_dir, entity.cik)

        periods: list[PeriodSummary] = []
        for ticker in entity.tickers:
            data = read_model(
                self.normalized_dir / f"{entity.cik}-{ticker.symbol}.json", NormalizedEntityData
            )
            if data is None:
                logger.info("No normalized data", ticker=ticker.symbol, cik=entity.cik)
                continue
            periods.append(self.publish_period(entity, data, ticker.exchange, filings))

        if filings:
            self.write_filings(entity, filings)

        return EntitySummary(
            cik=entity.cik,
            ticker=entity.primary_ticker,
            company=get_current_name(entity),
            periods=periods,
            has_data=bool(periods),
        )

    def publish_without_data(self, entity: EntityConfig) -> EntitySummary:
        filings = load_sec_filings(self.cache_dir, entity.cik)
        if filings:
            self.write_filings(entity, filings)
        return EntitySummary(
            cik=entity.cik,
            ticker=entity.primary_ticker,
            company=get_current_name(entity),
            periods=[],
            has_data=False,
        )


async def run_publish(
    settings: Settings | None = None,
    *,
    entities: Sequence[EntityConfig] | None = None,
) -> AllEntitiesSummary:
    """Run the publication stage and write entities-summary.json."""
    settings = settings or get_settings()
    entities = entities if entities is not None else get_entities()
    publisher = _Publisher(settings)
    ensure_dirs(publisher.entities_dir, publisher.csv_dir)

    summaries = [publisher.publish_entity(e) for e in entities if e.has_market_data]
    seen = {s.cik for s in summaries}
    summaries += [publisher.publish_without_data(e) for e in entities if e.cik not in seen]

    summary = build_master_summary(summaries)
    path = write_json(settings.json_output_dir / "entities-summary.json", summary)

    with_data = [s for s in summaries if s.has_data]
    logger.info(
        "Publication complete",
        path=str(path),
        entities_with_data=len(with_data),
        entities_without_data=len(summaries) - len(with_data),
        total_records=summary.total_records,
    )
    return summary
