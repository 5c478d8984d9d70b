"""Fetch stage: pull raw data from remote providers into the cache.

Each provider call is written to its own file under {cache}/{provider}/,
keyed by entity and ticker (plus month for intraday pulls). Nothing is
merged here. Re-running overwrites files of the same name.

Order: Yahoo Finance, Alpha Vantage, any configured live-API providers,
then SEC EDGAR. A QuotaExhaustedError from Alpha Vantage aborts the run.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from pennytrace.config import Settings, get_settings
from pennytrace.core.dates import today_iso, utc_now_iso, year_of
from pennytrace.core.logging import get_logger
from pennytrace.entities import EntityConfig, TickerPeriod, get_current_name, get_entities
from pennytrace.models import DataSource, RawDataFile, RawTradeRecord
from pennytrace.pipeline.storage import ensure_dirs, write_json
from pennytrace.providers import (
    AlphaVantageClient,
    DailyHistoryProvider,
    SECEdgarClient,
    YahooFinanceClient,
    create_alpha_vantage_client,
    create_optional_providers,
    create_sec_client,
    create_yahoo_client,
)
from pennytrace.providers.sec_edgar import EntityFilings

logger = get_logger(__name__)


@dataclass
class FetchResult:
    """Files written by one fetch run."""

    written: list[Path] = field(default_factory=list)

    def add(self, path: Path) -> None:
        self.written.append(path)


def _period_end(period: TickerPeriod, today: str) -> str:
    return period.end_date or today


def _save_records(
    cache_dir: Path,
    entity: EntityConfig,
    symbol: str,
    source: DataSource,
    suffix: str,
    records: list[RawTradeRecord],
    year: int = 0,
) -> Path:
    path = cache_dir / source.value / f"{entity.cik}-{symbol}-{suffix}.json"
    write_json(
        path,
        RawDataFile(
            cik=entity.cik,
            ticker=symbol,
            year=year,
            source=source,
            file_path=str(path),
            records=records,
            fetched_at=utc_now_iso(),
        ),
    )
    logger.info("Saved records", path=str(path), records=len(records))
    return path


def sample_months(period: TickerPeriod, today: str) -> list[str]:
    """Intraday months sampled for a ticker period: January of its first and last year.

    Months that start after `today` are left out, and a single-year period
    is sampled once.
    """
    start_year = year_of(period.start_date)
    end_year = year_of(period.end_date) if period.end_date else year_of(today)
    months = dict.fromkeys([f"{start_year}-01", f"{end_year}-01"])
    return [m for m in months if f"{m}-01" <= today]


async def fetch_yahoo_data(
    client: YahooFinanceClient,
    entities: Sequence[EntityConfig],
    cache_dir: Path,
    today: str,
    result: FetchResult,
) -> None:
    logger.info("Fetching Yahoo Finance data")
    for entity in entities:
        for period in entity.tickers:
            logger.info("Processing ticker", ticker=period.symbol, cik=entity.cik)
            records = await client.get_historical_data(
                period.symbol, period.start_date, _period_end(period, today)
            )
            if records:
                result.add(
                    _save_records(
                        cache_dir, entity, period.symbol, DataSource.yahoo_finance, "daily", records
                    )
                )


async def fetch_alpha_vantage_data(
    client: AlphaVantageClient,
    entities: Sequence[EntityConfig],
    cache_dir: Path,
    today: str,
    result: FetchResult,
) -> None:
    """Daily series plus sampled intraday months per ticker period.

    Raises:
        QuotaExhaustedError: the daily request budget ran out mid-run
    """
    logger.info("Fetching Alpha Vantage data")
    for entity in entities:
        for period in entity.tickers:
            logger.info("Processing ticker", ticker=period.symbol, cik=entity.cik)

            daily = await client.get_daily_time_series(period.symbol, "full")
            if daily:
                result.add(
                    _save_records(
                        cache_dir, entity, period.symbol, DataSource.alpha_vantage, "daily", daily
                    )
                )

            # Full intraday history comes from the local archive; sample only
            for month in sample_months(period, today):
                intraday = await client.get_intraday_for_month(period.symbol, month)
                if intraday:
                    result.add(
                        _save_records(
                            cache_dir,
                            entity,
                            period.symbol,
                            DataSource.alpha_vantage,
                            f"intraday-{month}",
                            intraday,
                            year=year_of(month),
                        )
                    )


async def fetch_provider_history(
    client: DailyHistoryProvider,
    entities: Sequence[EntityConfig],
    cache_dir: Path,
    today: str,
    result: FetchResult,
) -> None:
    """Daily history from a live-API provider for every ticker period."""
    logger.info("Fetching provider data", provider=client.source.value)
    for entity in entities:
        for period in entity.tickers:
            records = await client.get_daily_history(
                period.symbol, period.start_date, _period_end(period, today)
            )
            if records:
                result.add(
                    _save_records(cache_dir, entity, period.symbol, client.source, "daily", records)
                )


async def fetch_sec_filings(
    client: SECEdgarClient,
    entities: Sequence[EntityConfig],
    cache_dir: Path,
    result: FetchResult,
) -> None:
    """Company info and filing lists for every configured entity."""
    logger.info("Fetching SEC EDGAR filings")
    sec_dir = cache_dir / DataSource.sec_edgar.value
    for entity in entities:
        logger.info("Processing entity", cik=entity.cik, name=get_current_name(entity))

        info = await client.get_company_info(entity.cik_number)
        if info:
            path = write_json(sec_dir / f"{entity.cik}-company-info.json", info)
            logger.info("Saved company info", path=str(path))
            result.add(path)

        filings = await client.get_filings(entity.cik_number)
        if filings:
            path = write_json(
                sec_dir / f"{entity.cik}-filings.json",
                EntityFilings(cik=entity.cik, filings=filings, fetched_at=utc_now_iso()),
            )
            form_counts = Counter(f.form for f in filings)
            logger.info(
                "Saved filings",
                path=str(path),
                count=len(filings),
                forms=dict(form_counts.most_common()),
            )
            result.add(path)


async def run_fetch(
    settings: Settings | None = None,
    *,
    skip_alpha_vantage: bool = False,
    skip_sec: bool = False,
    skip_yahoo: bool = False,
    entities: Sequence[EntityConfig] | None = None,
    yahoo: YahooFinanceClient | None = None,
    alpha_vantage: AlphaVantageClient | None = None,
    sec: SECEdgarClient | None = None,
    optional_providers: Sequence[DailyHistoryProvider] | None = None,
    today: str | None = None,
) -> FetchResult:
    """Run the fetch stage.

    Clients not passed in are created from settings. Creating the Alpha
    Vantage client without ALPHA_VANTAGE_API_KEY raises
    MissingCredentialsError unless the provider is skipped.
    """
    settings = settings or get_settings()
    entities = list(entities if entities is not None else get_entities())
    market_entities = [e for e in entities if e.has_market_data]
    cache_dir = settings.cache_dir
    today = today or today_iso()
    result = FetchResult()

    ensure_dirs(
        cache_dir / DataSource.alpha_vantage.value,
        cache_dir / DataSource.sec_edgar.value,
        cache_dir / DataSource.yahoo_finance.value,
    )
    logger.info("Fetch stage started", entities=len(entities), market_entities=len(market_entities))

    if skip_yahoo:
        logger.info("Skipping Yahoo Finance", reason="--skip-yahoo")
    else:
        client = yahoo or create_yahoo_client(settings)
        try:
            await fetch_yahoo_data(client, market_entities, cache_dir, today, result)
        finally:
            await client.close()

    if skip_alpha_vantage:
        logger.info("Skipping Alpha Vantage", reason="--skip-av")
    else:
        av_client = alpha_vantage or create_alpha_vantage_client(settings)
        try:
            await fetch_alpha_vantage_data(av_client, market_entities, cache_dir, today, result)
        finally:
            await av_client.close()

    providers = (
        list(optional_providers)
        if optional_providers is not None
        else create_optional_providers(settings)
    )
    for provider in providers:
        try:
            await fetch_provider_history(provider, market_entities, cache_dir, today, result)
        finally:
            await provider.close()

    if skip_sec:
        logger.info("Skipping SEC EDGAR", reason="--skip-sec")
    else:
        sec_client = sec or create_sec_client(settings)
        try:
            await fetch_sec_filings(sec_client, entities, cache_dir, result)
        finally:
            await sec_client.close()

    logger.info("Fetch stage complete", files=len(result.written))
    return result
