"""Consolidation stage: merge every raw source into one timeline per ticker.

For each entity with market data and each of its ticker periods, records
from the local CSV archive and every cached remote-provider file are
concatenated, sorted by time and deduplicated on the exact datetime string.

Reads:  {archive}/..., {cache}/{provider}/{CIK}-{TICKER}-*.json
Writes: {cache}/consolidated/{CIK}-{TICKER}.json, {cache}/consolidated/summary.json
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

import orjson
from pydantic import ValidationError

from pennytrace.config import Settings, get_settings
from pennytrace.core.dates import date_key, parse_datetime, utc_now_iso
from pennytrace.core.logging import get_logger
from pennytrace.entities import EntityConfig, get_current_name, get_entities
from pennytrace.models import (
    ConsolidatedEntityData,
    ConsolidatedSummaryEntry,
    ConsolidationSummary,
    DataSource,
    DateRange,
    RawDataFile,
    RawTradeRecord,
)
from pennytrace.pipeline.storage import ensure_dirs, read_json, write_json
from pennytrace.providers import LocalCacheReader, create_local_cache_reader

logger = get_logger(__name__)

# Cache directories holding per-call RawDataFile envelopes
REMOTE_SOURCES: tuple[DataSource, ...] = (
    DataSource.yahoo_finance,
    DataSource.alpha_vantage,
    DataSource.twelve_data,
    DataSource.finnhub,
    DataSource.massive,
)


# ─────────────────────────────────────────────────────────────
# Deduplication
# ─────────────────────────────────────────────────────────────


def score_record(record: RawTradeRecord) -> int:
    """Completeness score used to pick among records sharing a datetime.

    +2 volume, +1 price, +1 bid, +1 ask (each only when > 0), and +1 for the
    local archive, which is the more complete source for penny stocks.
    """
    score = 0
    if record.volume > 0:
        score += 2
    if record.price > 0:
        score += 1
    if record.bid is not None and record.bid > 0:
        score += 1
    if record.ask is not None and record.ask > 0:
        score += 1
    if record.source == DataSource.local_cache:
        score += 1
    return score


def deduplicate_records(records: Iterable[RawTradeRecord]) -> list[RawTradeRecord]:
    """Keep one record per exact datetime string.

    A later record replaces the kept one only with a strictly higher score,
    so equal scores keep the first seen. Output order is first-seen order
    of each datetime.
    """
    by_datetime: dict[str, RawTradeRecord] = {}
    for record in records:
        existing = by_datetime.get(record.datetime)
        if existing is None or score_record(record) > score_record(existing):
            by_datetime[record.datetime] = record
    return list(by_datetime.values())


def sort_records(records: Iterable[RawTradeRecord]) -> tuple[list[RawTradeRecord], int]:
    """Stable ascending sort by parsed datetime.

    Returns the sorted records and the number dropped for unparseable datetimes.
    """
    keyed = []
    dropped = 0
    for record in records:
        parsed = parse_datetime(record.datetime)
        if parsed is None:
            dropped += 1
            continue
        keyed.append((parsed, record))
    keyed.sort(key=lambda pair: pair[0])
    return [record for _, record in keyed], dropped


# ─────────────────────────────────────────────────────────────
# Loading
# ─────────────────────────────────────────────────────────────


def load_remote_cache(cache_dir: Path, cik: str, ticker: str) -> list[RawTradeRecord]:
    """Records from every cached provider file for one entity/ticker."""
    records: list[RawTradeRecord] = []
    for source in REMOTE_SOURCES:
        for path in sorted((cache_dir / source.value).glob(f"{cik}-{ticker}-*.json")):
            try:
                data = RawDataFile.model_validate(read_json(path))
            except (orjson.JSONDecodeError, ValidationError) as e:
                logger.warning("Skipping unreadable cache file", path=str(path), error=str(e))
                continue
            logger.info("Loaded cached records", path=str(path), records=len(data.records))
            records.extend(data.records)
    return records


def consolidate_entity(
    entity: EntityConfig,
    ticker: str,
    reader: LocalCacheReader,
    cache_dir: Path,
) -> ConsolidatedEntityData | None:
    """Merge all sources for one entity/ticker. None when nothing was found."""
    logger.info("Consolidating", ticker=ticker, cik=entity.cik)

    all_records: list[RawTradeRecord] = []
    for year in entity.local_cache_years:
        all_records.extend(reader.read_entity_csv(ticker, year))
    all_records.extend(load_remote_cache(cache_dir, entity.cik, ticker))

    if not all_records:
        logger.info("No data found", ticker=ticker, cik=entity.cik)
        return None

    sources = list(dict.fromkeys(record.source for record in all_records))
    ordered, dropped = sort_records(all_records)
    if dropped:
        logger.warning("Dropped records with unparseable datetimes", ticker=ticker, dropped=dropped)

    deduped = deduplicate_records(ordered)
    if not deduped:
        logger.info("No data found", ticker=ticker, cik=entity.cik)
        return None

    dates = sorted({d for d in (date_key(r.datetime) for r in deduped) if d})
    date_range = DateRange(start=dates[0], end=dates[-1])

    logger.info(
        "Consolidated records",
        ticker=ticker,
        total=len(all_records),
        deduplicated=len(deduped),
        start=date_range.start,
        end=date_range.end,
        sources=[s.value for s in sources],
    )
    return ConsolidatedEntityData(
        cik=entity.cik,
        ticker=ticker,
        company=get_current_name(entity),
        records=deduped,
        sources=sources,
        date_range=date_range,
        consolidated_at=utc_now_iso(),
    )


def build_consolidation_summary(
    consolidated: Sequence[ConsolidatedEntityData],
) -> ConsolidationSummary:
    return ConsolidationSummary(
        entities=[
            ConsolidatedSummaryEntry(
                cik=c.cik,
                ticker=c.ticker,
                company=c.company,
                records=len(c.records),
                date_range=c.date_range,
                sources=c.sources,
            )
            for c in consolidated
        ],
        total_records=sum(len(c.records) for c in consolidated),
        consolidated_at=utc_now_iso(),
    )


async def run_consolidate(
    settings: Settings | None = None,
    *,
    entities: Sequence[EntityConfig] | None = None,
    reader: LocalCacheReader | None = None,
) -> list[ConsolidatedEntityData]:
    """Run the consolidation stage for every entity with market data."""
    settings = settings or get_settings()
    entities = entities if entities is not None else get_entities()
    reader = reader or create_local_cache_reader(settings)
    out_dir = settings.consolidated_dir
    ensure_dirs(out_dir)

    consolidated: list[ConsolidatedEntityData] = []
    for entity in entities:
        if not entity.has_market_data:
            continue
        for period in entity.tickers:
            data = consolidate_entity(entity, period.symbol, reader, settings.cache_dir)
            if data is None:
                continue
            consolidated.append(data)
            path = write_json(out_dir / f"{entity.cik}-{period.symbol}.json", data)
            logger.info("Saved consolidated data", path=str(path))

    summary = build_consolidation_summary(consolidated)
    write_json(out_dir / "summary.json", summary)
    logger.info(
        "Consolidation complete",
        entities=len(consolidated),
        total_records=summary.total_records,
    )
    return consolidated
