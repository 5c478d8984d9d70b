"""Pipeline data models.

These models define the files exchanged between stages and the artifacts
published for the web front end:
- Raw provider records and the per-provider cache envelope
- Consolidated (merged, deduplicated) per-entity timelines
- Daily OHLCV bars and period metrics
- Published entity data and the cross-entity summary index

Field names are snake_case in Python and camelCase on disk.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Sources
# =============================================================================


class DataSource(str, Enum):
    """Provider that produced a record."""

    local_cache = "local-cache"
    alpha_vantage = "alpha-vantage"
    massive = "massive"
    sec_edgar = "sec-edgar"
    yahoo_finance = "yahoo-finance"
    twelve_data = "twelve-data"
    finnhub = "finnhub"


# =============================================================================
# Raw Records
# =============================================================================


class RawTradeRecord(CamelModel):
    """One observed trade/quote point from any provider."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    datetime: str  # as delivered: date-only or full timestamp
    price: float
    volume: int
    bid: float | None = None
    bid_size: int | None = None
    ask: float | None = None
    ask_size: int | None = None
    source: DataSource


class RawDataFile(CamelModel):
    """Cache envelope for one provider call."""

    cik: str
    ticker: str
    year: int  # 0 = all years
    source: DataSource
    file_path: str
    records: list[RawTradeRecord]
    fetched_at: str


class DateRange(CamelModel):
    start: str
    end: str


# =============================================================================
# Consolidated
# =============================================================================


class ConsolidatedEntityData(CamelModel):
    """One entity/ticker's merged trading history, one record per datetime."""

    cik: str
    ticker: str
    company: str
    records: list[RawTradeRecord]
    sources: list[DataSource]
    date_range: DateRange
    consolidated_at: str


class ConsolidatedSummaryEntry(CamelModel):
    cik: str
    ticker: str
    company: str
    records: int
    date_range: DateRange
    sources: list[DataSource]


class ConsolidationSummary(CamelModel):
    """consolidated/summary.json, for observability only."""

    entities: list[ConsolidatedSummaryEntry]
    total_records: int
    consolidated_at: str


# =============================================================================
# Normalized
# =============================================================================


class DailyOHLCV(CamelModel):
    """One trading day. open/close follow time order, not price order."""

    date: str
    open: float
    high: float
    low: float
    close: float
    volume: int
    dollar_volume: float
    trade_count: int
    sources: list[DataSource] = Field(default_factory=list)


class PeriodMetrics(CamelModel):
    """Summary statistics over a full daily series."""

    peak_price: float = 0.0
    peak_date: str = ""
    low_price: float = 0.0
    low_date: str = ""
    avg_price: float = 0.0
    highest_volume_day: str = ""
    highest_volume_amount: int = 0
    highest_dollar_volume_day: str = ""
    highest_dollar_volume_amount: float = 0.0
    total_volume: int = 0
    total_dollar_volume: float = 0.0
    trading_days: int = 0
    first_trade_date: str = ""
    last_trade_date: str = ""
    price_change: float = 0.0  # last close - first open
    price_change_percent: float = 0.0


class NormalizedEntityData(CamelModel):
    cik: str
    ticker: str
    company: str
    period: DateRange
    metrics: PeriodMetrics
    daily_data: list[DailyOHLCV]
    sources: list[DataSource]
    normalized_at: str


class NormalizedSummaryEntry(CamelModel):
    cik: str
    ticker: str
    company: str
    trading_days: int
    peak_price: float
    low_price: float
    total_volume: int
    period: DateRange


class NormalizationSummary(CamelModel):
    """normalized/summary.json, for observability only."""

    entities: list[NormalizedSummaryEntry]
    normalized_at: str


# =============================================================================
# Published Artifacts
# =============================================================================


class EntityStockData(CamelModel):
    """Full per entity/ticker/period artifact for the web app."""

    cik: str
    ticker: str
    company: str
    period: DateRange
    exchange: str
    metrics: PeriodMetrics
    daily_data: list[DailyOHLCV]
    sources: list[DataSource]
    generated_at: str


class PeriodSummary(CamelModel):
    ticker: str
    start: str
    end: str
    trading_days: int
    peak_price: float
    total_volume: int


class EntitySummary(CamelModel):
    cik: str
    ticker: str
    company: str
    periods: list[PeriodSummary] = Field(default_factory=list)
    has_data: bool = False


class SummaryDateRange(CamelModel):
    earliest: str
    latest: str


class AllEntitiesSummary(CamelModel):
    entities: list[EntitySummary]
    total_records: int
    date_range: SummaryDateRange
    generated_at: str
