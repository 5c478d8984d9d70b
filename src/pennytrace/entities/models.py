"""Pydantic models for tracked SEC-registered entities."""

from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from pennytrace.models import CamelModel

Exchange = Literal["PINK", "OTCBB", "OTC", "NASDAQ", "NYSE", "UNKNOWN"]


class _FrozenCamelModel(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class TickerPeriod(_FrozenCamelModel):
    """A symbol an entity traded under, with its active dates."""

    symbol: str
    start_date: str  # YYYY-MM-DD
    end_date: str | None = None  # None = still active
    exchange: Exchange = "UNKNOWN"


class NamePeriod(_FrozenCamelModel):
    """A legal name the entity used, supporting rename history."""

    name: str
    start_date: str
    end_date: str | None = None


class EntityConfig(_FrozenCamelModel):
    """A tracked SEC filer (company or individual)."""

    cik: str  # CIK0000878146
    cik_number: str  # 0000878146, for SEC API calls
    primary_ticker: str
    category: Literal["corporate", "individual"]
    tickers: tuple[TickerPeriod, ...] = ()
    names: tuple[NamePeriod, ...] = ()
    related_ciks: tuple[str, ...] = ()
    notes: str = ""
    has_market_data: bool = False
    local_cache_years: tuple[int, ...] = Field(default=())

    @field_validator("cik")
    @classmethod
    def validate_cik(cls, v: str) -> str:
        if not v.startswith("CIK") or not v[3:].isdigit():
            raise ValueError(f"CIK must look like CIK0000000000, got {v!r}")
        return v

    @field_validator("cik_number")
    @classmethod
    def validate_cik_number(cls, v: str) -> str:
        if not v.isdigit():
            raise ValueError(f"CIK number must be numeric, got {v!r}")
        return v.zfill(10)
