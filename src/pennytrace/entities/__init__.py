"""Tracked entity configuration (CIKs, ticker history, name history)."""

from pennytrace.entities.models import EntityConfig, NamePeriod, TickerPeriod
from pennytrace.entities.registry import (
    generate_file_name,
    get_corporate_entities,
    get_current_name,
    get_entities,
    get_entities_with_market_data,
    get_entity_by_cik,
    get_entity_by_ticker,
    get_ticker_for_date,
    load_entities,
)

__all__ = [
    "EntityConfig",
    "NamePeriod",
    "TickerPeriod",
    "generate_file_name",
    "get_corporate_entities",
    "get_current_name",
    "get_entities",
    "get_entities_with_market_data",
    "get_entity_by_cik",
    "get_entity_by_ticker",
    "get_ticker_for_date",
    "load_entities",
]
