"""Entity registry: loading and lookup helpers.

The tracked entities live in a JSON document (bundled under data/, or the
file named by PENNYTRACE_ENTITIES_FILE). Entities are immutable once loaded.
"""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path

import orjson
from pydantic import BaseModel, ValidationError

from pennytrace.config import get_settings
from pennytrace.core.constants import OPEN_ENDED_DATE
from pennytrace.core.dates import today_iso
from pennytrace.core.exceptions import EntityConfigError
from pennytrace.core.logging import get_logger
from pennytrace.entities.models import EntityConfig

logger = get_logger(__name__)

BUNDLED_ENTITIES_FILE = Path(__file__).parent / "data" / "entities.json"


class _EntitiesDocument(BaseModel):
    entities: list[EntityConfig]


def load_entities(path: Path | None = None) -> tuple[EntityConfig, ...]:
    """Load and validate an entity configuration document.

    Raises:
        EntityConfigError: file missing, not JSON, or fails validation
    """
    source = path or BUNDLED_ENTITIES_FILE
    try:
        raw = orjson.loads(source.read_bytes())
    except FileNotFoundError as e:
        raise EntityConfigError(f"Entity configuration not found: {source}") from e
    except orjson.JSONDecodeError as e:
        raise EntityConfigError(f"Entity configuration is not valid JSON: {source}") from e

    try:
        document = _EntitiesDocument.model_validate(raw)
    except ValidationError as e:
        raise EntityConfigError(f"Invalid entity configuration in {source}: {e}") from e

    ciks = [entity.cik for entity in document.entities]
    duplicates = {cik for cik in ciks if ciks.count(cik) > 1}
    if duplicates:
        raise EntityConfigError(f"Duplicate CIKs in {source}: {sorted(duplicates)}")

    logger.debug("Loaded entity configuration", path=str(source), count=len(ciks))
    return tuple(document.entities)


@lru_cache
def _load_cached(path: Path) -> tuple[EntityConfig, ...]:
    return load_entities(path)


def get_entities() -> tuple[EntityConfig, ...]:
    """All configured entities, in document order."""
    path = get_settings().entities_file or BUNDLED_ENTITIES_FILE
    return _load_cached(path)


def _resolve(entities: Sequence[EntityConfig] | None) -> Sequence[EntityConfig]:
    return entities if entities is not None else get_entities()


def get_entity_by_cik(
    cik: str, entities: Sequence[EntityConfig] | None = None
) -> EntityConfig | None:
    return next((e for e in _resolve(entities) if e.cik == cik), None)


def get_entity_by_ticker(
    ticker: str, entities: Sequence[EntityConfig] | None = None
) -> EntityConfig | None:
    """Find the entity that ever traded under `ticker` (or uses it as primary)."""
    ticker = ticker.upper()
    for entity in _resolve(entities):
        if entity.primary_ticker == ticker or any(t.symbol == ticker for t in entity.tickers):
            return entity
    return None


def get_corporate_entities(
    entities: Sequence[EntityConfig] | None = None,
) -> list[EntityConfig]:
    return [e for e in _resolve(entities) if e.category == "corporate"]


def get_entities_with_market_data(
    entities: Sequence[EntityConfig] | None = None,
) -> list[EntityConfig]:
    return [e for e in _resolve(entities) if e.has_market_data]


def get_current_name(entity: EntityConfig, as_of: str | None = None) -> str:
    """Legal name in effect on `as_of` (default today).

    Overlapping periods resolve to the most recently started one. When no
    period contains the date, the most recently started name wins.
    """
    target = as_of or today_iso()
    ordered = sorted(entity.names, key=lambda n: n.start_date, reverse=True)

    for period in ordered:
        end = period.end_date or OPEN_ENDED_DATE
        if period.start_date <= target <= end:
            return period.name

    return ordered[0].name if ordered else "Unknown"


def get_ticker_for_date(entity: EntityConfig, on: str) -> str | None:
    """Symbol the entity traded under on a given date, if any."""
    for period in entity.tickers:
        end = period.end_date or OPEN_ENDED_DATE
        if period.start_date <= on <= end:
            return period.symbol
    return None


def generate_file_name(cik: str, ticker: str, start_year: int, end_year: int) -> str:
    """Published artifact stem, e.g. CIK0000013156-GLXZ-2009-2012."""
    return f"{cik}-{ticker}-{start_year}-{end_year}"
