"""Tests for entity configuration loading and lookups."""

from __future__ import annotations

from pathlib import Path

import orjson
import pytest

from pennytrace.core.exceptions import EntityConfigError
from pennytrace.entities import (
    EntityConfig,
    NamePeriod,
    TickerPeriod,
    generate_file_name,
    get_corporate_entities,
    get_current_name,
    get_entities_with_market_data,
    get_entity_by_cik,
    get_entity_by_ticker,
    get_ticker_for_date,
    load_entities,
)


@pytest.fixture(scope="module")
def bundled() -> tuple[EntityConfig, ...]:
    return load_entities()


def _write(tmp_path: Path, payload: object) -> Path:
    path = tmp_path / "entities.json"
    path.write_bytes(orjson.dumps(payload))
    return path


def _entity_json(cik: str = "CIK0000000001", **overrides: object) -> dict[str, object]:
    data: dict[str, object] = {
        "cik": cik,
        "cikNumber": cik[3:],
        "primaryTicker": "TEST",
        "category": "corporate",
    }
    data.update(overrides)
    return data


class TestBundledConfiguration:
    def test_loads_all_entities(self, bundled: tuple[EntityConfig, ...]) -> None:
        assert len(bundled) == 12
        assert len({e.cik for e in bundled}) == 12

    def test_market_data_entities(self, bundled: tuple[EntityConfig, ...]) -> None:
        with_data = get_entities_with_market_data(bundled)
        assert [e.primary_ticker for e in with_data] == ["LGAL", "GLXZ", "DAVN", "FFSL", "SNPD"]

    def test_local_cache_years(self, bundled: tuple[EntityConfig, ...]) -> None:
        glxz = get_entity_by_cik("CIK0000013156", bundled)
        assert glxz is not None
        assert glxz.local_cache_years == (2009, 2010, 2011, 2012)

    def test_corporate_filter(self, bundled: tuple[EntityConfig, ...]) -> None:
        corporate = get_corporate_entities(bundled)
        assert corporate
        assert all(e.category == "corporate" for e in corporate)
        assert len(corporate) < len(bundled)

    def test_entities_are_frozen(self, bundled: tuple[EntityConfig, ...]) -> None:
        with pytest.raises(ValueError):
            bundled[0].primary_ticker = "XXXX"  # type: ignore[misc]


class TestLoadEntitiesErrors:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(EntityConfigError, match="not found"):
            load_entities(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(EntityConfigError, match="not valid JSON"):
            load_entities(path)

    def test_invalid_cik(self, tmp_path: Path) -> None:
        path = _write(tmp_path, {"entities": [_entity_json(cik="878146")]})
        with pytest.raises(EntityConfigError, match="Invalid entity configuration"):
            load_entities(path)

    def test_duplicate_cik(self, tmp_path: Path) -> None:
        path = _write(tmp_path, {"entities": [_entity_json(), _entity_json()]})
        with pytest.raises(EntityConfigError, match="Duplicate CIKs"):
            load_entities(path)

    def test_cik_number_zero_padded(self, tmp_path: Path) -> None:
        path = _write(tmp_path, {"entities": [_entity_json(cikNumber="13156")]})
        (entity,) = load_entities(path)
        assert entity.cik_number == "0000013156"


class TestLookups:
    def test_by_ticker_any_period(self, bundled: tuple[EntityConfig, ...]) -> None:
        entity = get_entity_by_ticker("sdvf", bundled)
        assert entity is not None
        assert entity.cik == "CIK0000013156"

    def test_by_ticker_unknown(self, bundled: tuple[EntityConfig, ...]) -> None:
        assert get_entity_by_ticker("ZZZZ", bundled) is None

    def test_by_cik_unknown(self, bundled: tuple[EntityConfig, ...]) -> None:
        assert get_entity_by_cik("CIK9999999999", bundled) is None


class TestCurrentName:
    @pytest.fixture
    def renamed(self) -> EntityConfig:
        return EntityConfig(
            cik="CIK0000000002",
            cik_number="2",
            primary_ticker="NEW",
            category="corporate",
            names=(
                NamePeriod(name="Old Corp", start_date="2000-01-01", end_date="2005-12-31"),
                NamePeriod(name="New Corp", start_date="2006-01-01"),
            ),
        )

    def test_as_of_date(self, renamed: EntityConfig) -> None:
        assert get_current_name(renamed, "2003-06-01") == "Old Corp"
        assert get_current_name(renamed, "2010-06-01") == "New Corp"

    def test_default_is_today(self, renamed: EntityConfig) -> None:
        assert get_current_name(renamed) == "New Corp"

    def test_gap_falls_back_to_most_recent(self) -> None:
        entity = EntityConfig(
            cik="CIK0000000003",
            cik_number="3",
            primary_ticker="GAP",
            category="corporate",
            names=(
                NamePeriod(name="First", start_date="2000-01-01", end_date="2001-12-31"),
                NamePeriod(name="Second", start_date="2005-01-01", end_date="2006-12-31"),
            ),
        )
        assert get_current_name(entity, "2003-01-01") == "Second"

    def test_no_names(self) -> None:
        entity = EntityConfig(
            cik="CIK0000000004", cik_number="4", primary_ticker="X", category="individual"
        )
        assert get_current_name(entity) == "Unknown"


def test_ticker_for_date() -> None:
    entity = EntityConfig(
        cik="CIK0000000005",
        cik_number="5",
        primary_ticker="BBB",
        category="corporate",
        tickers=(
            TickerPeriod(symbol="AAA", start_date="2000-01-01", end_date="2004-12-31"),
            TickerPeriod(symbol="BBB", start_date="2005-01-01"),
        ),
    )
    assert get_ticker_for_date(entity, "2002-01-01") == "AAA"
    assert get_ticker_for_date(entity, "2020-01-01") == "BBB"
    assert get_ticker_for_date(entity, "1999-01-01") is None


def test_generate_file_name() -> None:
    assert generate_file_name("CIK0000013156", "GLXZ", 2009, 2012) == "CIK0000013156-GLXZ-2009-2012"
