"""Pytest fixtures and configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from pennytrace.config import Settings
from pennytrace.entities import EntityConfig, NamePeriod, TickerPeriod


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests by default unless -m integration is specified."""
    markexpr = config.getoption("-m", default="")
    if "integration" in markexpr:
        return

    skip_integration = pytest.mark.skip(reason="Integration test - run with: pytest -m integration")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


class SleepRecorder:
    """Stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


@pytest.fixture
def no_sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from the environment, with every directory under tmp_path."""
    values = {
        "PENNYTRACE_ENV": "development",
        "ALPHA_VANTAGE_API_KEY": None,
        "TWELVE_DATA_API_KEY": None,
        "FINNHUB_API_KEY": None,
        "MASSIVE_API_KEY": None,
        "SEC_EDGAR_USER_AGENT": "PennyTraceTests/1.0 test@example.com",
        "PENNY_STOCKS_DATA_PATH": tmp_path / "archive",
        "PENNYTRACE_CACHE_DIR": tmp_path / ".cache",
        "PENNYTRACE_OUTPUT_DIR": tmp_path / "static",
        "PENNYTRACE_ENTITIES_FILE": None,
        "PENNYTRACE_RETRY_MAX_ATTEMPTS": 3,
        "PENNYTRACE_RETRY_BASE_DELAY": 0.0,
    }
    return Settings(_env_file=None, **values)


@pytest.fixture
def lgal_entity() -> EntityConfig:
    return EntityConfig(
        cik="CIK0000878146",
        cik_number="0000878146",
        primary_ticker="LGAL",
        category="corporate",
        tickers=(
            TickerPeriod(
                symbol="LGAL", start_date="2008-01-01", end_date="2010-12-31", exchange="PINK"
            ),
        ),
        names=(NamePeriod(name="Legal Access Technologies, Inc.", start_date="2007-01-01"),),
        has_market_data=True,
        local_cache_years=(2008,),
    )


@pytest.fixture
def individual_entity() -> EntityConfig:
    return EntityConfig(
        cik="CIK0001144030",
        cik_number="0001144030",
        primary_ticker="N/A",
        category="individual",
        names=(NamePeriod(name="Jane Filer", start_date="2001-01-01"),),
    )
