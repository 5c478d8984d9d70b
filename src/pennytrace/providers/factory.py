"""Provider factory for creating data provider clients from settings.

Every client gets its own limiter instances and a backoff policy built from
settings, so two clients never share rate-limit state.

Usage:
    from pennytrace.providers import create_alpha_vantage_client, create_sec_client

    av = create_alpha_vantage_client()        # raises if ALPHA_VANTAGE_API_KEY is unset
    sec = create_sec_client(settings)
    extra = create_optional_providers(settings)
"""

from __future__ import annotations

from pennytrace.config import Settings, get_settings
from pennytrace.core.exceptions import MissingCredentialsError
from pennytrace.core.logging import get_logger
from pennytrace.core.ratelimit import BackoffPolicy
from pennytrace.models import DataSource
from pennytrace.providers.alpha_vantage import AlphaVantageClient
from pennytrace.providers.base import DailyHistoryProvider
from pennytrace.providers.finnhub import FinnhubClient
from pennytrace.providers.local_cache import LocalCacheReader
from pennytrace.providers.massive import MassiveClient
from pennytrace.providers.sec_edgar import SECEdgarClient
from pennytrace.providers.twelve_data import TwelveDataClient
from pennytrace.providers.yahoo import YahooFinanceClient

logger = get_logger(__name__)


def backoff_policy(settings: Settings | None = None) -> BackoffPolicy:
    """Bounded 429 backoff from the PENNYTRACE_RETRY_* settings."""
    settings = settings or get_settings()
    return BackoffPolicy(
        max_attempts=settings.retry_max_attempts,
        base_delay=settings.retry_base_delay,
    )


def _require_key(settings: Settings, field: str, env_var: str) -> str:
    secret = getattr(settings, field)
    key = secret.get_secret_value() if secret else None
    if not key:
        raise MissingCredentialsError(f"Missing required environment variable: {env_var}")
    return key


def create_local_cache_reader(settings: Settings | None = None) -> LocalCacheReader:
    settings = settings or get_settings()
    return LocalCacheReader(settings.penny_stocks_data_path)


def create_alpha_vantage_client(settings: Settings | None = None) -> AlphaVantageClient:
    """Create an Alpha Vantage client.

    Raises:
        MissingCredentialsError: ALPHA_VANTAGE_API_KEY is not set
    """
    settings = settings or get_settings()
    key = _require_key(settings, "alpha_vantage_api_key", "ALPHA_VANTAGE_API_KEY")
    logger.debug("Creating AlphaVantageClient")
    return AlphaVantageClient(api_key=key, backoff=backoff_policy(settings))


def create_sec_client(settings: Settings | None = None) -> SECEdgarClient:
    settings = settings or get_settings()
    logger.debug("Creating SECEdgarClient")
    return SECEdgarClient(settings.sec_edgar_user_agent, backoff=backoff_policy(settings))


def create_yahoo_client(settings: Settings | None = None) -> YahooFinanceClient:
    settings = settings or get_settings()
    logger.debug("Creating YahooFinanceClient")
    return YahooFinanceClient(backoff=backoff_policy(settings))


def create_twelve_data_client(settings: Settings | None = None) -> TwelveDataClient:
    """Create a Twelve Data client.

    Raises:
        MissingCredentialsError: TWELVE_DATA_API_KEY is not set
    """
    settings = settings or get_settings()
    key = _require_key(settings, "twelve_data_api_key", "TWELVE_DATA_API_KEY")
    logger.debug("Creating TwelveDataClient")
    return TwelveDataClient(api_key=key, backoff=backoff_policy(settings))


def create_finnhub_client(settings: Settings | None = None) -> FinnhubClient:
    """Create a Finnhub client.

    Raises:
        MissingCredentialsError: FINNHUB_API_KEY is not set
    """
    settings = settings or get_settings()
    key = _require_key(settings, "finnhub_api_key", "FINNHUB_API_KEY")
    logger.debug("Creating FinnhubClient")
    return FinnhubClient(api_key=key, backoff=backoff_policy(settings))


def create_massive_client(settings: Settings | None = None) -> MassiveClient:
    """Create a Massive client.

    Raises:
        MissingCredentialsError: MASSIVE_API_KEY is not set
    """
    settings = settings or get_settings()
    key = _require_key(settings, "massive_api_key", "MASSIVE_API_KEY")
    logger.debug("Creating MassiveClient")
    return MassiveClient(api_key=key, backoff=backoff_policy(settings))


def configured_optional_providers(settings: Settings | None = None) -> list[DataSource]:
    """Live-API providers whose credentials are present."""
    settings = settings or get_settings()
    configured: list[DataSource] = []
    if settings.twelve_data_api_key:
        configured.append(DataSource.twelve_data)
    if settings.finnhub_api_key:
        configured.append(DataSource.finnhub)
    if settings.massive_api_key:
        configured.append(DataSource.massive)
    return configured


def create_optional_providers(settings: Settings | None = None) -> list[DailyHistoryProvider]:
    """Clients for every configured live-API daily-history provider."""
    settings = settings or get_settings()
    factories = {
        DataSource.twelve_data: create_twelve_data_client,
        DataSource.finnhub: create_finnhub_client,
        DataSource.massive: create_massive_client,
    }
    return [factories[source](settings) for source in configured_optional_providers(settings)]
