"""Market data providers.

Each provider owns its HTTP client and rate limiter. Remote providers share
the HTTPProviderClient base; the local CSV archive is read synchronously.
"""

from pennytrace.providers.alpha_vantage import AlphaVantageClient
from pennytrace.providers.base import DailyHistoryProvider, HTTPProviderClient
from pennytrace.providers.factory import (
    backoff_policy,
    configured_optional_providers,
    create_alpha_vantage_client,
    create_finnhub_client,
    create_local_cache_reader,
    create_massive_client,
    create_optional_providers,
    create_sec_client,
    create_twelve_data_client,
    create_yahoo_client,
)
from pennytrace.providers.finnhub import FinnhubClient
from pennytrace.providers.local_cache import LocalCacheReader
from pennytrace.providers.massive import MassiveClient
from pennytrace.providers.sec_edgar import SECEdgarClient
from pennytrace.providers.twelve_data import TwelveDataClient
from pennytrace.providers.yahoo import YahooFinanceClient

__all__ = [
    "AlphaVantageClient",
    "DailyHistoryProvider",
    "FinnhubClient",
    "HTTPProviderClient",
    "LocalCacheReader",
    "MassiveClient",
    "SECEdgarClient",
    "TwelveDataClient",
    "YahooFinanceClient",
    "backoff_policy",
    "configured_optional_providers",
    "create_alpha_vantage_client",
    "create_finnhub_client",
    "create_local_cache_reader",
    "create_massive_client",
    "create_optional_providers",
    "create_sec_client",
    "create_twelve_data_client",
    "create_yahoo_client",
]
