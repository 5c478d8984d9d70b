"""Alpha Vantage provider for daily and historical intraday series."""

from pennytrace.providers.alpha_vantage.client import AlphaVantageClient

__all__ = ["AlphaVantageClient"]
