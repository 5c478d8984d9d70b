"""Finnhub provider for candles and quotes."""

from pennytrace.providers.finnhub.client import FinnhubClient

__all__ = ["FinnhubClient"]
