"""Twelve Data provider for daily and intraday time series."""

from pennytrace.providers.twelve_data.client import TwelveDataClient

__all__ = ["TwelveDataClient"]
