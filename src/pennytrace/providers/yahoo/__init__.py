"""Yahoo Finance provider for daily history."""

from pennytrace.providers.yahoo.client import YahooFinanceClient

__all__ = ["YahooFinanceClient"]
