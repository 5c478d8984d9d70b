"""Massive (Polygon-compatible) provider for daily aggregates."""

from pennytrace.providers.massive.client import MassiveClient

__all__ = ["MassiveClient"]
