"""pennytrace: multi-provider penny-stock data pipeline."""

__version__ = "0.1.0"
