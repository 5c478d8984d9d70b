"""Core utilities: logging, exceptions, rate limiting, dates."""

from pennytrace.core.exceptions import PennyTraceError
from pennytrace.core.logging import get_logger, setup_logging, stage_context

__all__ = [
    "PennyTraceError",
    "get_logger",
    "setup_logging",
    "stage_context",
]
