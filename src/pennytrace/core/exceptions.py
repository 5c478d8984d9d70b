"""Custom exceptions for pennytrace."""


class PennyTraceError(Exception):
    """Base exception for all pennytrace errors."""

    def __init__(self, message: str, *args: object) -> None:
        self.message = message
        super().__init__(message, *args)


# Provider errors
class ProviderError(PennyTraceError):
    """Base error for provider clients."""

    def __init__(self, message: str, provider: str = "", *args: object) -> None:
        self.provider = provider
        super().__init__(message, *args)


class RateLimitExceededError(ProviderError):
    """Provider kept answering HTTP 429 after every retry attempt."""


class QuotaExhaustedError(ProviderError):
    """Provider daily quota used up. Terminal for the current run."""


class MissingCredentialsError(PennyTraceError, ValueError):
    """A required API key is not configured."""


# Configuration errors
class EntityConfigError(PennyTraceError):
    """Entity configuration document is missing or invalid."""


# Pipeline errors
class PipelineError(PennyTraceError):
    """Base error for pipeline stages."""


class StageInputError(PipelineError):
    """A stage's input directory does not exist (previous stage not run)."""
