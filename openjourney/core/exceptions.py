"""
Openjourney Custom Exceptions

Failure taxonomy shared by the provider gateway, the poller and the
generation workflows. Every error carries a FailureKind so callers can
decide how to present it (credential prompt vs. dismissible notification).
"""

from enum import Enum
from typing import Optional


class FailureKind(str, Enum):
    """Kinds of failure a generation can end with."""
    MISSING_CREDENTIALS = "MissingCredentials"
    INVALID_INPUT = "InvalidInput"
    PROVIDER_ERROR = "ProviderError"
    NO_CONTENT_GENERATED = "NoContentGenerated"
    GENERATION_TIMEOUT = "GenerationTimeout"
    UNSUPPORTED_SOURCE = "UnsupportedSource"
    CANCELLED = "Cancelled"
    CONFIGURATION = "Configuration"


# Any provider message mentioning this is treated as a credentials problem
CREDENTIALS_MARKER = "API key"


class OpenjourneyError(Exception):
    """Base exception for all Openjourney errors."""

    kind: FailureKind = FailureKind.PROVIDER_ERROR

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    @property
    def requires_credentials(self) -> bool:
        """True when the user should be asked to (re-)enter an API key."""
        if self.kind == FailureKind.MISSING_CREDENTIALS:
            return True
        return CREDENTIALS_MARKER.lower() in self.message.lower()


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(OpenjourneyError):
    """Raised when there's an issue with configuration."""
    kind = FailureKind.CONFIGURATION


class InvalidConfigError(ConfigurationError):
    """Raised when a configuration value is invalid."""
    pass


# =============================================================================
# GENERATION ERRORS
# =============================================================================

class MissingCredentialsError(OpenjourneyError):
    """Raised when no API key could be resolved for a provider."""
    kind = FailureKind.MISSING_CREDENTIALS

    def __init__(self, provider: str):
        message = f"No API key provided for {provider}. Please add your API key in the settings."
        super().__init__(message, {"provider": provider})
        self.provider = provider


class InvalidInputError(OpenjourneyError):
    """Raised for an empty prompt, a missing required image and similar caller errors."""
    kind = FailureKind.INVALID_INPUT


class ProviderError(OpenjourneyError):
    """Raised when the remote service rejected or failed the request."""
    kind = FailureKind.PROVIDER_ERROR

    def __init__(self, provider: str, reason: str, status_code: Optional[int] = None):
        details = {"provider": provider}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(reason, details)
        self.provider = provider
        self.status_code = status_code


class NoContentGeneratedError(OpenjourneyError):
    """Raised when a batch produced zero usable results."""
    kind = FailureKind.NO_CONTENT_GENERATED

    def __init__(self, requested: int, reason: str = None):
        message = f"No content was generated (0 of {requested} requested)"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {"requested": requested})
        self.requested = requested


class GenerationTimeoutError(OpenjourneyError):
    """Raised when polling a long-running operation exceeded its bound."""
    kind = FailureKind.GENERATION_TIMEOUT

    def __init__(self, attempts: int, interval: float):
        message = (
            f"Video generation timed out after {attempts} status checks; "
            f"it may still be processing"
        )
        super().__init__(message, {"attempts": attempts, "interval": interval})
        self.attempts = attempts


class UnsupportedSourceError(OpenjourneyError):
    """Raised when an operation needs raw image bytes the source item lacks."""
    kind = FailureKind.UNSUPPORTED_SOURCE


class GenerationCancelledError(OpenjourneyError):
    """Raised when an in-flight generation was cancelled before finishing."""
    kind = FailureKind.CANCELLED


class PollerStateError(OpenjourneyError):
    """Raised when a finished poller is asked to run again."""
    kind = FailureKind.INVALID_INPUT
