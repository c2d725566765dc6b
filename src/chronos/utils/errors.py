"""Custom exception classes for the Chronos analysis service."""

from typing import Optional


class ChronosError(Exception):
    """Base exception for all Chronos errors."""
    pass


class ValidationError(ChronosError):
    """Raised when an artifact or request fails input validation."""
    pass


class ConfigurationError(ChronosError):
    """Raised when configuration is missing or invalid."""
    pass


class GatewayError(ChronosError):
    """
    Raised when the generative backend answers with a non-success status
    or cannot be reached at all.

    Attributes:
        status: Upstream HTTP status, or None for transport failures
        raw_body: Raw upstream response body (or transport error text)
    """

    def __init__(self, message: str, status: Optional[int] = None, raw_body: str = ""):
        super().__init__(message)
        self.status = status
        self.raw_body = raw_body


class ParseError(ChronosError):
    """
    Raised when model output cannot be parsed under a strict contract.

    Attributes:
        raw_text: The offending model output, kept for diagnostics
    """

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class PipelineError(ChronosError):
    """Raised on an illegal pipeline transition or out-of-order request."""
    pass
