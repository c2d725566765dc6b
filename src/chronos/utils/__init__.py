"""Utilities module for the Chronos analysis service."""

from chronos.utils.errors import (
    ChronosError,
    ValidationError,
    ConfigurationError,
    GatewayError,
    ParseError,
    PipelineError,
)
from chronos.utils.logging import setup_logging, StructuredLogger
from chronos.utils.formatting import format_bold

__all__ = [
    "ChronosError",
    "ValidationError",
    "ConfigurationError",
    "GatewayError",
    "ParseError",
    "PipelineError",
    "setup_logging",
    "StructuredLogger",
    "format_bold",
]
