"""
Core Module Package.

Infrastructure shared by every other package:

- exceptions: error taxonomy of the extraction pipeline
- config: process-wide settings loaded once at startup
"""

from core.config import MetricLibraryConfig, get_config, set_config
from core.exceptions import (
    AdapterError,
    AdapterErrorKind,
    AdapterNotFoundError,
    ConfigurationError,
    ExtractError,
    ExtractionCancelledError,
    FetchError,
    MetricLibraryError,
    ParseError,
    ValidationError,
)


__all__ = [
    # Config
    "MetricLibraryConfig",
    "get_config",
    "set_config",
    # Exceptions
    "MetricLibraryError",
    "ConfigurationError",
    "ValidationError",
    "AdapterNotFoundError",
    "ExtractionCancelledError",
    "AdapterError",
    "AdapterErrorKind",
    "FetchError",
    "ParseError",
    "ExtractError",
]
