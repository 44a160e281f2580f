"""Utility modules."""
from .logger import get_logger, configure_logging, set_source_context
from .exceptions import (
    LedgerError,
    ConfigError,
    SourceError,
    ExtractionError,
    ValidationError,
    RetryableError,
    RetryableSourceError
)
from .retry import RetryPolicy

__all__ = [
    "get_logger",
    "configure_logging",
    "set_source_context",
    "LedgerError",
    "ConfigError",
    "SourceError",
    "ExtractionError",
    "ValidationError",
    "RetryableError",
    "RetryableSourceError",
    "RetryPolicy"
]
