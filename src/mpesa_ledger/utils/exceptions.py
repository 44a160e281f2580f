"""Custom exception classes for M-Pesa Ledger."""


class LedgerError(Exception):
    """Base exception for M-Pesa Ledger."""
    pass


class ConfigError(LedgerError):
    """Configuration-related errors."""
    pass


class SourceError(LedgerError):
    """A message source failed to return its messages."""
    pass


class ExtractionError(LedgerError):
    """Unexpected fault while extracting fields from a message body."""
    pass


class ValidationError(LedgerError):
    """Data validation errors."""
    pass


# Retryable errors
class RetryableError(LedgerError):
    """Base class for errors that should trigger retry."""
    pass


class RetryableSourceError(RetryableError, SourceError):
    """Source errors that can be retried."""
    pass
