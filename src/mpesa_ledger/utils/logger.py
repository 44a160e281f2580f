"""Logging infrastructure with message-source context."""
import logging
import os
import sys
import threading
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional


def default_home() -> Path:
    """Return the per-user data directory."""
    home = os.getenv("MPESA_LEDGER_HOME")
    if home:
        return Path(home)
    return Path.home() / ".mpesa_ledger"


class SourceContextFilter(logging.Filter):
    """Add the current message source to log records.

    The source name is thread-local: the aggregator fetches every source
    on its own worker thread and each worker tags its own lines.
    """

    def __init__(self):
        super().__init__()
        self._local = threading.local()

    @property
    def source(self) -> Optional[str]:
        return getattr(self._local, "source", None)

    @source.setter
    def source(self, value: Optional[str]):
        self._local.source = value

    def filter(self, record):
        """Add source to record."""
        record.source = self.source or "pipeline"
        return True


class LedgerLogger:
    """Centralized logging manager."""

    def __init__(
        self,
        log_level: str = "INFO",
        log_dir: Optional[Path] = None,
        max_file_size_mb: int = 10,
        backup_count: int = 30
    ):
        self.log_dir = Path(log_dir) if log_dir else default_home() / "logs"
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file = self.log_dir / "ledger.log"
        self.source_filter = SourceContextFilter()

        self.logger = logging.getLogger("mpesa_ledger")
        self.logger.setLevel(getattr(logging, log_level.upper()))
        self.logger.propagate = False

        # Remove existing handlers
        self.logger.handlers.clear()

        file_handler = RotatingFileHandler(
            self.log_file,
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)

        # stdout is reserved for command output
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.INFO)

        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] [source:%(source)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

        file_handler.setFormatter(formatter)
        console_handler.setFormatter(formatter)

        file_handler.addFilter(self.source_filter)
        console_handler.addFilter(self.source_filter)

        self.logger.addHandler(file_handler)
        self.logger.addHandler(console_handler)

    def set_source_context(self, source: Optional[str]):
        """Set the message source for log lines on the current thread."""
        self.source_filter.source = source

    def get_logger(self) -> logging.Logger:
        """Get the configured logger."""
        return self.logger


# Global logger instance
_logger_instance: Optional[LedgerLogger] = None


def get_logger(log_level: str = "INFO") -> logging.Logger:
    """Get or create global logger instance."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = LedgerLogger(log_level)
    return _logger_instance.get_logger()


def configure_logging(
    log_level: str,
    log_dir: Optional[Path] = None,
    max_file_size_mb: int = 10,
    backup_count: int = 30
) -> logging.Logger:
    """Rebuild the global logger from settings."""
    global _logger_instance
    _logger_instance = LedgerLogger(log_level, log_dir, max_file_size_mb, backup_count)
    return _logger_instance.get_logger()


def set_source_context(source: Optional[str]):
    """Set source context for logging."""
    if _logger_instance:
        _logger_instance.set_source_context(source)
