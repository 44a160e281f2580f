"""Retry policy with exponential backoff for message sources."""
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Tuple, Type

from .exceptions import RetryableError, RetryableSourceError
from .logger import get_logger

logger = get_logger()


@dataclass(frozen=True)
class RetryPolicy:
    """
    How often and how patiently a source read is retried.

    Attempt n (counting from 0) that fails with a retryable error waits
    backoff_factor ** n seconds before the next attempt; the error from the
    last attempt propagates.
    """
    max_retries: int = 3
    backoff_factor: float = 2.0
    retryable_exceptions: Tuple[Type[Exception], ...] = (RetryableError,)

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")

    @classmethod
    def from_settings(cls, settings, retryable_exceptions=None) -> "RetryPolicy":
        """Policy from AppSettings; source reads retry RetryableSourceError by default."""
        return cls(
            max_retries=settings.retry_max_retries,
            backoff_factor=settings.retry_backoff_factor,
            retryable_exceptions=retryable_exceptions or (RetryableSourceError,)
        )

    def delays(self) -> Iterator[float]:
        """Waits between consecutive attempts."""
        for attempt in range(self.max_retries - 1):
            yield self.backoff_factor ** attempt

    def call(self, func: Callable, *args, label: str = None, **kwargs):
        """Call func, retrying on retryable errors."""
        label = label or getattr(func, "__name__", repr(func))
        waits = self.delays()
        attempt = 0
        while True:
            attempt += 1
            try:
                return func(*args, **kwargs)
            except self.retryable_exceptions as e:
                wait_time = next(waits, None)
                if wait_time is None:
                    logger.error(f"Giving up on {label} after {attempt} attempts: {e}")
                    raise
                logger.warning(
                    f"Attempt {attempt}/{self.max_retries} for {label} failed, "
                    f"retrying in {wait_time:.1f}s: {e}"
                )
                time.sleep(wait_time)
