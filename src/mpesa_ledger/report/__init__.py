"""Read-only helpers for reporting on parsed transactions."""
from .filters import DateRange, filter_by_date_range, search
from .summary import TransactionSummary, summarize

__all__ = ["DateRange", "filter_by_date_range", "search", "TransactionSummary", "summarize"]
