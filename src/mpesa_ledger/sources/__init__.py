"""Message source module."""
from .models import SmsQuery
from .inbox import (
    MessageSource,
    StaticSource,
    JsonlInboxSource,
    CallbackSource,
    default_queries,
    default_inbox_sources,
)
from .aggregator import SourceAggregator, AggregationResult, merge_messages

__all__ = [
    "SmsQuery",
    "MessageSource",
    "StaticSource",
    "JsonlInboxSource",
    "CallbackSource",
    "default_queries",
    "default_inbox_sources",
    "SourceAggregator",
    "AggregationResult",
    "merge_messages",
]
