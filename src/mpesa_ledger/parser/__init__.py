"""Message parsing module."""
from .models import RawMessage, ParsedTransaction, TransactionType
from .classifier import MessageClassifier, is_relevant
from .builder import TransactionBuilder, parse_message
from .dedup import deduplicate, find_duplicates

__all__ = [
    "RawMessage",
    "ParsedTransaction",
    "TransactionType",
    "MessageClassifier",
    "is_relevant",
    "TransactionBuilder",
    "parse_message",
    "deduplicate",
    "find_duplicates",
]
