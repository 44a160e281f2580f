"""Keyword gate deciding whether a message is worth extracting."""
from typing import Iterable, Optional

from mpesa_ledger.config.settings import DEFAULT_CLASSIFIER_KEYWORDS


class MessageClassifier:
    """
    Case-insensitive keyword test over the message body.

    Usage:
        classifier = MessageClassifier()
        classifier.is_relevant("QK12ABC345 Confirmed. Ksh100 sent to ...")
        # Returns: True
    """

    def __init__(self, keywords: Optional[Iterable[str]] = None):
        source = keywords if keywords is not None else DEFAULT_CLASSIFIER_KEYWORDS
        self.keywords = tuple(keyword.lower() for keyword in source if keyword)

    def is_relevant(self, body: Optional[str]) -> bool:
        """True when any keyword occurs in the lower-cased body."""
        if not body:
            return False
        body_lower = body.lower()
        return any(keyword in body_lower for keyword in self.keywords)


_default_classifier = MessageClassifier()


def is_relevant(body: Optional[str]) -> bool:
    return _default_classifier.is_relevant(body)
