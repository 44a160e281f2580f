"""Turns one raw message into a ParsedTransaction, or rejects it."""
from datetime import datetime
from typing import Iterable, List, Optional

from mpesa_ledger.utils.exceptions import ExtractionError, ValidationError
from mpesa_ledger.utils.logger import get_logger
from .classifier import MessageClassifier
from .extractors import (
    ACCOUNT,
    AMOUNT,
    BALANCE,
    SENDER,
    TRANSACTION_ID,
    classify_type,
    extract_date,
    extract_phone_number,
    synthesize_transaction_id,
)
from .models import ParsedTransaction, RawMessage

logger = get_logger()


def _stage(field_name, extractor, *args):
    """Run one extractor; any fault becomes an ExtractionError naming the field."""
    try:
        return extractor(*args)
    except Exception as e:
        raise ExtractionError(f"{field_name} extractor failed: {e.__class__.__name__}: {e}") from e


class TransactionBuilder:
    """Classifies a message and runs the field extractors in a fixed order."""

    def __init__(self, classifier: Optional[MessageClassifier] = None):
        self.classifier = classifier or MessageClassifier()

    def build(self, body: Optional[str], timestamp: Optional[datetime]) -> Optional[ParsedTransaction]:
        """
        Build a transaction from a message body.

        Args:
            body: Message text
            timestamp: When the message was received; used when the body has no date.
                None means now.

        Returns:
            ParsedTransaction, or None when the message is irrelevant or unparseable
        """
        if not body or not self.classifier.is_relevant(body):
            logger.debug("Rejected message without transaction keywords")
            return None

        if timestamp is None:
            timestamp = datetime.now()

        try:
            return self._extract(body, timestamp)
        except (ExtractionError, ValidationError) as e:
            logger.warning(f"Could not parse message ({e}): {body[:60]!r}")
            return None

    def build_message(self, message: RawMessage) -> Optional[ParsedTransaction]:
        return self.build(message.body, message.timestamp)

    def build_all(self, messages: Iterable[RawMessage]) -> List[ParsedTransaction]:
        """Build every message in order, dropping rejects."""
        transactions = []
        for message in messages:
            transaction = self.build_message(message)
            if transaction is not None:
                transactions.append(transaction)
        return transactions

    def _extract(self, body: str, timestamp: datetime) -> ParsedTransaction:
        transaction_id = _stage("transaction_id", TRANSACTION_ID.extract, body)
        date = _stage("date", extract_date, body, timestamp)
        amount = _stage("amount", AMOUNT.extract, body)
        sender = _stage("sender", SENDER.extract, body)
        # Phone rules anchor on the sender, so sender must be resolved first.
        phone_number = _stage("phone_number", extract_phone_number, body, sender)
        account = _stage("account", ACCOUNT.extract, body)
        balance = _stage("balance", BALANCE.extract, body)
        transaction_type = _stage("transaction_type", classify_type, body)

        if not transaction_id:
            transaction_id = _stage("transaction_id", synthesize_transaction_id, body, date)
            logger.debug(f"Generated transaction id {transaction_id}")

        return ParsedTransaction(
            transaction_id=transaction_id,
            date=date,
            raw_message=body,
            amount=amount,
            sender=sender,
            phone_number=phone_number,
            account=account,
            balance=balance,
            transaction_type=transaction_type,
        )


_default_builder = TransactionBuilder()


def parse_message(body: Optional[str], timestamp: datetime) -> Optional[ParsedTransaction]:
    """Parse one message with the default keyword set."""
    return _default_builder.build(body, timestamp)
