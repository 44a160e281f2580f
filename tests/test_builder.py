"""Tests for the transaction builder."""
import unittest
from datetime import datetime
from decimal import Decimal
from unittest.mock import patch

from mpesa_ledger.parser.builder import TransactionBuilder, parse_message
from mpesa_ledger.parser.classifier import MessageClassifier
from mpesa_ledger.parser.models import RawMessage, TransactionType

WYCLIFFE_MESSAGE = (
    "TDB2BU7T7S Confirmed. on 11/4/25 at 2:37 PM Ksh received from WYCLIFFE TAI "
    "254721918757. Account Number Building New Utility balance is Ksh00."
)
JOHN_MESSAGE = (
    "MPKWA2C confirmed. Ksh5,000 received from JOHN DOE 254722000000 on 9/4/25 at 10:30 AM. "
    "Account Number Building New utility balance is Ksh12,345. Transaction cost, Ksh0.00."
)


class TestTransactionBuilder(unittest.TestCase):
    """Test TransactionBuilder functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.builder = TransactionBuilder()
        self.timestamp = datetime(2024, 4, 11, 14, 37)

    def test_zero_amount_receipt(self):
        """Test every field of a "Ksh received" confirmation."""
        transaction = self.builder.build(WYCLIFFE_MESSAGE, self.timestamp)

        self.assertEqual(transaction.transaction_id, "TDB2BU7T7S")
        self.assertEqual(transaction.amount, Decimal(0))
        self.assertEqual(transaction.sender, "WYCLIFFE TAI")
        self.assertEqual(transaction.phone_number, "254721918757")
        self.assertEqual(transaction.account, "Building")
        self.assertEqual(transaction.balance, Decimal(0))
        self.assertEqual(transaction.transaction_type, TransactionType.RECEIVED)
        # Text date wins over the message timestamp
        self.assertEqual(transaction.date, datetime(2025, 4, 11, 14, 37))
        self.assertEqual(transaction.raw_message, WYCLIFFE_MESSAGE)

    def test_comma_amount(self):
        """Test an amount with a grouping comma."""
        transaction = self.builder.build(JOHN_MESSAGE, self.timestamp)

        self.assertEqual(transaction.amount, Decimal("5000"))
        self.assertEqual(transaction.transaction_type, TransactionType.RECEIVED)
        self.assertEqual(transaction.sender, "JOHN DOE")
        self.assertEqual(transaction.phone_number, "254722000000")
        self.assertEqual(transaction.account, "Building")
        self.assertEqual(transaction.balance, Decimal("12345"))
        self.assertEqual(transaction.date, datetime(2025, 4, 9, 10, 30))

    def test_irrelevant_message_is_rejected(self):
        """Test that extraction never runs for unrelated text."""
        with patch.object(self.builder, "_extract") as extract:
            self.assertIsNone(self.builder.build("Hi, see you at lunch", self.timestamp))
            extract.assert_not_called()

    def test_empty_body_is_rejected(self):
        """Test empty and missing bodies."""
        self.assertIsNone(self.builder.build("", self.timestamp))
        self.assertIsNone(self.builder.build(None, self.timestamp))

    def test_generated_id(self):
        """Test id synthesis for a message without a code."""
        body = "Payment confirmed, thank you"
        first = self.builder.build(body, self.timestamp)
        second = self.builder.build(body, self.timestamp)

        self.assertTrue(first.transaction_id.startswith("GEN"))
        self.assertEqual(len(first.transaction_id), 10)
        self.assertEqual(first.transaction_id, second.transaction_id)
        self.assertEqual(first.date, self.timestamp)

    def test_missing_fields_use_defaults(self):
        """Test defaults for fields the body does not carry."""
        transaction = self.builder.build("Payment confirmed, thank you", self.timestamp)

        self.assertEqual(transaction.amount, Decimal(0))
        self.assertEqual(transaction.sender, "Unknown")
        self.assertEqual(transaction.phone_number, "Unknown")
        self.assertIsNone(transaction.account)
        self.assertIsNone(transaction.balance)
        self.assertEqual(transaction.transaction_type, TransactionType.UNKNOWN)

    def test_missing_timestamp_without_id(self):
        """Test that a generated id falls back to the current time."""
        before = datetime.now()
        transaction = self.builder.build("Payment confirmed, paid to shop", None)
        after = datetime.now()

        self.assertIsNotNone(transaction)
        self.assertTrue(before <= transaction.date <= after)
        self.assertTrue(transaction.transaction_id.startswith("GEN"))

    def test_missing_timestamp_with_id(self):
        """Test that a record always carries a concrete date."""
        before = datetime.now()
        transaction = self.builder.build("QK12ABC345 Confirmed. Ksh100 sent to JOHN", None)

        self.assertEqual(transaction.transaction_id, "QK12ABC345")
        self.assertIsInstance(transaction.date, datetime)
        self.assertGreaterEqual(transaction.date, before)

    def test_missing_timestamp_keeps_text_date(self):
        """Test that a date in the body does not need a timestamp."""
        transaction = self.builder.build(WYCLIFFE_MESSAGE, None)
        self.assertEqual(transaction.date, datetime(2025, 4, 11, 14, 37))

    def test_id_synthesis_error_returns_none(self):
        """Test that a failing id fallback is absorbed."""
        with patch("mpesa_ledger.parser.builder.synthesize_transaction_id") as synthesize:
            synthesize.side_effect = AttributeError("no date")
            self.assertIsNone(self.builder.build("Payment confirmed, thank you", self.timestamp))

    def test_extraction_error_returns_none(self):
        """Test that an exception inside an extractor is absorbed."""
        with patch("mpesa_ledger.parser.builder.AMOUNT") as amount:
            amount.extract.side_effect = RuntimeError("boom")
            self.assertIsNone(self.builder.build(WYCLIFFE_MESSAGE, self.timestamp))

    def test_build_all_keeps_order(self):
        """Test batch building drops rejects and keeps order."""
        messages = [
            RawMessage(JOHN_MESSAGE, datetime(2025, 4, 9, 10, 31)),
            RawMessage("lunch?", datetime(2025, 4, 9, 11, 0)),
            RawMessage(WYCLIFFE_MESSAGE, datetime(2025, 4, 11, 14, 38)),
        ]
        transactions = self.builder.build_all(messages)

        self.assertEqual(
            [transaction.transaction_id for transaction in transactions],
            ["2547220000", "TDB2BU7T7S"]
        )

    def test_custom_classifier(self):
        """Test a builder with configured keywords."""
        builder = TransactionBuilder(MessageClassifier(["nothing matches this"]))
        self.assertIsNone(builder.build(WYCLIFFE_MESSAGE, self.timestamp))

    def test_parse_message(self):
        """Test the module-level helper."""
        transaction = parse_message(WYCLIFFE_MESSAGE, self.timestamp)
        self.assertEqual(transaction.transaction_id, "TDB2BU7T7S")

    def test_to_dict(self):
        """Test the JSON-friendly representation."""
        data = self.builder.build(JOHN_MESSAGE, self.timestamp).to_dict()

        self.assertEqual(data["amount"], "5000")
        self.assertEqual(data["transaction_type"], "received")
        self.assertEqual(data["date"], "2025-04-09T10:30:00")
        self.assertIsNotNone(data["balance"])


if __name__ == "__main__":
    unittest.main()
