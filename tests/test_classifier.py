"""Tests for the keyword classifier."""
import unittest

from mpesa_ledger.parser.classifier import MessageClassifier, is_relevant


class TestMessageClassifier(unittest.TestCase):
    """Test MessageClassifier functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.classifier = MessageClassifier()

    def test_confirmation_is_relevant(self):
        """Test a standard confirmation message."""
        body = "TDB2BU7T7S Confirmed. Ksh100 sent to JOHN DOE 0722000000 on 1/4/25 at 9:00 AM."
        self.assertTrue(self.classifier.is_relevant(body))

    def test_keyword_match_is_case_insensitive(self):
        """Test that keyword matching ignores case."""
        self.assertTrue(self.classifier.is_relevant("you have RECEIVED FROM jane"))
        self.assertTrue(self.classifier.is_relevant("Pay via PayBill 400200"))
        self.assertTrue(self.classifier.is_relevant("mpkwa2c confirmed"))

    def test_unrelated_message_is_rejected(self):
        """Test that text without keywords is not relevant."""
        self.assertFalse(self.classifier.is_relevant("Hi, see you at lunch tomorrow?"))

    def test_empty_body_is_rejected(self):
        """Test empty and missing bodies."""
        self.assertFalse(self.classifier.is_relevant(""))
        self.assertFalse(self.classifier.is_relevant(None))

    def test_custom_keywords(self):
        """Test a classifier built from configured keywords."""
        classifier = MessageClassifier(["Airtel Money"])
        self.assertTrue(classifier.is_relevant("AIRTEL MONEY: you received 50"))
        self.assertFalse(classifier.is_relevant("MPESA confirmed"))

    def test_module_level_helper(self):
        """Test the default module-level classifier."""
        self.assertTrue(is_relevant("Buy Goods till 12345"))
        self.assertFalse(is_relevant("hello"))


if __name__ == "__main__":
    unittest.main()
