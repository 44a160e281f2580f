"""Tests for the source aggregator."""
import threading
import time
import unittest
from datetime import datetime

from mpesa_ledger.parser.models import RawMessage
from mpesa_ledger.sources.aggregator import SourceAggregator, merge_messages
from mpesa_ledger.sources.inbox import MessageSource, StaticSource
from mpesa_ledger.utils.exceptions import SourceError


class FailingSource(MessageSource):
    def __init__(self, name):
        self.name = name

    def fetch(self):
        raise SourceError(f"{self.name} is unavailable")


class BlockingSource(MessageSource):
    def __init__(self, name, release: threading.Event):
        self.name = name
        self.release = release

    def fetch(self):
        self.release.wait(5)
        return [RawMessage("late Confirmed", datetime(2025, 4, 12))]


class SlowSource(MessageSource):
    def __init__(self, name, delay, message):
        self.name = name
        self.delay = delay
        self.message = message

    def fetch(self):
        time.sleep(self.delay)
        return [self.message]


class TestSourceAggregator(unittest.TestCase):
    """Test SourceAggregator functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.older = RawMessage("A Confirmed", datetime(2025, 4, 9, 10, 0), "MPESA")
        self.newer = RawMessage("B Confirmed", datetime(2025, 4, 11, 14, 37), "MPESA")
        self.newest = RawMessage("C Confirmed", datetime(2025, 4, 11, 15, 0), "MPKWA")

    def test_duplicate_across_sources_kept_once(self):
        """Test that overlapping retrievals yield one copy."""
        same_message_other_address = RawMessage(self.newer.body, self.newer.timestamp, "keyword")
        aggregator = SourceAggregator([
            StaticSource("address:MPESA", [self.newer, self.older]),
            StaticSource("body:keywords", [same_message_other_address]),
        ])
        result = aggregator.collect()

        self.assertEqual(result.messages, [self.newer, self.older])
        self.assertEqual(result.duplicates_removed, 1)
        self.assertEqual(result.failed_sources, [])

    def test_sorted_newest_first(self):
        """Test ordering of the merged sequence."""
        result = SourceAggregator([
            StaticSource("one", [self.older]),
            StaticSource("two", [self.newest, self.newer]),
        ]).collect()

        self.assertEqual(result.messages, [self.newest, self.newer, self.older])

    def test_same_body_different_time_kept(self):
        """Test that a repeated body at another time is a distinct message."""
        repeat = RawMessage(self.older.body, datetime(2025, 4, 10, 10, 0))
        result = SourceAggregator([StaticSource("one", [self.older, repeat])]).collect()
        self.assertEqual(len(result.messages), 2)

    def test_failed_source_contributes_nothing(self):
        """Test that one failure does not affect the others."""
        result = SourceAggregator([
            FailingSource("broken"),
            StaticSource("ok", [self.newer]),
        ]).collect()

        self.assertEqual(result.messages, [self.newer])
        self.assertEqual(result.failed_sources, ["broken"])

    def test_timed_out_source_contributes_nothing(self):
        """Test the aggregation timeout."""
        release = threading.Event()
        try:
            result = SourceAggregator(
                [BlockingSource("slow", release), StaticSource("fast", [self.older])],
                timeout=0.2
            ).collect()
        finally:
            release.set()

        self.assertEqual(result.messages, [self.older])
        self.assertEqual(result.failed_sources, ["slow"])

    def test_queued_source_gets_its_own_timeout(self):
        """Test that waiting for a free worker does not use up a source's timeout."""
        result = SourceAggregator(
            [SlowSource("first", 0.4, self.older), SlowSource("second", 0.4, self.newer)],
            timeout=0.6,
            max_workers=1
        ).collect()

        self.assertEqual(result.failed_sources, [])
        self.assertEqual(result.messages, [self.newer, self.older])

    def test_stuck_worker_bounds_queued_sources(self):
        """Test that a queued source behind a stuck one times out instead of hanging."""
        release = threading.Event()
        try:
            started = time.monotonic()
            result = SourceAggregator(
                [BlockingSource("stuck", release), StaticSource("queued", [self.older])],
                timeout=0.2,
                max_workers=1
            ).collect()
            elapsed = time.monotonic() - started
        finally:
            release.set()

        self.assertEqual(result.failed_sources, ["stuck", "queued"])
        self.assertEqual(result.messages, [])
        self.assertLess(elapsed, 2.0)

    def test_no_sources(self):
        """Test aggregation without sources."""
        result = SourceAggregator([]).collect()
        self.assertEqual(result.messages, [])

    def test_merge_messages_stable(self):
        """Test that equal timestamps keep batch order."""
        moment = datetime(2025, 4, 1)
        first = RawMessage("first", moment)
        second = RawMessage("second", moment)
        self.assertEqual(merge_messages([[first], [second, first]]), [first, second])


if __name__ == "__main__":
    unittest.main()
