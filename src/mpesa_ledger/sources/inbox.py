"""Message sources: where raw messages come from."""
import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from mpesa_ledger.parser.models import RawMessage
from mpesa_ledger.utils.exceptions import RetryableSourceError, SourceError, ValidationError
from mpesa_ledger.utils.logger import get_logger
from mpesa_ledger.utils.retry import RetryPolicy
from .models import SmsQuery

logger = get_logger()


def records_to_messages(records: Iterable[Dict[str, Any]], source_name: str) -> List[RawMessage]:
    """Convert inbox records, skipping ones without a usable body or date."""
    messages = []
    for record in records:
        try:
            messages.append(RawMessage.from_record(record))
        except ValidationError as e:
            logger.warning(f"Skipping record from {source_name}: {e}")
    return messages


class MessageSource(ABC):
    """One independent retrieval of raw messages."""

    name: str = "source"

    @abstractmethod
    def fetch(self) -> List[RawMessage]:
        """Return the messages of this source or raise SourceError."""
        pass


class StaticSource(MessageSource):
    """Messages held in memory, e.g. sample data."""

    def __init__(self, name: str, messages: Iterable[RawMessage]):
        self.name = name
        self.messages = list(messages)

    def fetch(self) -> List[RawMessage]:
        return list(self.messages)


class JsonlInboxSource(MessageSource):
    """
    Reads an exported SMS inbox stored as JSON Lines.

    Each line is a record such as
    {"address": "MPESA", "body": "...", "date": 1712842620000, "type": 1}.
    """

    def __init__(
        self,
        path: Path,
        query: Optional[SmsQuery] = None,
        name: Optional[str] = None,
        retry: Optional[RetryPolicy] = None
    ):
        self.path = Path(path)
        self.query = query or SmsQuery()
        self.name = name or self.query.label
        self.retry = retry or RetryPolicy(retryable_exceptions=(RetryableSourceError,))

    def fetch(self) -> List[RawMessage]:
        records = self.query.apply(self.retry.call(self._read_records, label=self.name))
        messages = records_to_messages(records, self.name)
        logger.info(f"Retrieved {len(messages)} messages from {self.name}")
        return messages

    def _read_records(self) -> List[Dict[str, Any]]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                lines = f.readlines()
        except FileNotFoundError:
            raise SourceError(f"Inbox file not found: {self.path}")
        except OSError as e:
            raise RetryableSourceError(f"Could not read inbox {self.path}: {e}")

        records = []
        for line_number, line in enumerate(lines, 1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping malformed line {line_number} in {self.path.name}: {e}")
                continue
            if isinstance(record, dict):
                records.append(record)
        return records


ListFunction = Callable[[str, Callable[[Any], None], Callable[[int, str], None]], None]


class CallbackSource(MessageSource):
    """
    Adapts a callback-style inbox API to a blocking fetch.

    The API is called as list_fn(filter_json, on_fail, on_success) where
    on_fail receives an error description and on_success receives a count
    and a JSON-serialized list of records. Callbacks may fire on any thread.
    """

    def __init__(
        self,
        list_fn: ListFunction,
        query: Optional[SmsQuery] = None,
        name: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        self.list_fn = list_fn
        self.query = query or SmsQuery()
        self.name = name or self.query.label
        self.timeout = timeout

    def fetch(self) -> List[RawMessage]:
        settled = threading.Event()
        outcome: Dict[str, Any] = {}

        def on_fail(error):
            outcome["error"] = error
            settled.set()

        def on_success(count, sms_list):
            outcome["count"] = count
            outcome["payload"] = sms_list
            settled.set()

        self.list_fn(json.dumps(self.query.to_filter()), on_fail, on_success)

        if not settled.wait(self.timeout):
            raise SourceError(f"{self.name} did not answer within {self.timeout}s")
        if "error" in outcome:
            raise SourceError(f"{self.name} failed: {outcome['error']}")

        try:
            records = json.loads(outcome["payload"])
        except (TypeError, json.JSONDecodeError) as e:
            raise SourceError(f"{self.name} returned an unreadable message list: {e}")
        if not isinstance(records, list):
            raise SourceError(f"{self.name} returned {type(records).__name__}, expected a list")

        logger.info(f"Retrieved {outcome['count']} messages from {self.name}")
        return records_to_messages((r for r in records if isinstance(r, dict)), self.name)


def default_queries(sender_ids: Iterable[str], keyword_regex: str) -> List[SmsQuery]:
    """One query per known sender id plus one broad keyword query."""
    queries = [SmsQuery(address=sender_id) for sender_id in sender_ids]
    queries.append(SmsQuery(body_regex=keyword_regex))
    return queries


def default_inbox_sources(path: Path, settings) -> List[JsonlInboxSource]:
    """Query plan over an exported inbox file."""
    retry = RetryPolicy.from_settings(settings)
    return [
        JsonlInboxSource(path, query, retry=retry)
        for query in default_queries(settings.sender_ids, settings.keyword_regex)
    ]
