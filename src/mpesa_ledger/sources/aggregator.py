"""Merges overlapping message retrievals into one ordered sequence."""
import concurrent.futures
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set

from mpesa_ledger.parser.models import RawMessage
from mpesa_ledger.utils.logger import get_logger, set_source_context
from .inbox import MessageSource

logger = get_logger()


@dataclass
class AggregationResult:
    messages: List[RawMessage]
    failed_sources: List[str] = field(default_factory=list)
    source_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def duplicates_removed(self) -> int:
        return sum(self.source_counts.values()) - len(self.messages)


def merge_messages(batches: Iterable[Iterable[RawMessage]]) -> List[RawMessage]:
    """
    Merge message batches, newest first.

    Messages with the same (timestamp, body) are kept once, first seen
    wins. The final sort is stable, so equal timestamps keep batch order.
    """
    seen = set()
    merged = []
    for batch in batches:
        for message in batch:
            if message.key in seen:
                continue
            seen.add(message.key)
            merged.append(message)
    return sorted(merged, key=lambda message: message.timestamp, reverse=True)


class SourceAggregator:
    """Runs every source concurrently and merges once all have settled."""

    def __init__(
        self,
        sources: Sequence[MessageSource],
        timeout: float = 30.0,
        max_workers: Optional[int] = None
    ):
        self.sources = list(sources)
        self.timeout = timeout
        self.max_workers = max_workers

    def collect(self) -> AggregationResult:
        """
        Fetch all sources and merge their messages.

        A source that raises or does not finish within the timeout adds no
        messages and is listed in failed_sources; the others are unaffected.

        Returns:
            AggregationResult with messages sorted newest first
        """
        if not self.sources:
            logger.warning("No message sources configured")
            return AggregationResult(messages=[])

        workers = min(self.max_workers or len(self.sources), len(self.sources))
        started: Dict[int, float] = {}
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=workers)
        try:
            futures = [
                executor.submit(self._fetch_source, source, index, started)
                for index, source in enumerate(self.sources)
            ]
            # Barrier: nothing is merged until every fetch has settled or timed out.
            timed_out = self._await_settled(futures, started, workers)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        batches = []
        failed_sources = []
        source_counts = {}
        for index, (source, future) in enumerate(zip(self.sources, futures)):
            if index in timed_out:
                logger.warning(f"Source {source.name} timed out after {self.timeout}s")
                failed_sources.append(source.name)
                continue
            try:
                messages = future.result()
            except Exception as e:
                logger.error(f"Failed to fetch messages from {source.name}: {e}")
                failed_sources.append(source.name)
                continue
            source_counts[source.name] = len(messages)
            batches.append(messages)

        merged = merge_messages(batches)
        result = AggregationResult(
            messages=merged,
            failed_sources=failed_sources,
            source_counts=source_counts
        )
        logger.info(
            f"Merged {len(merged)} messages from {len(source_counts)} sources "
            f"({result.duplicates_removed} duplicates removed, {len(failed_sources)} failed)"
        )
        return result

    def _await_settled(
        self,
        futures: List[concurrent.futures.Future],
        started: Dict[int, float],
        workers: int
    ) -> Set[int]:
        """
        Wait until every fetch has finished or used up its own timeout.

        Each source gets the full timeout from the moment a worker picks it
        up. Queued sources wait for a free worker, so the whole wait is
        bounded by one timeout per round of workers.

        Returns:
            Indexes of the sources that timed out
        """
        rounds = -(-len(futures) // workers)
        hard_deadline = time.monotonic() + self.timeout * rounds
        pending = set(range(len(futures)))
        timed_out = set()

        while pending:
            now = time.monotonic()
            pending = {index for index in pending if not futures[index].done()}
            expired = {
                index for index in pending
                if index in started and now - started[index] >= self.timeout
            }
            timed_out |= expired
            pending -= expired
            if not pending:
                break
            if now >= hard_deadline:
                timed_out |= pending
                break

            deadlines = [started[index] + self.timeout for index in pending if index in started]
            wake_at = min(deadlines + [hard_deadline])
            running = [future for future in futures if not future.done()]
            concurrent.futures.wait(
                running,
                timeout=max(wake_at - now, 0),
                return_when=concurrent.futures.FIRST_COMPLETED
            )
        return timed_out

    @staticmethod
    def _fetch_source(source: MessageSource, index: int, started: Dict[int, float]) -> List[RawMessage]:
        """Runs inside a worker thread."""
        started[index] = time.monotonic()
        set_source_context(source.name)
        try:
            return list(source.fetch())
        finally:
            set_source_context(None)
