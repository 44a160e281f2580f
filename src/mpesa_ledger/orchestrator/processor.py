"""End-to-end flow: sources -> aggregator -> builder -> deduplicator.

Building is pure and per message, so it may run on a thread pool; results
are always reassembled in input order because deduplication keeps the
first (newest) copy of each transaction id.
"""
import concurrent.futures
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from mpesa_ledger.config.settings import AppSettings, get_settings
from mpesa_ledger.parser.builder import TransactionBuilder
from mpesa_ledger.parser.classifier import MessageClassifier
from mpesa_ledger.parser.dedup import deduplicate, find_duplicates
from mpesa_ledger.parser.models import ParsedTransaction, RawMessage
from mpesa_ledger.sources.aggregator import SourceAggregator, merge_messages
from mpesa_ledger.sources.inbox import MessageSource
from mpesa_ledger.utils.logger import get_logger

logger = get_logger()


@dataclass
class PipelineResult:
    transactions: List[ParsedTransaction] = field(default_factory=list)
    messages_collected: int = 0
    messages_rejected: int = 0
    duplicates_dropped: int = 0
    failed_sources: List[str] = field(default_factory=list)


class LedgerPipeline:
    """Orchestrates the flow: Sources -> Builder -> Deduplicator."""

    def __init__(
        self,
        sources: Sequence[MessageSource],
        builder: Optional[TransactionBuilder] = None,
        settings: Optional[AppSettings] = None,
        build_workers: int = 1
    ):
        self.settings = settings or get_settings()
        self.sources = list(sources)
        self.builder = builder or TransactionBuilder(MessageClassifier(self.settings.classifier_keywords))
        self.build_workers = build_workers

    def run(self) -> PipelineResult:
        """Collect from every source, then build and deduplicate."""
        aggregator = SourceAggregator(
            self.sources,
            timeout=self.settings.source_timeout_seconds,
            max_workers=self.settings.source_max_workers
        )
        aggregation = aggregator.collect()

        result = self._process(aggregation.messages)
        result.failed_sources = list(aggregation.failed_sources)
        return result

    def process_messages(self, messages: Sequence[RawMessage]) -> PipelineResult:
        """Build and deduplicate an already collected batch."""
        return self._process(merge_messages([messages]))

    def _process(self, messages: List[RawMessage]) -> PipelineResult:
        built = self._build(messages)
        candidates = [transaction for transaction in built if transaction is not None]
        transactions = deduplicate(candidates)
        for transaction_id, dropped in find_duplicates(candidates).items():
            logger.debug(f"Dropped {dropped} older copies of transaction {transaction_id}")

        result = PipelineResult(
            transactions=transactions,
            messages_collected=len(messages),
            messages_rejected=len(messages) - len(candidates),
            duplicates_dropped=len(candidates) - len(transactions)
        )
        logger.info(
            f"Parsed {len(transactions)} unique transactions from {len(messages)} messages "
            f"({result.messages_rejected} rejected, {result.duplicates_dropped} duplicates)"
        )
        return result

    def _build(self, messages: List[RawMessage]) -> List[Optional[ParsedTransaction]]:
        if self.build_workers <= 1 or len(messages) < 2:
            return [self.builder.build_message(message) for message in messages]

        # executor.map yields results in input order.
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.build_workers) as executor:
            return list(executor.map(self.builder.build_message, messages))
