"""Totals for a set of transactions."""
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable

from mpesa_ledger.parser.models import ParsedTransaction


@dataclass
class TransactionSummary:
    count: int = 0
    total_amount: Decimal = Decimal(0)
    by_type: Dict[str, Decimal] = field(default_factory=dict)
    count_by_type: Dict[str, int] = field(default_factory=dict)


def summarize(transactions: Iterable[ParsedTransaction]) -> TransactionSummary:
    """Count and sum transactions, overall and per transaction type."""
    totals = defaultdict(Decimal)
    counts = Counter()
    total = Decimal(0)
    count = 0

    for transaction in transactions:
        count += 1
        total += transaction.amount
        totals[transaction.transaction_type.value] += transaction.amount
        counts[transaction.transaction_type.value] += 1

    return TransactionSummary(
        count=count,
        total_amount=total,
        by_type=dict(totals),
        count_by_type=dict(counts)
    )
