"""Record-level deduplication by transaction id."""
from collections import Counter
from typing import Dict, Iterable, List

from .models import ParsedTransaction


def deduplicate(transactions: Iterable[ParsedTransaction]) -> List[ParsedTransaction]:
    """
    Keep the first transaction seen for each id.

    Input is expected newest first, so the newest copy of an id survives.
    Survivors keep their relative order.
    """
    seen = set()
    unique = []
    for transaction in transactions:
        if transaction.transaction_id in seen:
            continue
        seen.add(transaction.transaction_id)
        unique.append(transaction)
    return unique


def find_duplicates(transactions: Iterable[ParsedTransaction]) -> Dict[str, int]:
    """Number of copies deduplicate() would drop, per transaction id."""
    counts = Counter(transaction.transaction_id for transaction in transactions)
    return {transaction_id: count - 1 for transaction_id, count in counts.items() if count > 1}
