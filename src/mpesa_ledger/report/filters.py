"""Date-range and text filters over parsed transactions."""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List

from mpesa_ledger.parser.models import ParsedTransaction
from mpesa_ledger.utils.exceptions import ValidationError


def _start_of_week(day: date) -> date:
    """Weeks start on Sunday."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar range; the end day counts through its last microsecond."""
    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise ValidationError(f"Date range ends before it starts: {self.start} > {self.end}")

    def contains(self, moment: datetime) -> bool:
        return datetime.combine(self.start, time.min) <= moment <= datetime.combine(self.end, time.max)

    @classmethod
    def this_week(cls, today: date) -> "DateRange":
        start = _start_of_week(today)
        return cls(start, start + timedelta(days=6))

    @classmethod
    def last_week(cls, today: date) -> "DateRange":
        start = _start_of_week(today) - timedelta(days=7)
        return cls(start, start + timedelta(days=6))

    @classmethod
    def this_month(cls, today: date) -> "DateRange":
        start = today.replace(day=1)
        next_month = (start + timedelta(days=32)).replace(day=1)
        return cls(start, next_month - timedelta(days=1))

    def __str__(self):
        return f"{self.start:%b %d, %Y} - {self.end:%b %d, %Y}"


def filter_by_date_range(
    transactions: Iterable[ParsedTransaction],
    date_range: DateRange
) -> List[ParsedTransaction]:
    return [transaction for transaction in transactions if date_range.contains(transaction.date)]


def search(transactions: Iterable[ParsedTransaction], query: str) -> List[ParsedTransaction]:
    """
    Substring search over sender, id, phone, account and amount.

    Text fields are compared case-insensitively; a blank query matches all.
    """
    transactions = list(transactions)
    needle = (query or "").strip().lower()
    if not needle:
        return transactions

    def matches(transaction: ParsedTransaction) -> bool:
        return (
            needle in transaction.sender.lower()
            or needle in transaction.transaction_id.lower()
            or needle in transaction.phone_number
            or (transaction.account is not None and needle in transaction.account.lower())
            or needle in str(transaction.amount)
        )

    return [transaction for transaction in transactions if matches(transaction)]
