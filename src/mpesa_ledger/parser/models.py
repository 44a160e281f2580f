"""Data models for message parsing."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from mpesa_ledger.utils.exceptions import ValidationError

UNKNOWN = "Unknown"


class TransactionType(str, Enum):
    """Kind of money movement a message describes."""
    RECEIVED = "received"
    SENT = "sent"
    PAID = "paid"
    WITHDRAW = "withdraw"
    GOODS = "goods"
    UNKNOWN = "unknown"


def _naive_local(value: datetime) -> datetime:
    """Aware datetimes are converted to naive local time so all timestamps compare."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def parse_timestamp(value: Any) -> datetime:
    """
    Convert an inbox timestamp to a datetime.

    Args:
        value: Epoch milliseconds (int or numeric string), ISO-8601 string or datetime

    Returns:
        Naive local datetime
    """
    if isinstance(value, datetime):
        return _naive_local(value)
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"Invalid message timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000)
    text = str(value).strip()
    if text.isdigit():
        return datetime.fromtimestamp(int(text) / 1000)
    try:
        return _naive_local(datetime.fromisoformat(text))
    except ValueError:
        raise ValidationError(f"Invalid message timestamp: {value!r}")


@dataclass(frozen=True)
class RawMessage:
    """Message text plus its timestamp, as retrieved from an inbox."""
    body: str
    timestamp: datetime
    # Sender id is informational; it does not take part in equality.
    address: Optional[str] = field(default=None, compare=False)

    @property
    def key(self):
        """Identity used for source-level deduplication."""
        return (self.timestamp, self.body)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "RawMessage":
        """Build from an inbox record such as {"address", "body", "date"}."""
        body = record.get("body")
        if body is None:
            raise ValidationError("Inbox record has no body")
        raw_date = record.get("date", record.get("timestamp"))
        return cls(body=str(body), timestamp=parse_timestamp(raw_date), address=record.get("address"))


@dataclass(frozen=True)
class ParsedTransaction:
    """Structured record extracted from one message."""
    transaction_id: str
    date: datetime
    raw_message: str
    amount: Decimal = Decimal(0)
    sender: str = UNKNOWN
    phone_number: str = UNKNOWN
    account: Optional[str] = None
    balance: Optional[Decimal] = None
    transaction_type: TransactionType = TransactionType.UNKNOWN

    def __post_init__(self):
        if not self.transaction_id:
            raise ValidationError("Transaction id must not be empty")
        if not isinstance(self.date, datetime):
            raise ValidationError(f"Transaction {self.transaction_id} has no date: {self.date!r}")
        if self.amount < 0:
            raise ValidationError(f"Negative amount for {self.transaction_id}: {self.amount}")

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation; decimals are rendered as strings."""
        return {
            "transaction_id": self.transaction_id,
            "amount": str(self.amount),
            "sender": self.sender,
            "phone_number": self.phone_number,
            "account": self.account,
            "balance": None if self.balance is None else str(self.balance),
            "transaction_type": self.transaction_type.value,
            "date": self.date.isoformat(),
            "raw_message": self.raw_message,
        }
