"""Field extractors for M-Pesa confirmation messages.

Every field is read by a PatternChain: an ordered list of rules, each a
(pattern, validator, converter) triple. Rules run most specific first and
the first rule whose pattern matches and whose validator accepts the match
decides the value. Chains are module constants so each one can be exercised
on its own.
"""
import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from re import Match, Pattern
from typing import Any, Callable, Optional, Sequence, Tuple

from .models import TransactionType, UNKNOWN

CURRENCY = r"(?:Ksh|KSh|KES)"
NUMERAL = r"([0-9,]+\.?[0-9]*)"


def _group(match: Match) -> Optional[str]:
    return match.group(1) if match.re.groups else match.group(0)


def _has_group(match: Match) -> bool:
    return bool(_group(match))


def _stripped(match: Match) -> str:
    return _group(match).strip()


def _has_text(match: Match) -> bool:
    return bool(_group(match) and _group(match).strip())


@dataclass(frozen=True)
class Rule:
    """One candidate pattern for a field."""
    name: str
    pattern: Pattern
    convert: Callable[[Match], Any] = _group
    validate: Callable[[Match], bool] = _has_group


class PatternChain:
    """Ordered rules for a single field, first accepted match wins."""

    def __init__(self, name: str, rules: Sequence[Rule], default: Any = None):
        self.name = name
        self.rules: Tuple[Rule, ...] = tuple(rules)
        self.default = default

    def first_match(self, body: str) -> Optional[Tuple[Rule, Any]]:
        """
        Find the winning rule for a body.

        Args:
            body: Message text

        Returns:
            (rule, converted value) or None when no rule accepts the body
        """
        for rule in self.rules:
            match = rule.pattern.search(body)
            if match is None or not rule.validate(match):
                continue
            return rule, rule.convert(match)
        return None

    def extract(self, body: str) -> Any:
        """Return the winning value or the chain default."""
        found = self.first_match(body)
        if found is None:
            return self.default
        return found[1]

    def __repr__(self):
        return f"PatternChain({self.name!r}, {len(self.rules)} rules)"


# --- Numerals ---

def parse_decimal(text: Optional[str]) -> Optional[Decimal]:
    """Parse a locale-formatted numeral such as "5,000.50" exactly."""
    if not text:
        return None
    cleaned = text.replace(",", "")
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def _decimal_group(match: Match) -> Optional[Decimal]:
    return parse_decimal(match.group(1))


def _valid_decimal(match: Match) -> bool:
    return _decimal_group(match) is not None


# --- Transaction id ---

def _long_enough_id(match: Match) -> bool:
    return bool(match.group(1)) and len(match.group(1)) >= 8


TRANSACTION_ID = PatternChain("transaction_id", [
    Rule("confirmed_prefix", re.compile(r"^([A-Z0-9]{10})\s+Confirmed", re.I), validate=_long_enough_id),
    Rule("leading_token", re.compile(r"^([A-Z0-9]{8,12})\s+"), validate=_long_enough_id),
    Rule("labelled_code", re.compile(
        r"(?:transaction|confirmation|reference)\s+(?:code|id)?\s*[:#]?\s*([A-Z0-9]{8,12})", re.I
    ), validate=_long_enough_id),
    Rule("receipt_number", re.compile(
        r"(?:receipt|confirmation)\s+(?:no|number|code)?\s*[:#]?\s*([A-Z0-9]{8,12})", re.I
    ), validate=_long_enough_id),
    Rule("ten_char_token", re.compile(r"([A-Z0-9]{10})"), validate=_long_enough_id),
    Rule("letter_led_token", re.compile(r"([A-Z][A-Z0-9]{7,11})"), validate=_long_enough_id),
])


def synthesize_transaction_id(body: str, date: datetime) -> str:
    """
    Deterministic fallback id for messages without a readable code.

    The key is "GEN", the date as yyyyMMddHHmm and the body length in hex,
    cut to 10 characters. Equal (body, date) pairs always yield the same
    key; unrelated messages from the same period can collide.
    """
    date_part = date.strftime("%Y%m%d%H%M")
    length_part = format(len(body), "x").zfill(4)
    return f"GEN{date_part}{length_part}"[:10]


# --- Date and time ---

TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2})\s*([AP]M)", re.I)


def to_24_hour(hours: int, meridiem: str) -> int:
    """12 AM is hour 0, 12 PM stays 12, PM adds 12 to hours 1-11."""
    meridiem = meridiem.upper()
    if meridiem == "PM" and hours < 12:
        return hours + 12
    if meridiem == "AM" and hours == 12:
        return 0
    return hours


def _message_datetime(match: Match) -> Optional[datetime]:
    """Combine the captured day-first date and 12-hour time."""
    day, month, year = (int(part) for part in match.group(1).split("/"))
    if year < 100:
        year += 2000
    time_parts = TIME_PATTERN.match(match.group(2))
    if not time_parts:
        return None
    hours = to_24_hour(int(time_parts.group(1)), time_parts.group(3))
    minutes = int(time_parts.group(2))
    try:
        return datetime(year, month, day, hours, minutes)
    except ValueError:
        return None


def _valid_datetime(match: Match) -> bool:
    return bool(match.group(1) and match.group(2)) and _message_datetime(match) is not None


DATE_TIME = PatternChain("date", [
    Rule("on_date_at_time", re.compile(
        r"on\s+(\d{1,2}/\d{1,2}/\d{2,4})\s+at\s+(\d{1,2}:\d{2}\s*[AP]M)", re.I
    ), convert=_message_datetime, validate=_valid_datetime),
    Rule("date_label", re.compile(
        r"date:\s*(\d{1,2}/\d{1,2}/\d{2,4})\s+(\d{1,2}:\d{2}\s*[AP]M)", re.I
    ), convert=_message_datetime, validate=_valid_datetime),
])


def extract_date(body: str, fallback: datetime) -> datetime:
    """Date written in the body, else the message timestamp unchanged."""
    found = DATE_TIME.first_match(body)
    return found[1] if found else fallback


# --- Amount ---

AMOUNT = PatternChain("amount", [
    Rule("currency_prefixed", re.compile(CURRENCY + r"\s*" + NUMERAL, re.I),
         convert=_decimal_group, validate=_valid_decimal),
    # "Ksh received" carries no numeral: the amount is known to be zero.
    Rule("ksh_received_without_amount", re.compile(r"Ksh\s+received", re.I),
         convert=lambda match: Decimal(0), validate=lambda match: True),
    Rule("received_amount", re.compile(r"received\s+" + CURRENCY + r"?\s*" + NUMERAL, re.I),
         convert=_decimal_group, validate=_valid_decimal),
    Rule("ksh_no_space", re.compile(r"Ksh" + NUMERAL, re.I),
         convert=_decimal_group, validate=_valid_decimal),
    Rule("amount_before_verb", re.compile(NUMERAL + r"\s+(?:sent|paid|received)", re.I),
         convert=_decimal_group, validate=_valid_decimal),
    Rule("of_amount", re.compile(r"of\s+" + CURRENCY + r"?\s*" + NUMERAL, re.I),
         convert=_decimal_group, validate=_valid_decimal),
], default=Decimal(0))


# --- Sender ---

SENDER = PatternChain("sender", [
    Rule("received_from_name_phone", re.compile(
        r"received\s+from\s+([A-Z][A-Z\s]+)\s+(?:0|254|\+254)", re.I
    ), convert=_stripped, validate=_has_text),
    Rule("from_name_phone", re.compile(r"from\s+([A-Z][A-Z\s]+)\s+(?:0|254|\+254)", re.I),
         convert=_stripped, validate=_has_text),
    Rule("from_name", re.compile(r"from\s+([A-Z][A-Z\s]+)", re.I),
         convert=_stripped, validate=_has_text),
    Rule("received_from_name", re.compile(r"received\s+from\s+([A-Z][A-Z\s]+)", re.I),
         convert=_stripped, validate=_has_text),
], default=UNKNOWN)


# --- Phone number ---

def normalize_phone_number(number: str) -> str:
    """Canonical 254XXXXXXXXX form: 07.. -> 2547.., +254.. -> 254.."""
    number = number.strip()
    if number.startswith("0"):
        return "254" + number[1:]
    if number.startswith("+254"):
        return number[1:]
    return number


def _phone_group(match: Match) -> str:
    return normalize_phone_number(match.group(1))


GENERIC_PHONE_RULES = (
    Rule("from_name_then_254", re.compile(r"from\s+[A-Z][A-Z\s]+\s+(254[0-9]{9})", re.I), convert=_phone_group),
    Rule("bare_254", re.compile(r"(254[0-9]{9})"), convert=_phone_group),
    Rule("plus_254", re.compile(r"(\+254[0-9]{9})"), convert=_phone_group),
    Rule("local_leading_zero", re.compile(r"\b(0[0-9]{9})\b"), convert=_phone_group),
)


def phone_chain(sender: str) -> PatternChain:
    """Phone rules for one message; the first rule anchors on the resolved sender."""
    name_pattern = r"\s+".join(re.escape(token) for token in sender.split())
    rules = list(GENERIC_PHONE_RULES)
    if name_pattern:
        rules.insert(0, Rule(
            "after_sender_name",
            re.compile(name_pattern + r"\s+(254[0-9]{9})"),
            convert=_phone_group
        ))
    return PatternChain("phone_number", rules, default=UNKNOWN)


def extract_phone_number(body: str, sender: str) -> str:
    return phone_chain(sender).extract(body)


# --- Account and balance ---

ACCOUNT = PatternChain("account", [
    Rule("account_number_label", re.compile(
        r"Account\s+Number\s+([A-Za-z0-9\s_-]+?)(?:\s+New|\.|$)", re.I
    ), convert=_stripped, validate=_has_text),
    Rule("account_no", re.compile(r"account\s+(?:number|no|#)?\s*[:#]?\s*([A-Za-z0-9_-]+)", re.I),
         convert=_stripped, validate=_has_text),
    Rule("to_account", re.compile(r"to\s+(?:account|acc)\s+([A-Za-z0-9_-]+)", re.I),
         convert=_stripped, validate=_has_text),
    Rule("account_word", re.compile(r"account\s+([A-Za-z0-9_-]+)", re.I),
         convert=_stripped, validate=_has_text),
])

BALANCE = PatternChain("balance", [
    Rule("balance_is", re.compile(r"balance\s+is\s+" + CURRENCY + r"?\s*" + NUMERAL, re.I),
         convert=_decimal_group, validate=_valid_decimal),
    Rule("new_balance", re.compile(
        r"new\s+(?:utility\s+)?balance\s*(?::|is)?\s*" + CURRENCY + r"?\s*" + NUMERAL, re.I
    ), convert=_decimal_group, validate=_valid_decimal),
    Rule("available_balance", re.compile(
        r"Available\s+balance\s*(?::|is)?\s*" + CURRENCY + r"?\s*" + NUMERAL, re.I
    ), convert=_decimal_group, validate=_valid_decimal),
])


# --- Transaction type ---

# Checked in order; the first keyword present decides.
TYPE_KEYWORDS = (
    ("received", TransactionType.RECEIVED),
    ("sent to", TransactionType.SENT),
    ("paid to", TransactionType.PAID),
    ("withdraw", TransactionType.WITHDRAW),
    ("buy goods", TransactionType.GOODS),
)


def classify_type(body: str) -> TransactionType:
    body_lower = body.lower()
    for keyword, transaction_type in TYPE_KEYWORDS:
        if keyword in body_lower:
            return transaction_type
    return TransactionType.UNKNOWN
