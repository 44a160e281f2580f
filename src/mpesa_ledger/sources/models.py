"""Data models for message sources."""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Android SMS "type" column values.
SMS_TYPE_BOXES = {
    1: "inbox",
    2: "sent",
    3: "draft",
    4: "outbox",
    5: "failed",
    6: "queued",
}


@dataclass
class SmsQuery:
    """Inbox filter: one logical retrieval against a message store."""
    box: str = "inbox"
    address: Optional[str] = None
    body_regex: Optional[str] = None
    index_from: int = 0
    max_count: Optional[int] = None
    _compiled: Optional[re.Pattern] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.body_regex:
            self._compiled = re.compile(self.body_regex)

    @property
    def label(self) -> str:
        """Short description used as the source name."""
        if self.address:
            return f"address:{self.address}"
        if self.body_regex:
            return f"body:{self.body_regex}"
        return f"box:{self.box}"

    def to_filter(self) -> Dict[str, Any]:
        """Serializable filter in the shape inbox APIs expect."""
        filter_dict: Dict[str, Any] = {"box": self.box, "indexFrom": self.index_from}
        if self.address:
            filter_dict["address"] = self.address
        if self.body_regex:
            filter_dict["bodyRegex"] = self.body_regex
        if self.max_count is not None:
            filter_dict["maxCount"] = self.max_count
        return filter_dict

    def matches(self, record: Dict[str, Any]) -> bool:
        """Check one inbox record against box, address and body filters."""
        if self._record_box(record) != self.box:
            return False
        if self.address and str(record.get("address", "")).lower() != self.address.lower():
            return False
        if self._compiled and not self._compiled.search(str(record.get("body", ""))):
            return False
        return True

    def apply(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Filter records, then apply the index window."""
        selected = [record for record in records if self.matches(record)]
        end = None if self.max_count is None else self.index_from + self.max_count
        return selected[self.index_from:end]

    @staticmethod
    def _record_box(record: Dict[str, Any]) -> str:
        if record.get("box"):
            return str(record["box"]).lower()
        sms_type = record.get("type")
        if sms_type is None:
            return "inbox"
        try:
            return SMS_TYPE_BOXES.get(int(sms_type), "inbox")
        except (TypeError, ValueError):
            return "inbox"
