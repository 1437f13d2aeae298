"""
Event Kinds and the Categorized Record.

This module defines the record every capture produces: a two-level
mapping of category name -> field name -> value, plus the identity,
kind, message, timestamps and stack signature of the event.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import date, datetime, time, UTC
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

FieldValue = Union[
    None, str, int, float, bool, datetime, List["FieldValue"], Dict[str, "FieldValue"]
]

USER_CATEGORY = "User"

# Nesting deeper than this is rendered with str() when normalizing
MAX_VALUE_DEPTH = 16


class EventKind(Enum):
    """
    Closed set of event kinds a capture can be tagged with.

    The value is the canonical spelling used in the transport form,
    report header and e-mail subject line.
    """

    ERROR = "Error"
    WARNING = "Warning"
    FATAL = "Fatal"
    INFO = "Info"
    EXCEPTION = "Exception"
    PERF_ISSUE = "PerfIssue"
    INVALID_CODE_PATH = "InvalidCodePath"

    @classmethod
    def parse(cls, value: Union["EventKind", str]) -> "EventKind":
        """
        Resolve a kind from the enum, its value, or a loose spelling.

        ``"perf-issue"``, ``"PERF_ISSUE"`` and ``"PerfIssue"`` all resolve
        to ``EventKind.PERF_ISSUE``.

        Raises:
            ValueError: If the value names no known kind
        """
        if isinstance(value, cls):
            return value
        key = str(value).replace("-", "").replace("_", "").replace(" ", "").lower()
        for kind in cls:
            if kind.value.lower() == key:
                return kind
        raise ValueError(
            f"Unknown event kind '{value}'. Available: {[k.value for k in cls]}"
        )

    def is_error(self) -> bool:
        """Check if this kind reports a failure rather than information."""
        return self in (
            EventKind.ERROR,
            EventKind.FATAL,
            EventKind.EXCEPTION,
            EventKind.INVALID_CODE_PATH,
        )


def _is_blank(name: Optional[str]) -> bool:
    return name is None or not str(name).strip()


class CategorizedRecord:
    """
    Snapshot of program state for one noteworthy event.

    Facts are grouped into named categories ("HttpRequest", "Process",
    "CallStack", ...). Categories are created on first access and the
    same dict instance is returned for the life of the record. Field
    values may be of any type; they are normalized only when the record
    is serialized.

    Example:
        record = CategorizedRecord(EventKind.ERROR, "Disk full")
        record.set("Storage", "FreeBytes", 0)
        record.get("Storage", "FreeBytes")  # 0
        record.get("Storage", "Missing")    # None

    Attributes:
        id: Unique identifier, assigned at creation
        kind: Kind of event
        message: Human-readable summary
        created_at_local: Naive local timestamp taken at creation
        created_at_utc: UTC timestamp taken at creation
        signature: Stack signature, None until capture completes
        categories: Ordered category -> field -> value mapping
    """

    def __init__(
        self,
        kind: Union[EventKind, str],
        message: str = "",
        *,
        id: Optional[str] = None,
        created_at_local: Optional[datetime] = None,
        created_at_utc: Optional[datetime] = None,
        signature: Optional[str] = None,
    ):
        self._id = id or uuid4().hex
        self._kind = EventKind.parse(kind)
        self._message = message
        now_utc = datetime.now(UTC)
        self._created_at_utc = created_at_utc or now_utc
        self._created_at_local = created_at_local or now_utc.astimezone().replace(tzinfo=None)
        self.signature = signature
        self._categories: Dict[str, Dict[str, Any]] = {}

    @property
    def id(self) -> str:
        return self._id

    @property
    def kind(self) -> EventKind:
        return self._kind

    @property
    def message(self) -> str:
        return self._message

    @property
    def created_at_local(self) -> datetime:
        return self._created_at_local

    @property
    def created_at_utc(self) -> datetime:
        return self._created_at_utc

    @property
    def categories(self) -> Dict[str, Dict[str, Any]]:
        return self._categories

    # Fields

    def set(self, category: str, field: str, value: Any) -> None:
        """
        Store a value, creating the category if needed.

        Blank category or field names are ignored silently.
        """
        if _is_blank(category) or _is_blank(field):
            return
        self.get_or_create_category(category)[field] = value

    def get(self, category: str, field: str, default: Any = None) -> Any:
        """
        Look up a stored value.

        Args:
            category: Category name
            field: Field name
            default: Returned when the category or field was never set

        Returns:
            The stored value, or default
        """
        if _is_blank(category) or _is_blank(field):
            return default
        collection = self.get_category(category)
        if collection is None:
            return default
        return collection.get(field, default)

    def set_user_data(self, name: str, value: Any) -> None:
        """Store a caller-supplied value in the "User" category."""
        self.set(USER_CATEGORY, name, value)

    def get_user_data(self, name: str, default: Any = None) -> Any:
        """Read a value from the "User" category."""
        return self.get(USER_CATEGORY, name, default)

    # Categories

    def get_or_create_category(self, name: str) -> Optional[Dict[str, Any]]:
        """
        Get a category, creating it on first access.

        Returns:
            The category mapping, or None if name is blank
        """
        if _is_blank(name):
            return None
        collection = self._categories.get(name)
        if collection is None:
            collection = {}
            self._categories[name] = collection
        return collection

    def get_category(self, name: str) -> Optional[Dict[str, Any]]:
        """Get a category, or None if it was never created."""
        if _is_blank(name):
            return None
        return self._categories.get(name)

    # Conversion

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to a JSON-compatible dictionary (transport field names).

        Returns:
            Dictionary representation of the record
        """
        from .models.record_model import RecordModel

        return RecordModel.from_record(self).model_dump(mode="json", by_alias=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CategorizedRecord:
        """
        Create a record from a transport-form dictionary.

        Args:
            data: Dictionary as produced by to_dict()

        Returns:
            CategorizedRecord instance
        """
        from .models.record_model import RecordModel

        return RecordModel.model_validate(data).to_record()

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize the full record to its JSON transport form."""
        from .models.record_model import RecordModel

        return RecordModel.from_record(self).model_dump_json(by_alias=True, indent=indent)

    @classmethod
    def from_json(cls, text: Optional[str]) -> Optional[CategorizedRecord]:
        """
        Restore a record from its JSON transport form.

        Returns:
            The record, or None for blank input
        """
        if _is_blank(text):
            return None
        from .models.record_model import RecordModel

        return RecordModel.model_validate_json(text).to_record()

    def render_report(self) -> str:
        """Render the record as a self-contained HTML report."""
        from .report import render_report

        return render_report(self)

    def __repr__(self) -> str:
        return (
            f"CategorizedRecord(id={self._id!r}, kind={self._kind.value!r}, "
            f"message={self._message!r}, signature={self.signature!r})"
        )

    def __str__(self) -> str:
        return self.to_json(indent=2)


def to_plain_value(value: Any, depth: int = 0) -> Any:
    """
    Normalize a field value into JSON-compatible data.

    Scalars pass through, datetimes become ISO text, Decimals become
    floats, mappings get string keys, other iterables become lists and
    anything unrecognized is rendered with str().
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if depth >= MAX_VALUE_DEPTH:
        return str(value)
    if isinstance(value, Enum):
        return to_plain_value(value.value, depth + 1)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, Mapping):
        return {str(k): to_plain_value(v, depth + 1) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_plain_value(v, depth + 1) for v in value]
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def values_equal(left: Any, right: Any) -> bool:
    """
    Deep equality that tolerates serialization round trips.

    Numbers compare by value regardless of concrete type (13.1 equals
    Decimal("13.1")), a datetime equals its ISO text, and lists compare
    element-wise with tuples. Booleans never equal numbers.
    """
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if _is_number(left) and _is_number(right):
        if isinstance(left, int) and isinstance(right, int):
            return left == right
        return math.isclose(float(left), float(right), rel_tol=1e-12, abs_tol=0.0)
    if isinstance(left, datetime) or isinstance(right, datetime):
        left_dt, right_dt = _as_datetime(left), _as_datetime(right)
        return left_dt is not None and left_dt == right_dt
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        if len(left) != len(right):
            return False
        for key, value in left.items():
            if key not in right or not values_equal(value, right[key]):
                return False
        return True
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        if len(left) != len(right):
            return False
        return all(values_equal(a, b) for a, b in zip(left, right))
    return left == right
