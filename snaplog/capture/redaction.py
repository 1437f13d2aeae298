"""
Sensitive-Field Redaction and Truncation.

Host-supplied values (form fields, session items, headers, cookies) are
passed through a RedactionPolicy before they land in a record. Values
whose name looks sensitive are replaced with a placeholder that states
only their length; other text is cut to a configured maximum.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Tuple


class RedactionPolicy:
    """
    Classify field names as sensitive and produce safe field values.

    A name is sensitive when it contains any marker, compared
    case-insensitively ("UserPassword" matches "pass").

    Example:
        policy = RedactionPolicy()
        policy.capture_value("password", "secret123", max_length=8192)
        # "[removed for security] Length: 9"
        policy.capture_value("comment", "x" * 10, max_length=4)
        # "xxxx..."
    """

    SENSITIVE_MARKERS: Tuple[str, ...] = (
        "pwd", "pass", "auth",
        "ccnum", "ccno", "credit", "card",
        "token",
        "ssn", "socialsec", "ssnum", "secnumber",
    )

    PLACEHOLDER = "[removed for security] Length: {length}"
    ELLIPSIS = "..."

    def __init__(self, additional_markers: Optional[Iterable[str]] = None):
        """
        Initialize the policy.

        Args:
            additional_markers: Extra substrings that flag a name as sensitive
        """
        markers = list(self.SENSITIVE_MARKERS)
        if additional_markers:
            markers.extend(m.lower() for m in additional_markers if m and m.strip())
        self._markers = tuple(markers)

    @property
    def markers(self) -> Tuple[str, ...]:
        return self._markers

    def is_sensitive(self, name: Optional[str]) -> bool:
        """Check if a field name contains any sensitive marker."""
        if name is None or not str(name).strip():
            return False
        lowered = str(name).lower()
        return any(marker in lowered for marker in self._markers)

    def placeholder(self, value: Any) -> str:
        """Describe a value by its length only."""
        length = len(str(value)) if value is not None else 0
        return self.PLACEHOLDER.format(length=length)

    def truncate(self, text: Optional[str], max_length: int) -> Optional[str]:
        """Cut text longer than max_length and mark it with an ellipsis."""
        if text is None or max_length <= 0 or len(text) <= max_length:
            return text
        return text[:max_length] + self.ELLIPSIS

    def redact(self, name: str, value: Any) -> Any:
        """Replace the value with a placeholder if the name is sensitive."""
        if self.is_sensitive(name):
            return self.placeholder(value)
        return value

    def capture_value(self, name: str, value: Any, max_length: int) -> str:
        """
        Produce the text stored in a record for one host-supplied value.

        Args:
            name: Field name used for the sensitivity check
            value: Raw value (None becomes "")
            max_length: Truncation threshold (0 or less keeps full text)

        Returns:
            Placeholder for sensitive names, otherwise the (truncated) text
        """
        if self.is_sensitive(name):
            return self.placeholder(value)
        if value is None:
            return ""
        return self.truncate(str(value), max_length)
