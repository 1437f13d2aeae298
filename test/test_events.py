import os
import sys
from datetime import datetime, UTC
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest

from snaplog.events import CategorizedRecord, EventKind, to_plain_value, values_equal


class TestEventKind:
    """Test suite for event kind parsing."""

    @pytest.mark.parametrize("spelling", ["PerfIssue", "perf-issue", "PERF_ISSUE", "perf issue"])
    def test_parse_loose_spellings(self, spelling):
        assert EventKind.parse(spelling) is EventKind.PERF_ISSUE

    def test_parse_enum_passthrough(self):
        assert EventKind.parse(EventKind.FATAL) is EventKind.FATAL

    def test_parse_unknown_raises(self):
        with pytest.raises(ValueError):
            EventKind.parse("catastrophe")

    def test_is_error(self):
        assert EventKind.EXCEPTION.is_error()
        assert not EventKind.INFO.is_error()


class TestCategorizedRecord:
    """Test suite for record field access and serialization."""

    def setup_method(self):
        self.record = CategorizedRecord(EventKind.ERROR, "Disk full")

    def test_set_then_get(self):
        self.record.set("Storage", "FreeBytes", 0)
        assert self.record.get("Storage", "FreeBytes") == 0

    def test_overwrite(self):
        self.record.set("Storage", "Mount", "/")
        self.record.set("Storage", "Mount", "/var")
        assert self.record.get("Storage", "Mount") == "/var"

    def test_get_missing_returns_default(self):
        assert self.record.get("Nope", "Field") is None
        assert self.record.get("Nope", "Field", "fallback") == "fallback"

    @pytest.mark.parametrize("category,field", [("", "x"), ("   ", "x"), ("Cat", ""), ("Cat", " ")])
    def test_blank_names_are_ignored(self, category, field):
        self.record.set(category, field, 1)
        assert self.record.categories == {}

    def test_category_identity(self):
        first = self.record.get_or_create_category("Storage")
        second = self.record.get_or_create_category("Storage")
        assert first is second
        assert self.record.get_category("Storage") is first

    def test_blank_category_name(self):
        assert self.record.get_or_create_category("") is None
        assert self.record.get_category("Missing") is None

    def test_category_order_preserved(self):
        for name in ("Zeta", "Alpha", "Mid"):
            self.record.set(name, "x", 1)
        assert list(self.record.categories) == ["Zeta", "Alpha", "Mid"]

    def test_user_data(self):
        self.record.set_user_data("OrderId", 42)
        assert self.record.get_user_data("OrderId") == 42
        assert self.record.get("User", "OrderId") == 42

    def test_identity_and_timestamps(self):
        other = CategorizedRecord("warning", "x")
        assert self.record.id != other.id
        assert other.kind is EventKind.WARNING
        assert self.record.created_at_utc.tzinfo is not None
        assert self.record.created_at_local.tzinfo is None
        assert self.record.signature is None

    def test_json_round_trip(self):
        when = datetime(2024, 5, 1, 12, 30, 15)
        self.record.signature = "1a2b3c4d"
        self.record.set("Data", "Count", 27)
        self.record.set("Data", "Ratio", 13.1)
        self.record.set("Data", "Tags", ["a", "b", 3])
        self.record.set("Data", "When", when)
        self.record.set("Data", "Nested", {"inner": None})

        restored = CategorizedRecord.from_json(self.record.to_json())

        assert restored.id == self.record.id
        assert restored.kind is EventKind.ERROR
        assert restored.message == "Disk full"
        assert restored.signature == "1a2b3c4d"
        assert restored.created_at_utc == self.record.created_at_utc
        for field, value in self.record.get_category("Data").items():
            assert values_equal(value, restored.get("Data", field)), field

    def test_transport_field_names(self):
        data = self.record.to_dict()
        assert set(data) == {
            "id", "kind", "message", "createdAtLocal", "createdAtUtc", "signature", "categories"
        }
        assert data["kind"] == "Error"

    def test_from_dict_accepts_loose_kind(self):
        data = self.record.to_dict()
        data["kind"] = "invalid-code-path"
        assert CategorizedRecord.from_dict(data).kind is EventKind.INVALID_CODE_PATH

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_from_json_blank(self, text):
        assert CategorizedRecord.from_json(text) is None

    def test_str_is_json(self):
        assert '"message": "Disk full"' in str(self.record)


class TestValues:
    """Test suite for value normalization and tolerant comparison."""

    def test_to_plain_value(self):
        when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
        assert to_plain_value(when) == when.isoformat()
        assert to_plain_value(Decimal("1.5")) == 1.5
        assert to_plain_value((1, 2)) == [1, 2]
        assert to_plain_value({1: "a"}) == {"1": "a"}
        assert to_plain_value(EventKind.INFO) == "Info"
        assert to_plain_value(object).startswith("<class")

    def test_numbers_compare_by_value(self):
        assert values_equal(13.1, Decimal("13.1"))
        assert values_equal(27, 27.0)
        assert not values_equal(27, 28)

    def test_bool_never_equals_number(self):
        assert not values_equal(True, 1)
        assert values_equal(False, False)

    def test_datetime_equals_iso_text(self):
        when = datetime(2024, 1, 2, 3, 4, 5)
        assert values_equal(when, when.isoformat())

    def test_sequences_and_mappings(self):
        assert values_equal((1, "a"), [1, "a"])
        assert values_equal({"a": [1, 2.0]}, {"a": [1, 2]})
        assert not values_equal({"a": 1}, {"b": 1})
        assert values_equal(None, None)
        assert not values_equal(None, 0)
