import asyncio
import concurrent.futures
import errno
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from snaplog.capture.exceptions import (
    ExceptionFlattener,
    describe_exception,
    exception_type_name,
    is_cancellation,
)


class Unprintable(Exception):
    def __str__(self):
        raise RuntimeError("str broke")


class LookupFailed(Exception):
    def __init__(self, message, data=None):
        super().__init__(message)
        self.data = data


def raise_chain(levels):
    """Raise a chain of `levels` exceptions linked with `raise ... from`."""
    if levels == 1:
        raise ValueError("level 1")
    try:
        raise_chain(levels - 1)
    except ValueError as e:
        raise ValueError(f"level {levels}") from e


class TestExceptionFlattener:
    """Test suite for exception chain flattening."""

    def setup_method(self):
        self.flattener = ExceptionFlattener()

    def test_inner_exception(self):
        try:
            try:
                int("x")
            except ValueError as e:
                raise RuntimeError("parse failed") from e
        except RuntimeError as exc:
            info = self.flattener.flatten(exc)

        assert info["Type"] == "RuntimeError"
        assert info["Message"] == "parse failed"
        assert info["InnerException"]["Type"] == "ValueError"
        assert "invalid literal" in info["InnerException"]["Message"]
        assert info["Source"].rsplit(":", 1)[0].endswith("test_exceptions.py")
        assert "raise RuntimeError" in info["StackTrace"]

    def test_implicit_context(self):
        try:
            try:
                {}["missing"]
            except KeyError:
                raise LookupFailed("not found")
        except LookupFailed as exc:
            info = self.flattener.flatten(exc)
        assert info["InnerException"]["Type"] == "KeyError"
        assert info["Type"].endswith("LookupFailed")

    def test_suppressed_context(self):
        try:
            try:
                {}["missing"]
            except KeyError:
                raise LookupFailed("not found") from None
        except LookupFailed as exc:
            info = self.flattener.flatten(exc)
        assert "InnerException" not in info

    def test_depth_is_bounded(self):
        try:
            raise_chain(5)
        except ValueError as exc:
            info = ExceptionFlattener(max_depth=3).flatten(exc)
        assert info["Message"] == "level 5"
        assert info["InnerException"]["InnerException"]["Message"] == "level 3"
        assert "InnerException" not in info["InnerException"]["InnerException"]

    def test_unraised_exception(self):
        info = self.flattener.flatten(ValueError("never raised"))
        assert info["Source"] is None
        assert info["StackTrace"] is None
        assert info["ErrorCode"] is None

    def test_error_code_from_errno(self):
        exc = FileNotFoundError(errno.ENOENT, "No such file", "/tmp/missing")
        assert self.flattener.flatten(exc)["ErrorCode"] == errno.ENOENT

    def test_error_code_from_code_attribute(self):
        exc = SystemExit(3)
        assert self.flattener.flatten(exc)["ErrorCode"] == 3

    def test_data_and_notes(self):
        exc = LookupFailed("not found", data={"key": "sku-1"})
        exc.add_note("while refreshing cache")
        info = self.flattener.flatten(exc)
        assert info["Data"]["key"] == "sku-1"
        assert info["Data"]["Notes"] == ["while refreshing cache"]

    def test_unprintable_message(self):
        try:
            try:
                raise KeyError("sku")
            except KeyError:
                raise Unprintable()
        except Unprintable as exc:
            info = self.flattener.flatten(exc)
        assert info["Message"] == "<exception str() failed>"
        assert info["Type"].endswith("Unprintable")
        assert info["StackTrace"] is not None
        assert info["InnerException"]["Type"] == "KeyError"

    def test_no_data_key_without_data(self):
        assert "Data" not in self.flattener.flatten(ValueError("plain"))

    def test_cycle_does_not_loop(self):
        first = ValueError("first")
        second = ValueError("second")
        first.__cause__ = second
        second.__cause__ = first
        info = ExceptionFlattener(max_depth=10).flatten(first)
        depth = 0
        while "InnerException" in info:
            info = info["InnerException"]
            depth += 1
        assert depth == 9


class TestExceptionHelpers:
    """Test suite for exception helper functions."""

    def test_cancellation_types(self):
        assert is_cancellation(asyncio.CancelledError())
        assert is_cancellation(concurrent.futures.CancelledError())
        assert is_cancellation(GeneratorExit())
        assert not is_cancellation(ValueError())
        assert not is_cancellation(None)

    def test_type_name(self):
        assert exception_type_name(KeyError()) == "KeyError"
        assert exception_type_name(LookupFailed("x")).endswith(".LookupFailed")

    def test_describe_collapses_newlines(self):
        assert describe_exception(ValueError("line one\nline two")) == "ValueError: line one line two"
