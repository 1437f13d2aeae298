"""
Exception Chain Flattening.

Turns an exception and its cause chain into nested plain mappings that
fit in a record's "Exception" category.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import traceback
from collections.abc import Mapping
from typing import Any, Dict, Optional, Tuple, Type

DEFAULT_MAX_DEPTH = 3

# Same text traceback prints for an exception whose __str__ raises
UNPRINTABLE_MESSAGE = "<exception str() failed>"

CANCELLATION_TYPES: Tuple[Type[BaseException], ...] = (
    asyncio.CancelledError,
    concurrent.futures.CancelledError,
    GeneratorExit,
)


def is_cancellation(fault: Optional[BaseException]) -> bool:
    """Check if a fault is a cooperative cancellation rather than a failure."""
    return fault is not None and isinstance(fault, CANCELLATION_TYPES)


def exception_type_name(exc: BaseException) -> str:
    """Qualified class name, without the ``builtins.`` prefix."""
    cls = type(exc)
    if cls.__module__ in ("builtins", "__builtin__"):
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def describe_exception(exc: BaseException) -> str:
    """One-line ``Type: message`` description of an exception."""
    text = "".join(traceback.format_exception_only(type(exc), exc)).strip()
    return " ".join(text.split())


class ExceptionFlattener:
    """
    Walk an exception's cause chain into a bounded tree of mappings.

    Each level carries Message, Type, Source, StackTrace and ErrorCode,
    plus Data when the exception has notes or a ``data`` mapping, and
    InnerException for the next link of the chain. The explicit
    ``__cause__`` wins over an unsuppressed implicit ``__context__``.

    Example:
        try:
            try:
                int("x")
            except ValueError as e:
                raise RuntimeError("parse failed") from e
        except RuntimeError as exc:
            info = ExceptionFlattener().flatten(exc)
        info["Type"]                     # "RuntimeError"
        info["InnerException"]["Type"]   # "ValueError"

    Args:
        max_depth: Number of levels expanded, counting the outer exception
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        self.max_depth = max(1, max_depth)

    def flatten(self, exc: BaseException) -> Dict[str, Any]:
        """Flatten an exception and up to max_depth - 1 of its causes."""
        return self._flatten(exc, 1)

    def _flatten(self, exc: BaseException, depth: int) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "Message": self._message(exc),
            "Type": exception_type_name(exc),
            "Source": self._source(exc),
            "StackTrace": self._stack_trace(exc),
            "ErrorCode": self._error_code(exc),
        }

        data = self._data(exc)
        if data:
            info["Data"] = data

        inner = self.cause_of(exc)
        if inner is not None and depth < self.max_depth:
            info["InnerException"] = self._flatten(inner, depth + 1)

        return info

    @staticmethod
    def cause_of(exc: BaseException) -> Optional[BaseException]:
        if exc.__cause__ is not None:
            return exc.__cause__
        if not exc.__suppress_context__:
            return exc.__context__
        return None

    @staticmethod
    def _message(exc: BaseException) -> str:
        try:
            return str(exc)
        except Exception:
            return UNPRINTABLE_MESSAGE

    @staticmethod
    def _stack_trace(exc: BaseException) -> Optional[str]:
        if exc.__traceback__ is None:
            return None
        return "".join(traceback.format_tb(exc.__traceback__))

    @staticmethod
    def _source(exc: BaseException) -> Optional[str]:
        tb = exc.__traceback__
        if tb is None:
            return None
        while tb.tb_next is not None:
            tb = tb.tb_next
        return f"{tb.tb_frame.f_code.co_filename}:{tb.tb_lineno}"

    @staticmethod
    def _error_code(exc: BaseException) -> Optional[int]:
        errno = getattr(exc, "errno", None)
        if isinstance(errno, int):
            return errno
        code = getattr(exc, "code", None)
        if isinstance(code, int) and not isinstance(code, bool):
            return code
        return None

    @staticmethod
    def _data(exc: BaseException) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        extra = getattr(exc, "data", None)
        if isinstance(extra, Mapping):
            data.update((str(k), v) for k, v in extra.items())
        notes = getattr(exc, "__notes__", None)
        if notes:
            data["Notes"] = list(notes)
        return data
