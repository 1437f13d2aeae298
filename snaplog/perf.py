"""
Elapsed-Time Threshold Monitoring.

A PerfTimer measures a code region and captures a PerfIssue record only
when the region takes longer than its budget.

Example:
    with PerfTimer(0.25, "Slow checkout"):
        checkout(cart)

    async with PerfTimer(timedelta(seconds=2)):
        await sync_inventory()

    @perf_timer(0.5)
    def render_invoice(order):
        ...
"""

import functools
import inspect
import logging
import time
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, Optional, TypeVar, Union

from snaplog.events import CategorizedRecord

logger = logging.getLogger(__name__)

PERF_CATEGORY = "Perf"

Threshold = Union[timedelta, int, float]
F = TypeVar("F", bound=Callable[..., Any])


class TimerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


def _as_timedelta(threshold: Threshold) -> timedelta:
    if isinstance(threshold, timedelta):
        return threshold
    return timedelta(seconds=threshold)


class PerfTimer:
    """
    Scoped stopwatch that reports when a duration budget is exceeded.

    The timer moves Idle -> Running -> Stopped exactly once. Starting a
    timer that is not Idle raises, and so does entering a ``with`` block
    on a stopped timer. Stopping one that is not Running does nothing.
    Time is read from the monotonic clock.

    Args:
        threshold: Budget as a timedelta or a number of seconds
        message: Record message (defaults to "PerfLog > N.NN secs")
        pipeline: Pipeline that receives the record (defaults to the
            process-wide default pipeline)
        auto_start: Start timing immediately
        label: Stored as Perf.Label (defaults to the message)

    Attributes:
        record: The PerfIssue record, once one has been captured
    """

    def __init__(
        self,
        threshold: Threshold,
        message: Optional[str] = None,
        *,
        pipeline=None,
        auto_start: bool = True,
        label: Optional[str] = None,
    ):
        self.threshold = _as_timedelta(threshold)
        self.message = message
        self.label = label
        self.pipeline = pipeline
        self.record: Optional[CategorizedRecord] = None

        self._state = TimerState.IDLE
        self._started_at: Optional[float] = None
        self._elapsed: Optional[float] = None

        if auto_start:
            self.start()

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def started_at(self) -> Optional[float]:
        """Monotonic start time in seconds, None when not running."""
        return self._started_at if self._state is TimerState.RUNNING else None

    @property
    def elapsed(self) -> float:
        """Seconds measured so far (final value once stopped)."""
        if self._state is TimerState.RUNNING:
            return time.monotonic() - self._started_at
        return self._elapsed or 0.0

    @property
    def default_message(self) -> str:
        return "PerfLog > {:.2f} secs".format(self.threshold.total_seconds())

    def start(self) -> "PerfTimer":
        """
        Start timing.

        Raises:
            RuntimeError: If the timer was already started
        """
        if self._state is not TimerState.IDLE:
            raise RuntimeError("PerfTimer can only be started once.")
        self._started_at = time.monotonic()
        self._state = TimerState.RUNNING
        return self

    def stop(self) -> Optional[CategorizedRecord]:
        """
        Stop timing and capture a PerfIssue if the budget was exceeded.

        Returns:
            The captured record, or None if the timer was not running,
            stayed within budget, or the record was rejected
        """
        if self._state is not TimerState.RUNNING:
            return None
        self._elapsed = time.monotonic() - self._started_at
        self._state = TimerState.STOPPED
        self._started_at = None

        threshold = self.threshold.total_seconds()
        if self._elapsed <= threshold:
            return None

        logger.debug("Budget of %.3fs exceeded: %.3fs", threshold, self._elapsed)
        message = self.message or self.default_message
        self.record = self._pipeline().perf_issue(message, enrich=self._enrich)
        return self.record

    def _enrich(self, record: CategorizedRecord) -> None:
        record.set(PERF_CATEGORY, "Elapsed", self._elapsed)
        record.set(PERF_CATEGORY, "MaxThreshold", self.threshold.total_seconds())
        record.set(PERF_CATEGORY, "Label", self.label or self.message or self.default_message)

    def _pipeline(self):
        if self.pipeline is not None:
            return self.pipeline
        from snaplog.default import get_default_pipeline
        return get_default_pipeline()

    def __enter__(self) -> "PerfTimer":
        if self._state is not TimerState.RUNNING:
            self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    async def __aenter__(self) -> "PerfTimer":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def __repr__(self) -> str:
        return (
            f"PerfTimer(threshold={self.threshold.total_seconds()}s, "
            f"state={self._state.value}, elapsed={self.elapsed:.3f}s)"
        )


def perf_timer(
    threshold: Threshold,
    message: Optional[str] = None,
    *,
    pipeline=None,
) -> Callable[[F], F]:
    """
    Decorate a function so each call is timed against a budget.

    Works for plain and async functions. The function's qualified name is
    stored as Perf.Label.

    Args:
        threshold: Budget as a timedelta or a number of seconds
        message: Record message (defaults to "PerfLog > N.NN secs")
        pipeline: Pipeline that receives the record
    """
    def decorator(func: F) -> F:
        label = func.__qualname__

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                async with PerfTimer(threshold, message, pipeline=pipeline, label=label):
                    return await func(*args, **kwargs)
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with PerfTimer(threshold, message, pipeline=pipeline, label=label):
                return func(*args, **kwargs)
        return wrapper

    return decorator
