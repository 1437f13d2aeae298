"""
Capture Pipeline.

This module provides the engine that turns a capture call into a
finished CategorizedRecord and fans it out to the configured sinks.
Uses an isolate-every-step model: a failure while collecting one kind of
fact is reported through the internal-crash channel and the capture
carries on with the next step.
"""

import inspect
import logging
import string
import sys
from typing import Any, Callable, Optional, Sequence, Tuple, Union

from snaplog.capture import (
    ExceptionFlattener,
    HostContextCollector,
    RedactionPolicy,
    SignatureComputer,
    append_computer_info,
    append_process_info,
    append_thread_info,
    current_host_context,
    describe_exception,
    is_cancellation,
    walk_stack,
)
from snaplog.config import LoggerConfig
from snaplog.events import CategorizedRecord, EventKind
from snaplog.mail import SmtpTransport
from snaplog.sinks import EmailSink, Extension, ExtensionRegistry

logger = logging.getLogger(__name__)

ARGS_CATEGORY = "Args"
CALLSTACK_CATEGORY = "CallStack"
EXCEPTION_CATEGORY = "Exception"

Enrich = Callable[[CategorizedRecord], None]

_formatter = string.Formatter()


def has_format_fields(template: str) -> bool:
    """
    Check if a message template contains ``str.format`` replacement fields.

    A template that cannot be parsed (an unmatched brace) counts as having
    fields, so formatting is attempted and the failure is reported.
    """
    try:
        return any(field_name is not None for _, field_name, _, _ in _formatter.parse(template))
    except (ValueError, TypeError):
        return True


class CapturePipeline:
    """
    Build, filter and deliver categorized records.

    Each capture call owns its record: it resolves the message, pulls in
    host context, computes the stack signature, appends thread, process
    and machine facts, flattens the exception chain, runs the caller's
    enrichment callback and the accept predicate, then hands the record
    to the e-mail sink and every extension. ``capture`` never raises for
    failures inside the pipeline itself.

    Example:
        pipeline = CapturePipeline(LoggerConfig(send_to=["ops@example.com"]))
        pipeline.add_extension(LogSink())

        pipeline.error("Payment {} declined", order_id)
        try:
            charge(card)
        except PaymentError as e:
            pipeline.exception(e, enrich=lambda r: r.set("Order", "Id", order_id))
    """

    def __init__(self, config: Optional[LoggerConfig] = None):
        """
        Initialize the pipeline.

        Args:
            config: Pipeline configuration (defaults to LoggerConfig())
        """
        self.config = config or LoggerConfig()
        cfg = self.config

        self.redaction = RedactionPolicy(cfg.additional_sensitive_markers)
        self.signatures = SignatureComputer(
            frame_count=cfg.signature_frame_count,
            include_file_paths=cfg.include_file_paths_in_stack,
        )
        self.flattener = ExceptionFlattener(cfg.max_exception_depth)
        self.host_collector = HostContextCollector(
            self.redaction,
            max_form_value_length=cfg.max_form_value_length,
            max_header_value_length=cfg.max_header_value_length,
            max_body_length=cfg.max_body_length,
            include_session_items=cfg.include_session_items,
            on_error=self._report_crash,
        )

        transport = cfg.mail_transport
        if transport is None and (cfg.send_to or cfg.send_to_fatal):
            transport = SmtpTransport(cfg.smtp_host, cfg.smtp_port, cfg.smtp_timeout)
        self.email_sink = EmailSink(
            transport,
            send_to=cfg.send_to,
            send_to_fatal=cfg.send_to_fatal,
            email_from=cfg.email_from,
            subject_prefix=cfg.subject_prefix,
            max_subject_message_length=cfg.max_subject_message_length,
        )
        self.extensions = ExtensionRegistry(cfg.extensions)

    def add_extension(self, extension: Extension) -> "CapturePipeline":
        """
        Register a callback notified with every accepted record.

        Returns:
            Self for chaining
        """
        self.extensions.register(extension)
        return self

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def capture(
        self,
        kind: Union[EventKind, str],
        fault: Optional[BaseException] = None,
        message: Optional[str] = None,
        *args: Any,
        enrich: Optional[Enrich] = None,
    ) -> Optional[CategorizedRecord]:
        """
        Capture one event.

        Args:
            kind: Event kind (enum or loose spelling such as "perf-issue")
            fault: Exception being reported, if any
            message: Message or ``str.format`` template
            *args: Template arguments, or extra values stored under "Args"
            enrich: Callback that may add fields before the record is filtered

        Returns:
            The delivered record, or None if the fault was a cancellation
            or the accept predicate rejected the record

        Raises:
            ValueError: If ``kind`` names no known event kind
        """
        kind = EventKind.parse(kind)
        if is_cancellation(fault):
            logger.debug("Dropping cancellation %s", type(fault).__name__)
            return None

        try:
            text, stored_args = self._resolve_message(kind, fault, message, args)
        except Exception as e:
            self._report_crash(e)
            text, stored_args = kind.value, args
        record = CategorizedRecord(kind, text)
        logger.debug("Capturing %s record %s", kind.value, record.id)

        if stored_args:
            self._safely(self._append_args, record, stored_args)
        self._safely(self._append_host_context, record)
        self._safely(self._append_signature, record)
        self._safely(append_thread_info, record)
        self._safely(append_process_info, record)
        self._safely(append_computer_info, record)
        if fault is not None:
            self._safely(self._append_exception, record, fault)
        if enrich is not None:
            self._safely(enrich, record)

        if not self._accepts(record):
            logger.debug("Record %s rejected by should_log", record.id)
            return None

        self._safely(self.email_sink.emit, record)
        self.extensions.emit(record, on_error=self._report_crash)
        return record

    def error(self, message: str, *args: Any, enrich: Optional[Enrich] = None):
        return self.capture(EventKind.ERROR, None, message, *args, enrich=enrich)

    def warning(self, message: str, *args: Any, enrich: Optional[Enrich] = None):
        return self.capture(EventKind.WARNING, None, message, *args, enrich=enrich)

    def info(self, message: str, *args: Any, enrich: Optional[Enrich] = None):
        return self.capture(EventKind.INFO, None, message, *args, enrich=enrich)

    def fatal(self, message: str, *args: Any, enrich: Optional[Enrich] = None):
        return self.capture(EventKind.FATAL, None, message, *args, enrich=enrich)

    def perf_issue(self, message: str, *args: Any, enrich: Optional[Enrich] = None):
        return self.capture(EventKind.PERF_ISSUE, None, message, *args, enrich=enrich)

    def invalid_code_path(self, message: str, *args: Any, enrich: Optional[Enrich] = None):
        return self.capture(EventKind.INVALID_CODE_PATH, None, message, *args, enrich=enrich)

    def exception(self, fault: BaseException, *args: Any, enrich: Optional[Enrich] = None):
        """Capture an exception; ``args`` are stored under "Args"."""
        return self.capture(EventKind.EXCEPTION, fault, None, *args, enrich=enrich)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _resolve_message(
        self,
        kind: EventKind,
        fault: Optional[BaseException],
        message: Optional[str],
        args: Sequence[Any],
    ) -> Tuple[str, Sequence[Any]]:
        """
        Work out the record message and which args still need storing.

        A formatted template consumes its args; otherwise the args are
        returned so they can be stored under "Args".
        """
        if message is None:
            if fault is not None:
                try:
                    text = describe_exception(fault)
                except Exception as e:
                    self._report_crash(e)
                    text = type(fault).__name__
                return self.redaction.truncate(text, self.config.max_fault_message_length), args
            return kind.value, args

        if not isinstance(message, str):
            message = str(message)
        if args and has_format_fields(message):
            try:
                return message.format(*args), ()
            except Exception as e:
                self._report_crash(e)
        return message, args

    @staticmethod
    def _append_args(record: CategorizedRecord, args: Sequence[Any]) -> None:
        for index, value in enumerate(args):
            record.set(ARGS_CATEGORY, str(index), value)

    def _append_host_context(self, record: CategorizedRecord) -> None:
        provider = self.config.host_context_provider or current_host_context
        self.host_collector.collect(record, provider())

    def _append_signature(self, record: CategorizedRecord) -> None:
        frame = inspect.currentframe()
        try:
            result = self.signatures.compute(walk_stack(frame))
        finally:
            del frame
        record.signature = result.signature
        record.get_or_create_category(CALLSTACK_CATEGORY).update(result.listing)

    def _append_exception(self, record: CategorizedRecord, fault: BaseException) -> None:
        info = self.flattener.flatten(fault)
        record.get_or_create_category(EXCEPTION_CATEGORY).update(info)

    def _accepts(self, record: CategorizedRecord) -> bool:
        if self.config.should_log is None:
            return True
        try:
            return bool(self.config.should_log(record))
        except Exception as e:
            self._report_crash(e)
            return True

    # ------------------------------------------------------------------
    # Internal crash channel
    # ------------------------------------------------------------------

    def _safely(self, step: Callable[..., Any], *args: Any) -> Any:
        try:
            return step(*args)
        except Exception as e:
            self._report_crash(e)
            return None

    def _report_crash(self, error: BaseException) -> None:
        """
        Report a failure that happened inside the pipeline.

        Logged at WARNING, optionally stops in an attached debugger, then
        handed to ``on_internal_error``. Nothing raised here escapes.
        """
        logger.warning("Internal capture failure: %s: %s", type(error).__name__, error)
        if self.config.break_into_debugger and sys.gettrace() is not None:
            breakpoint()
        callback = self.config.on_internal_error
        if callback is None:
            return
        try:
            callback(error)
        except Exception as e:
            logger.warning("on_internal_error callback failed: %s", e)
