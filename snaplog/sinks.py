"""
Record Delivery Sinks.

This module provides the destinations a finished record is handed to:
the e-mail sink, the ordered registry of extension callbacks, and a
sink that forwards records to the logging system.
"""

from __future__ import annotations

import json
import logging
from typing import Callable, Iterable, List, Optional

from .events import CategorizedRecord, EventKind
from .mail import MailMessage, MailTransport

Extension = Callable[[CategorizedRecord], None]
ErrorHandler = Callable[[BaseException], None]


class EmailSink:
    """
    Mail a rendered report for each record.

    Every record goes to ``send_to``; Fatal records also go to
    ``send_to_fatal``. Nothing is sent when neither list applies.

    Example:
        sink = EmailSink(
            transport=InMemoryTransport(),
            send_to=["ops@example.com"],
        )
        sink.emit(record)
        # Subject: "[Log] Error: Disk full (3fa2c1d0)"
    """

    def __init__(
        self,
        transport: Optional[MailTransport],
        send_to: Iterable[str] = (),
        send_to_fatal: Iterable[str] = (),
        email_from: str = "nobody@localhost",
        subject_prefix: str = "[Log] ",
        max_subject_message_length: int = 50,
    ):
        """
        Initialize the email sink.

        Args:
            transport: Transport used to deliver messages
            send_to: Recipients for every record
            send_to_fatal: Additional recipients for Fatal records
            email_from: Sender address
            subject_prefix: Prepended to every subject line
            max_subject_message_length: Message length kept in the subject
        """
        self.transport = transport
        self.send_to = list(send_to)
        self.send_to_fatal = list(send_to_fatal)
        self.email_from = email_from
        self.subject_prefix = subject_prefix
        self.max_subject_message_length = max_subject_message_length

    @property
    def enabled(self) -> bool:
        return self.transport is not None and bool(self.send_to or self.send_to_fatal)

    def recipients_for(self, record: CategorizedRecord) -> List[str]:
        recipients = list(self.send_to)
        if record.kind == EventKind.FATAL:
            recipients.extend(r for r in self.send_to_fatal if r not in recipients)
        return recipients

    def subject_for(self, record: CategorizedRecord) -> str:
        message = record.message or ""
        if len(message) > self.max_subject_message_length:
            message = message[:self.max_subject_message_length] + "..."
        return f"{self.subject_prefix}{record.kind.value}: {message} ({record.signature})"

    def build_message(self, record: CategorizedRecord) -> Optional[MailMessage]:
        recipients = self.recipients_for(record)
        if not recipients:
            return None
        return MailMessage(
            sender=self.email_from,
            recipients=recipients,
            subject=self.subject_for(record),
            html_body=record.render_report(),
        )

    def emit(self, record: CategorizedRecord) -> Optional[MailMessage]:
        """
        Build and send the message for a record.

        Returns:
            The message that was sent, or None if nothing was sent
        """
        if not self.enabled:
            return None
        message = self.build_message(record)
        if message is None:
            return None
        self.transport.send(message)
        return message


class ExtensionRegistry:
    """
    Ordered list of extension callbacks.

    Extensions are called in registration order. An extension that
    raises is reported to the error handler and the remaining extensions
    still run.

    Example:
        registry = ExtensionRegistry()
        registry.register(store_in_database)
        registry.register(LogSink())

        registry.emit(record, on_error=report_crash)
    """

    def __init__(self, extensions: Optional[Iterable[Extension]] = None):
        """Initialize the registry, optionally with initial extensions."""
        self._extensions: List[Extension] = list(extensions or [])

    def register(self, extension: Extension) -> "ExtensionRegistry":
        """
        Register an extension.

        Args:
            extension: Callable receiving each accepted record

        Returns:
            Self for chaining
        """
        self._extensions.append(extension)
        return self

    def unregister(self, extension: Extension) -> "ExtensionRegistry":
        """
        Remove a previously registered extension.

        Returns:
            Self for chaining
        """
        if extension in self._extensions:
            self._extensions.remove(extension)
        return self

    @property
    def extensions(self) -> List[Extension]:
        """Get the registered extensions in call order."""
        return self._extensions.copy()

    def __len__(self) -> int:
        return len(self._extensions)

    def emit(self, record: CategorizedRecord, on_error: Optional[ErrorHandler] = None) -> None:
        """
        Hand a record to every extension.

        Args:
            record: The finished record
            on_error: Receives the exception of each failing extension
        """
        for extension in list(self._extensions):
            try:
                extension(record)
            except Exception as e:
                logging.getLogger(__name__).warning(
                    "Extension %s failed: %s", getattr(extension, "__name__", extension), e
                )
                if on_error is not None:
                    on_error(e)


class LogSink:
    """
    Forward records to the logging system.

    Records are logged at a level matching their kind. Register it as an
    extension to mirror every capture into the application log.

    Example:
        pipeline.add_extension(LogSink(logger_name="myapp.incidents"))
    """

    KIND_TO_LEVEL = {
        EventKind.FATAL: logging.CRITICAL,
        EventKind.ERROR: logging.ERROR,
        EventKind.EXCEPTION: logging.ERROR,
        EventKind.INVALID_CODE_PATH: logging.ERROR,
        EventKind.WARNING: logging.WARNING,
        EventKind.PERF_ISSUE: logging.WARNING,
        EventKind.INFO: logging.INFO,
    }

    def __init__(
        self,
        logger_name: str = "snaplog.events",
        format_json: bool = False,
    ):
        """
        Initialize the log sink.

        Args:
            logger_name: Name of the logger to use
            format_json: If True, log the full record as JSON
        """
        self._logger = logging.getLogger(logger_name)
        self._format_json = format_json

    def __call__(self, record: CategorizedRecord) -> None:
        level = self.KIND_TO_LEVEL.get(record.kind, logging.INFO)
        if self._format_json:
            message = json.dumps(record.to_dict())
        else:
            message = self._format_record(record)
        self._logger.log(level, message)

    def _format_record(self, record: CategorizedRecord) -> str:
        """Format a record as a single human-readable line."""
        parts = [f"[{record.kind.value}]", record.message]
        if record.signature:
            parts.append(f"signature={record.signature}")
        parts.append(f"id={record.id}")

        exc_type = record.get("Exception", "Type")
        if exc_type:
            parts.append(f"exception={exc_type}")

        elapsed = record.get("Perf", "Elapsed")
        if isinstance(elapsed, (int, float)):
            parts.append(f"elapsed={elapsed:.3f}s")

        return " ".join(parts)
