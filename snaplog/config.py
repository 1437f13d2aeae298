"""
Capture Configuration.

This module provides configuration options for the capture pipeline,
allowing customization of what is captured, how it is redacted, and
where finished records are delivered.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .events import CategorizedRecord
from .mail import MailTransport


@dataclass
class LoggerConfig:
    """
    Configuration for a CapturePipeline.

    Use default_config() for sensible defaults, or get_preset() for one
    of the named presets.

    Attributes:
        max_form_value_length: Truncation for form values (0 disables form capture)
        max_header_value_length: Truncation for header and cookie values (0 keeps full values)
        max_body_length: Truncation for text request bodies (0 disables body capture)
        include_file_paths_in_stack: Add source file paths to the CallStack listing
        include_session_items: Copy session items into HttpSession
        additional_sensitive_markers: Extra name markers that trigger redaction
        max_exception_depth: Exception chain levels expanded (including the outer one)
        signature_frame_count: Application frames hashed into the signature
        max_fault_message_length: Message length when the message comes from a fault
        email_from: Sender address for e-mailed reports
        send_to: Recipients for every record
        send_to_fatal: Additional recipients for Fatal records
        subject_prefix: Prefix of every e-mail subject
        max_subject_message_length: Message length kept in the subject
        smtp_host: SMTP server used when no mail_transport is given
        smtp_port: SMTP server port
        smtp_timeout: SMTP socket timeout in seconds
        mail_transport: Explicit transport (overrides the SMTP settings)
        should_log: Accept predicate; returning False drops the record
        on_internal_error: Receives failures inside the pipeline itself
        extensions: Callbacks notified with every accepted record
        host_context_provider: Returns the current host context, if any
        break_into_debugger: Call breakpoint() on internal failures while a tracer is attached
    """

    # Host capture
    max_form_value_length: int = 8192
    max_header_value_length: int = 8192
    max_body_length: int = 32768
    include_session_items: bool = False
    additional_sensitive_markers: List[str] = field(default_factory=list)

    # Stack and exceptions
    include_file_paths_in_stack: bool = False
    signature_frame_count: int = 4
    max_exception_depth: int = 3
    max_fault_message_length: int = 256

    # E-mail
    email_from: str = "nobody@localhost"
    send_to: List[str] = field(default_factory=list)
    send_to_fatal: List[str] = field(default_factory=list)
    subject_prefix: str = "[Log] "
    max_subject_message_length: int = 50
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_timeout: float = 10.0
    mail_transport: Optional[MailTransport] = None

    # Callbacks
    should_log: Optional[Callable[[CategorizedRecord], bool]] = None
    on_internal_error: Optional[Callable[[BaseException], None]] = None
    extensions: List[Callable[[CategorizedRecord], None]] = field(default_factory=list)
    host_context_provider: Optional[Callable[[], Any]] = None

    # Development
    break_into_debugger: bool = False

    # Options that can't travel through from_dict/to_dict
    CALLABLE_FIELDS = (
        "mail_transport",
        "should_log",
        "on_internal_error",
        "extensions",
        "host_context_provider",
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggerConfig":
        """
        Create a LoggerConfig from a dictionary (e.g., from JSON or YAML).

        ```json
        {
          "preset": "production",
          "send_to": ["ops@example.com"],
          "max_body_length": 4096
        }
        ```

        Args:
            data: Dictionary with configuration values

        Returns:
            LoggerConfig instance

        Raises:
            ValueError: If the preset or an option name is unknown
        """
        if not data:
            return cls()

        data = dict(data)
        preset_name = data.pop("preset", None)
        base_config = get_preset(preset_name) if preset_name else cls()

        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(
                f"Unknown config options {sorted(unknown)}. Available: {sorted(known)}"
            )

        for name in ("send_to", "send_to_fatal", "additional_sensitive_markers"):
            if isinstance(data.get(name), str):
                data[name] = [data[name]]

        return base_config.replace(**data)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the plain (non-callable) options to a dictionary.

        Returns:
            Dictionary representation of the config
        """
        return {
            f.name: (list(value) if isinstance(value, list) else value)
            for f in dataclasses.fields(self)
            if f.name not in self.CALLABLE_FIELDS
            for value in (getattr(self, f.name),)
        }

    def replace(self, **changes: Any) -> "LoggerConfig":
        """
        Create a copy with some options changed.

        List options are copied so the new config can be modified
        without affecting this one.
        """
        copied = {
            f.name: list(getattr(self, f.name))
            for f in dataclasses.fields(self)
            if isinstance(getattr(self, f.name), list) and f.name not in changes
        }
        return dataclasses.replace(self, **copied, **changes)


def default_config() -> LoggerConfig:
    """
    Get the default configuration.

    Returns:
        LoggerConfig with sensible defaults
    """
    return LoggerConfig()


def minimal_config() -> LoggerConfig:
    """
    Get a minimal configuration.

    No form values or request bodies, shallow exception chains.

    Returns:
        LoggerConfig for minimal capture
    """
    return LoggerConfig(
        max_form_value_length=0,
        max_body_length=0,
        max_exception_depth=2,
    )


def verbose_config() -> LoggerConfig:
    """
    Get a verbose configuration.

    Captures session items and source file paths.

    Returns:
        LoggerConfig for verbose capture
    """
    return LoggerConfig(
        include_session_items=True,
        include_file_paths_in_stack=True,
        max_exception_depth=5,
    )


def production_config() -> LoggerConfig:
    """
    Get a production-safe configuration.

    Shorter value limits and no session items.

    Returns:
        LoggerConfig for production use
    """
    return LoggerConfig(
        max_form_value_length=1024,
        max_header_value_length=1024,
        max_body_length=4096,
        include_session_items=False,
        include_file_paths_in_stack=False,
    )


# Preset configurations
PRESETS = {
    "default": default_config,
    "minimal": minimal_config,
    "verbose": verbose_config,
    "production": production_config,
}


def get_preset(name: str) -> LoggerConfig:
    """
    Get a preset configuration by name.

    Available presets:
    - default: Standard capture
    - minimal: No form values or bodies
    - verbose: Session items and file paths
    - production: Tighter truncation limits

    Args:
        name: Name of the preset

    Returns:
        LoggerConfig for the preset

    Raises:
        ValueError: If preset name is unknown
    """
    if name not in PRESETS:
        raise ValueError(
            f"Unknown preset '{name}'. Available: {list(PRESETS.keys())}"
        )
    return PRESETS[name]()
