"""
snaplog

Structured diagnostic-event capture. A capture call builds a categorized
snapshot of program and environment state, fingerprints the call site
with a stack signature, and delivers the record to e-mail and extension
sinks.

Key Components:
- events: Event kinds and the categorized record
- models: pydantic transport model for records
- report: HTML report rendering
- capture: Stack signatures, redaction, exception chains, host and runtime facts
- mail: Outbound mail transports
- sinks: E-mail sink, extension registry and logging sink
- config: Pipeline configuration and presets
- pipeline: The capture pipeline
- perf: Elapsed-time threshold timers
- default: Process-wide default pipeline and shortcuts
"""

from .events import (
    CategorizedRecord,
    EventKind,
    to_plain_value,
    values_equal,
)
from .models import RecordModel
from .report import render_report
from .capture import (
    ExceptionFlattener,
    HostContext,
    HostContextCollector,
    RedactionPolicy,
    RequestInfo,
    ResponseInfo,
    SessionInfo,
    SignatureComputer,
    StackFrame,
    StackSignature,
    UploadedFile,
    UserIdentity,
    current_host_context,
    is_cancellation,
    use_host_context,
    walk_stack,
)
from .mail import (
    InMemoryTransport,
    MailMessage,
    MailTransport,
    SmtpTransport,
)
from .sinks import (
    EmailSink,
    ExtensionRegistry,
    LogSink,
)
from .config import (
    LoggerConfig,
    PRESETS,
    default_config,
    get_preset,
)
from .pipeline import CapturePipeline
from .perf import (
    PerfTimer,
    TimerState,
    perf_timer,
)
from .default import (
    get_default_pipeline,
    set_default_pipeline,
    log_error,
    log_warning,
    log_info,
    log_fatal,
    log_exception,
    log_perf_issue,
    log_invalid_code_path,
)

__all__ = [
    # Events
    "CategorizedRecord",
    "EventKind",
    "to_plain_value",
    "values_equal",
    "RecordModel",
    "render_report",
    # Capture
    "ExceptionFlattener",
    "HostContext",
    "HostContextCollector",
    "RedactionPolicy",
    "RequestInfo",
    "ResponseInfo",
    "SessionInfo",
    "SignatureComputer",
    "StackFrame",
    "StackSignature",
    "UploadedFile",
    "UserIdentity",
    "current_host_context",
    "is_cancellation",
    "use_host_context",
    "walk_stack",
    # Mail
    "InMemoryTransport",
    "MailMessage",
    "MailTransport",
    "SmtpTransport",
    # Sinks
    "EmailSink",
    "ExtensionRegistry",
    "LogSink",
    # Config
    "LoggerConfig",
    "PRESETS",
    "default_config",
    "get_preset",
    # Pipeline
    "CapturePipeline",
    # Perf
    "PerfTimer",
    "TimerState",
    "perf_timer",
    # Default
    "get_default_pipeline",
    "set_default_pipeline",
    "log_error",
    "log_warning",
    "log_info",
    "log_fatal",
    "log_exception",
    "log_perf_issue",
    "log_invalid_code_path",
]
