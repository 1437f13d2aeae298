"""
Capture Building Blocks.

Pieces the capture pipeline assembles a record from:
- signature: call-stack walking and dedup signatures
- redaction: sensitive-field placeholders and truncation
- exceptions: cause-chain flattening and cancellation detection
- host: request/response/session facts supplied by a web host
- environment: thread, process and machine facts
"""

from .signature import (
    SignatureComputer,
    StackFrame,
    StackSignature,
    walk_stack,
)
from .redaction import RedactionPolicy
from .exceptions import (
    ExceptionFlattener,
    describe_exception,
    is_cancellation,
)
from .host import (
    HostContext,
    HostContextCollector,
    RequestInfo,
    ResponseInfo,
    SessionInfo,
    UploadedFile,
    UserIdentity,
    current_host_context,
    use_host_context,
)
from .environment import (
    append_computer_info,
    append_process_info,
    append_thread_info,
)

__all__ = [
    # Signature
    "SignatureComputer",
    "StackFrame",
    "StackSignature",
    "walk_stack",
    # Redaction
    "RedactionPolicy",
    # Exceptions
    "ExceptionFlattener",
    "describe_exception",
    "is_cancellation",
    # Host context
    "HostContext",
    "HostContextCollector",
    "RequestInfo",
    "ResponseInfo",
    "SessionInfo",
    "UploadedFile",
    "UserIdentity",
    "current_host_context",
    "use_host_context",
    # Environment
    "append_computer_info",
    "append_process_info",
    "append_thread_info",
]
