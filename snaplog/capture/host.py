"""
Host Request/Session Context.

A web host can expose the request currently being served so that
captures made while handling it carry the user, request, response and
session facts. The host binds its context with ``use_host_context``;
the binding lives in a context variable, so each thread and asyncio task
sees only its own request.

The dataclasses below describe the attributes the collector reads. Any
object exposing the same attribute names can be used instead, which is
the usual way to adapt a framework's request object.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import (
    Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Union,
)

from snaplog.capture.redaction import RedactionPolicy
from snaplog.events import CategorizedRecord

logger = logging.getLogger(__name__)

TEXT_CONTENT_MARKERS = (
    "application/json",
    "text/",
    "html/",
    "application/xml",
    "+xml",
)

MultiValue = Union[str, Sequence[str], None]

UTF8_MAX_BYTES = 4


@dataclass
class UserIdentity:
    name: Optional[str] = None
    auth_type: Optional[str] = None
    is_authenticated: bool = True


@dataclass
class UploadedFile:
    filename: Optional[str] = None
    content_type: Optional[str] = None
    content_length: int = 0


@dataclass
class RequestInfo:
    """
    Read-only view of the current HTTP request.

    ``body`` may be text, bytes, a callable returning either, or a
    readable stream; it is only read for text-like content types.
    """
    method: Optional[str] = None
    path: Optional[str] = None
    raw_url: Optional[str] = None
    url: Optional[str] = None
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    remote_addr: Optional[str] = None
    referrer: Optional[str] = None
    is_authenticated: bool = False
    headers: Mapping[str, MultiValue] = field(default_factory=dict)
    cookies: Mapping[str, Optional[str]] = field(default_factory=dict)
    form: Mapping[str, MultiValue] = field(default_factory=dict)
    files: Sequence[UploadedFile] = field(default_factory=list)
    body: Any = None


@dataclass
class ResponseInfo:
    status_code: Optional[int] = None
    status: Optional[str] = None
    content_type: Optional[str] = None
    charset: Optional[str] = None
    redirect_location: Optional[str] = None
    headers: Mapping[str, MultiValue] = field(default_factory=dict)


@dataclass
class SessionInfo:
    session_id: Optional[str] = None
    is_new: bool = False
    items: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class HostContext:
    user: Optional[UserIdentity] = None
    request: Optional[RequestInfo] = None
    response: Optional[ResponseInfo] = None
    session: Optional[SessionInfo] = None


_current_host_context: contextvars.ContextVar[Optional[Any]] = contextvars.ContextVar(
    "snaplog_host_context", default=None
)


def current_host_context() -> Optional[Any]:
    """Get the host context bound to the current thread or task, if any."""
    return _current_host_context.get()


@contextmanager
def use_host_context(context: Any) -> Iterator[Any]:
    """
    Bind a host context for the duration of a block.

    Example:
        with use_host_context(HostContext(request=RequestInfo(path="/cart"))):
            handle_request()
    """
    token = _current_host_context.set(context)
    try:
        yield context
    finally:
        _current_host_context.reset(token)


def _read_stream(stream: Any, limit: Optional[int]) -> Any:
    if not limit or limit <= 0:
        return stream.read()
    size = limit + 1
    chunk = stream.read(size)
    # UTF-8 needs up to 4 bytes per character
    if isinstance(chunk, (bytes, bytearray)) and len(chunk) == size:
        chunk = bytes(chunk) + stream.read(size * (UTF8_MAX_BYTES - 1))
    return chunk


def _values(value: MultiValue) -> List[Optional[str]]:
    if value is None:
        return []
    if isinstance(value, (str, bytes)):
        return [value]
    return list(value)


class HostContextCollector:
    """
    Copy host facts into a record.

    Every source (user, request, body, response, session) is read
    separately. A source that raises is reported through ``on_error``
    and the remaining sources are still collected.

    Args:
        redaction: Policy applied to form, header, cookie and session values
        max_form_value_length: Form value truncation; 0 skips form capture
        max_header_value_length: Header and cookie value truncation (0 keeps full values)
        max_body_length: Body truncation; 0 skips body capture
        include_session_items: Copy session items into HttpSession
        on_error: Receives exceptions raised while reading a source
    """

    def __init__(
        self,
        redaction: RedactionPolicy,
        max_form_value_length: int = 8192,
        max_header_value_length: int = 8192,
        max_body_length: int = 32768,
        include_session_items: bool = False,
        on_error: Optional[Callable[[BaseException], None]] = None,
    ):
        self.redaction = redaction
        self.max_form_value_length = max_form_value_length
        self.max_header_value_length = max_header_value_length
        self.max_body_length = max_body_length
        self.include_session_items = include_session_items
        self._on_error = on_error

    def collect(self, record: CategorizedRecord, context: Any) -> None:
        """Append every available host fact to the record."""
        if context is None:
            return
        steps = (
            ("user", self.append_user_info),
            ("request", self.append_request_info),
            ("response", self.append_response_info),
            ("session", self.append_session_info),
        )
        for source, step in steps:
            try:
                step(record, getattr(context, source, None))
            except Exception as e:
                self._report(source, e)

    def _report(self, source: str, error: Exception) -> None:
        logger.debug("Reading host %s failed: %s", source, error)
        if self._on_error is not None:
            self._on_error(error)

    def append_user_info(self, record: CategorizedRecord, user: Any) -> None:
        if user is None or not getattr(user, "is_authenticated", False):
            return
        category = record.get_or_create_category("HttpUser")
        category["IsAuthenticated"] = True
        category["Name"] = getattr(user, "name", None)
        category["AuthenticationType"] = getattr(user, "auth_type", None)

    def append_request_info(self, record: CategorizedRecord, request: Any) -> None:
        if request is None:
            return
        category = record.get_or_create_category("HttpRequest")
        category["ContentLength"] = request.content_length
        category["ContentType"] = request.content_type
        category["HttpMethod"] = request.method
        category["IsAuthenticated"] = request.is_authenticated
        category["Path"] = request.path
        category["RawUrl"] = request.raw_url
        category["Url"] = request.url
        category["Referrer"] = request.referrer
        category["UserHostAddress"] = request.remote_addr

        category["Headers"] = self._multi_values(
            request.headers or {}, self.max_header_value_length, "{key}({index})"
        )
        category["Cookies"] = {
            name: self.redaction.capture_value(name, value, self.max_header_value_length)
            for name, value in (request.cookies or {}).items()
        }

        if self.max_form_value_length > 0 and request.form:
            category["Form"] = self._multi_values(
                request.form, self.max_form_value_length, "Form:{key}:{index}", key_format="Form:{key}"
            )

        files = list(request.files or [])
        if files:
            file_info: Dict[str, Any] = {}
            for i, upload in enumerate(files):
                file_info[f"File:{i}:FileName"] = upload.filename
                file_info[f"File:{i}:ContentType"] = upload.content_type
                file_info[f"File:{i}:ContentLength"] = upload.content_length
            category["Files"] = file_info

        if self.max_body_length > 0 and self.is_text_content(request.content_type):
            try:
                body = self.read_body(request.body, self.max_body_length)
            except Exception as e:
                self._report("request body", e)
            else:
                if body is not None:
                    category["Body"] = self.redaction.truncate(body, self.max_body_length)

    def _multi_values(
        self,
        values: Mapping[str, MultiValue],
        max_length: int,
        indexed_format: str,
        key_format: str = "{key}",
    ) -> Dict[str, str]:
        result: Dict[str, str] = {}
        for key, value in values.items():
            items = _values(value)
            if len(items) <= 1:
                name = key_format.format(key=key)
                result[name] = self.redaction.capture_value(
                    key, items[0] if items else "", max_length
                )
            else:
                for index, item in enumerate(items):
                    name = indexed_format.format(key=key, index=index)
                    result[name] = self.redaction.capture_value(
                        key, item, max_length
                    )
        return result

    @staticmethod
    def is_text_content(content_type: Optional[str]) -> bool:
        if not content_type:
            return False
        lowered = content_type.lower()
        return any(marker in lowered for marker in TEXT_CONTENT_MARKERS)

    @staticmethod
    def read_body(body: Any, limit: Optional[int] = None) -> Optional[str]:
        """
        Read a request body given as text, bytes, callable or stream.

        With a positive ``limit``, streams are read only far enough to
        decide whether the body is longer than ``limit`` characters.
        """
        if body is None:
            return None
        if callable(body) and not hasattr(body, "read"):
            body = body()
        if hasattr(body, "read"):
            if getattr(body, "seekable", lambda: False)():
                body.seek(0)
            body = _read_stream(body, limit)
        if isinstance(body, (bytes, bytearray)):
            return bytes(body).decode("utf-8", errors="replace")
        return None if body is None else str(body)

    def append_response_info(self, record: CategorizedRecord, response: Any) -> None:
        if response is None:
            return
        category = record.get_or_create_category("HttpResponse")
        category["StatusCode"] = response.status_code
        category["Status"] = response.status
        category["ContentType"] = response.content_type
        category["Charset"] = response.charset
        category["RedirectLocation"] = response.redirect_location
        headers = getattr(response, "headers", None)
        if headers:
            category["Headers"] = self._multi_values(headers, self.max_header_value_length, "{key}({index})")

    def append_session_info(self, record: CategorizedRecord, session: Any) -> None:
        if session is None:
            return
        category = record.get_or_create_category("HttpSession")
        category["SessionID"] = session.session_id
        category["IsNewSession"] = session.is_new

        if self.include_session_items:
            for key, value in (session.items or {}).items():
                key = str(key)
                if self.redaction.is_sensitive(key):
                    value = self.redaction.placeholder(value)
                category[key] = value
