"""
=============================================================================
HTTP RESPONSE
=============================================================================

The response object handed from the static engine (and any middleware) to
the connection layer.

A static file response is different from a JSON API response in one way
that matters: the body usually is NOT in memory. It is a lazily opened
file stream that the connection pulls chunk by chunk:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     TWO KINDS OF BODY                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   body=b"..."          Small, built in memory (errors, JSON).      │
    │                        Content-Length computed from len(body).      │
    │                                                                      │
    │   stream=FileStream    Served file. Content-Length comes from      │
    │                        stat() and was set by the engine. The        │
    │                        connection iterates it and ALWAYS closes it. │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Serialization of the head:

        HTTP/1.1 200 OK\r\n
        Last-Modified: Wed, 15 Jan 2026 10:00:00 GMT\r\n
        Content-Length: 1024\r\n
        Content-Type: text/css; charset=utf-8\r\n
        ETag: W/"400-19bc1f2a6c0"\r\n
        Cache-Control: public, max-age=31536000\r\n
        Date: ...\r\n
        Server: staticmount/1.0\r\n
        \r\n

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, AsyncIterator, Dict, Optional, Union
import json

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    Attributes:
        status:  HTTP status code (enum).
        headers: Response headers, insertion ordered. The static engine
                 relies on the order it sets them in.
        body:    In-memory body bytes.
        stream:  Async iterable of body chunks (file responses). Takes
                 precedence over ``body`` when present.
        version: HTTP version for the status line.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    stream: Optional[AsyncIterator[bytes]] = None
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE"""
        return f"{self.version} {int(self.status)} {HTTPStatus(self.status).phrase}"

    @property
    def has_body(self) -> bool:
        """True when there is something to send after the head."""
        return self.stream is not None or bool(self.body)

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def remove_header(self, name: str) -> "HTTPResponse":
        """Remove a header regardless of case. Returns self for chaining."""
        lowered = name.lower()
        for key in [k for k in self.headers if k.lower() == lowered]:
            del self.headers[key]
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        """Set an in-memory body, encoding strings as UTF-8."""
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def head_bytes(self, server_name: str = "staticmount/1.0") -> bytes:
        """
        Serialize the status line and headers (everything before the body).

        Content-Length is only auto-filled for in-memory bodies on statuses
        that allow one; streamed responses already carry the stat() size.
        """
        response_headers = dict(self.headers)
        status = HTTPStatus(self.status)

        if self.get_header("Content-Length") is None and self.stream is None and status.allows_body:
            response_headers["Content-Length"] = str(len(self.body))

        if self.get_header("Date") is None:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if self.get_header("Server") is None:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        return "\r\n".join(lines).encode("latin-1") + b"\r\n"

    def to_bytes(self, server_name: str = "staticmount/1.0") -> bytes:
        """Serialize head plus in-memory body. Streams are not included."""
        return self.head_bytes(server_name) + self.body


# =============================================================================
# HTTP DATES
# =============================================================================

_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an IMF-fixdate (RFC 7231 section 7.1.1.1).

    Example: Wed, 15 Jan 2026 10:00:00 GMT

    HTTP dates are always GMT; aware datetimes are converted first.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def parse_http_date(value: str) -> Optional[float]:
    """
    Parse an HTTP date header into a POSIX timestamp.

    Accepts all three formats RFC 7231 requires recipients to understand
    (IMF-fixdate, RFC 850, asctime). Returns None for garbage.
    """
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def json_response(status: HTTPStatus, data: Any) -> HTTPResponse:
    """Build a small JSON response (used for errors)."""
    body = json.dumps(data).encode("utf-8")
    return HTTPResponse(
        status=status,
        headers={"Content-Type": "application/json; charset=utf-8"},
        body=body,
    )


def not_found(message: str = "Not Found") -> HTTPResponse:
    """Create a 404 Not Found response."""
    return json_response(HTTPStatus.NOT_FOUND, {"error": message})


def error_response(status: HTTPStatus, message: str) -> HTTPResponse:
    """Create an error response with a JSON body."""
    return json_response(status, {"error": message})


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """
    Create a 500 Internal Server Error response.

    Keep the message generic; details belong in the server log.
    """
    return json_response(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": message})
