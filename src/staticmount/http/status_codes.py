"""
=============================================================================
HTTP STATUS CODES (RFC 7231)
=============================================================================

The status codes a static file server actually emits, with their reason
phrases.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  2xx   │ 200 OK            - File served (GET) or described (HEAD)│
    │        │ 204 No Content    - OPTIONS on a servable path           │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  3xx   │ 304 Not Modified  - Client cache is still fresh          │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  4xx   │ 400 Bad Request   - Malformed request                    │
    │        │ 404 Not Found     - No mount has the file                │
    │        │ 405 Method Not Allowed - Anything but GET/HEAD/OPTIONS   │
    │        │ 408 Request Timeout                                      │
    │        │ 413 Payload Too Large                                    │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  5xx   │ 500 Internal Server Error - stat() failed unexpectedly   │
    │        │ 505 HTTP Version Not Supported                           │
    └────────┴───────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    Extends IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_MODIFIED == 304
        True
        >>> HTTPStatus.NOT_MODIFIED.phrase
        'Not Modified'
    """

    OK = 200
    NO_CONTENT = 204                    # OPTIONS preflight answer

    NOT_MODIFIED = 304                  # Conditional request hit

    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405            # Must carry an Allow header
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    INTERNAL_SERVER_ERROR = 500
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 304 Not Modified
                     ─── ────────────
                      │       └── Reason phrase
                      └────────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def allows_body(self) -> bool:
        """
        Check if a response with this status may carry a body.

        RFC 7230 section 3.3.3: 1xx, 204 and 304 responses never have one.
        """
        return not (100 <= self < 200 or self in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED))


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
