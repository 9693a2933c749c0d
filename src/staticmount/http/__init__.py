"""
=============================================================================
HTTP MODULE
=============================================================================

Protocol pieces the static engine and the server share:

    request.py       Raw bytes → HTTPRequest (lowercase headers)
    response.py      HTTPResponse with in-memory body OR file stream,
                     HTTP date formatting/parsing
    freshness.py     If-None-Match / If-Modified-Since evaluation
    status_codes.py  HTTPStatus enum with reason phrases
    mime_types.py    Extension → Content-Type

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    format_http_date,
    parse_http_date,
    not_found,
    error_response,
    internal_error,
)
from .freshness import is_fresh
from .status_codes import HTTPStatus
from .mime_types import content_type_for, get_content_type, guess_mime_type

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "HTTPResponse",
    "format_http_date",
    "parse_http_date",
    "not_found",
    "error_response",
    "internal_error",
    "is_fresh",
    "HTTPStatus",
    "content_type_for",
    "get_content_type",
    "guess_mime_type",
]
