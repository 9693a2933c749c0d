"""
=============================================================================
CONDITIONAL REQUESTS: IS THE CLIENT'S COPY FRESH?
=============================================================================

Decides whether a GET/HEAD can be answered with 304 Not Modified, by
comparing the request's validators against the response headers the
static engine has ALREADY set.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    FRESHNESS DECISION                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   no If-None-Match and no If-Modified-Since ──────────► STALE       │
    │                                                                      │
    │   Cache-Control: no-cache (request) ──────────────────► STALE       │
    │                                                                      │
    │   If-None-Match present (and not "*"):                              │
    │       response ETag missing ──────────────────────────► STALE       │
    │       no listed tag matches (weak compare) ───────────► STALE       │
    │                                                                      │
    │   If-Modified-Since present:                                        │
    │       Last-Modified missing or newer ─────────────────► STALE       │
    │                                                                      │
    │   otherwise ──────────────────────────────────────────► FRESH (304) │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Both validators must pass when both are sent. ETag comparison is weak
(RFC 7232 section 2.3.2): W/"x" matches "x".

=============================================================================
"""

import re
from typing import Mapping, Optional

from .response import parse_http_date


_NO_CACHE = re.compile(r"(?:^|,)\s*?no-cache\s*?(?:,|$)")


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive lookup over any mapping."""
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def parse_token_list(value: str) -> list[str]:
    """
    Split an If-None-Match style list on commas and spaces.

    >>> parse_token_list('W/"a", "b"')
    ['W/"a"', '"b"']
    """
    return [token for token in re.split(r"[ ,]+", value.strip()) if token]


def etag_matches(candidate: str, etag: str) -> bool:
    """Weak comparison: strip any W/ prefix on either side."""
    return candidate == etag or candidate == "W/" + etag or "W/" + candidate == etag


def is_fresh(request_headers: Mapping[str, str], response_headers: Mapping[str, str]) -> bool:
    """
    Check whether the client's cached representation is still fresh.

    Args:
        request_headers:  Incoming headers (any case).
        response_headers: Headers already set on the outgoing response;
                          ETag and Last-Modified are read from here.

    Returns:
        True if a 304 should be sent instead of the body.
    """
    modified_since = _header(request_headers, "If-Modified-Since")
    none_match = _header(request_headers, "If-None-Match")

    if not modified_since and not none_match:
        return False

    # An explicit end-to-end reload always gets the full body.
    cache_control = _header(request_headers, "Cache-Control")
    if cache_control and _NO_CACHE.search(cache_control):
        return False

    if none_match and none_match.strip() != "*":
        etag = _header(response_headers, "ETag")
        if not etag:
            return False
        if not any(etag_matches(match, etag) for match in parse_token_list(none_match)):
            return False

    if modified_since:
        last_modified = parse_http_date(_header(response_headers, "Last-Modified") or "")
        since = parse_http_date(modified_since)
        if last_modified is None or since is None or last_modified > since:
            return False

    return True
