"""
=============================================================================
ETAG GENERATION AND PER-REQUEST MEMOIZATION
=============================================================================

An ETag is a fingerprint of one version of a file. The default fingerprint
is derived from stat() data only, so it costs nothing to compute:

    W/"<size in hex>-<mtime in milliseconds, hex>"

    size 1024, mtime 2026-01-15T10:00:00Z  →  W/"400-19bc1f2a6c0"

It is WEAK (W/ prefix): two byte-identical files with different mtimes get
different tags, and a file rewritten within the same millisecond with the
same size keeps its tag. That is the usual trade-off for static servers.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    MEMOIZATION SCOPE                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   request ──► ResolvedFile ──► compute_etag() ──► etag stored ON   │
    │                                       │            that instance    │
    │                                       └─ 2nd call: cached value     │
    │                                                                      │
    │   next request ──► NEW ResolvedFile ──► computed again              │
    │                                                                      │
    │   No cross-request cache, so nothing ever needs invalidating.       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Custom generators may be sync or async (e.g. hashing the file contents on
a worker thread). compute_etag() awaits whatever comes back.

=============================================================================
"""

import inspect
from typing import TYPE_CHECKING, Awaitable, Callable, Union

if TYPE_CHECKING:
    from .resolver import ResolvedFile


ETagFunction = Callable[["ResolvedFile"], Union[str, Awaitable[str]]]


def weak_etag(resolved: "ResolvedFile") -> str:
    """Default generator: weak tag from size and mtime (milliseconds)."""
    if resolved.mtime_ns is not None:
        mtime_ms = resolved.mtime_ns // 1_000_000
    else:
        mtime_ms = int(resolved.mtime * 1000)
    return f'W/"{resolved.size:x}-{mtime_ms:x}"'


def quote_etag(value: str) -> str:
    """
    Wrap a bare value in double quotes unless it already is an entity-tag.

        abc123      →  "abc123"
        "abc123"    →  "abc123"
        W/"abc123"  →  W/"abc123"
    """
    if value.startswith(('"', 'W/"')):
        return value
    return f'"{value}"'


async def compute_etag(resolved: "ResolvedFile", generator: ETagFunction) -> str:
    """
    Return the ETag for ``resolved``, calling ``generator`` at most once.

    The result is stored on the ResolvedFile, so asking twice within one
    request (headers, then logging, then a lookup hook) is free.
    """
    if resolved.etag is not None:
        return resolved.etag

    value = generator(resolved)
    if inspect.isawaitable(value):
        value = await value

    resolved.etag = quote_etag(str(value))
    return resolved.etag
