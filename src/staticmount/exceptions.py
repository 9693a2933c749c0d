"""
=============================================================================
STATICMOUNT EXCEPTIONS
=============================================================================

Every error the static engine raises on purpose derives from
StaticMountError, so callers can catch the whole family in one place.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ERROR TAXONOMY                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ConfigurationError   Bad mount prefix, bad max-age, bad etag fn. │
    │                        Raised at setup, server never starts.        │
    │                                                                      │
    │   (not found)          NOT an exception. Lookups return None and   │
    │                        the caller continues its own fallback chain. │
    │                                                                      │
    │   OSError              stat() failed for a reason other than       │
    │                        "does not exist". Propagates unchanged and   │
    │                        becomes a 500 upstream.                      │
    │                                                                      │
    │   StreamError          Reading the file failed after the 200       │
    │                        headers were committed. The connection is    │
    │                        aborted, never silently truncated.           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from typing import Optional


class StaticMountError(Exception):
    """Base class for errors raised by the static engine."""


class ConfigurationError(StaticMountError, ValueError):
    """
    Raised when the engine or server is configured incorrectly.

    Subclasses ValueError so code written against the classic
    ``config.validate()`` contract keeps catching it.
    """


class StreamError(StaticMountError):
    """
    Raised when a committed response body can no longer be produced.

    Carries the filename and the underlying OSError (also chained as
    ``__cause__``) so the server can log something useful before it
    drops the connection.
    """

    def __init__(self, message: str, filename: str = "", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.filename = filename
        self.cause = cause
