"""
=============================================================================
STATIC ENGINE CONFIGURATION
=============================================================================

One immutable StaticConfig per engine, built at startup:

    ┌──────────────┬──────────────────────────┬─────────────────────────────┐
    │ Option       │ Default                  │ Effect                      │
    ├──────────────┼──────────────────────────┼─────────────────────────────┤
    │ hidden       │ False                    │ Serve dot-prefixed segments │
    │ max_age      │ 31536000000 (ms, 1 year) │ Cache-Control max-age       │
    │ etag         │ weak_etag                │ ETag generator              │
    │ index_file   │ "index.html"             │ Appended to "dir/" requests │
    │ chunk_size   │ 65536                    │ Bytes per body read         │
    └──────────────┴──────────────────────────┴─────────────────────────────┘

max_age accepts milliseconds (int/float) or a human readable duration:

    "500ms"  "30s"  "5m"  "2h"  "1d"  "1w"  "1y"  "1.5 hours"  "2 days"

    Cache-Control is rendered in SECONDS, rounded half-up:

        max_age="1d"   →  "public, max-age=86400"
        max_age=1500   →  "public, max-age=2"

=============================================================================
"""

import math
import os
import re
from dataclasses import dataclass, field
from typing import Union

from ..exceptions import ConfigurationError
from .etag import ETagFunction, weak_etag


Duration = Union[str, int, float]

ONE_YEAR_MS = 365 * 24 * 60 * 60 * 1000

_SECOND = 1000
_MINUTE = _SECOND * 60
_HOUR = _MINUTE * 60
_DAY = _HOUR * 24
_WEEK = _DAY * 7
_YEAR = _DAY * 365.25

_UNITS = {
    "years": _YEAR, "year": _YEAR, "yrs": _YEAR, "yr": _YEAR, "y": _YEAR,
    "weeks": _WEEK, "week": _WEEK, "w": _WEEK,
    "days": _DAY, "day": _DAY, "d": _DAY,
    "hours": _HOUR, "hour": _HOUR, "hrs": _HOUR, "hr": _HOUR, "h": _HOUR,
    "minutes": _MINUTE, "minute": _MINUTE, "mins": _MINUTE, "min": _MINUTE, "m": _MINUTE,
    "seconds": _SECOND, "second": _SECOND, "secs": _SECOND, "sec": _SECOND, "s": _SECOND,
    "milliseconds": 1, "millisecond": 1, "msecs": 1, "msec": 1, "ms": 1,
}

_DURATION_PATTERN = re.compile(
    r"^(?P<value>-?(?:\d+)?\.?\d+) *(?P<unit>[a-z]+)?$",
    re.IGNORECASE,
)


def parse_duration(value: Duration) -> float:
    """
    Convert a duration to milliseconds.

    Numbers are taken as milliseconds already. Strings without a unit are
    milliseconds too ("100" → 100.0).

    Raises:
        ConfigurationError: For unparseable strings, unknown units,
                            negative or non-finite values.
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid duration: {value!r}")

    if isinstance(value, (int, float)):
        milliseconds = float(value)
    elif isinstance(value, str):
        match = _DURATION_PATTERN.match(value.strip())
        if not match:
            raise ConfigurationError(f"Invalid duration: {value!r}")
        unit = (match.group("unit") or "ms").lower()
        if unit not in _UNITS:
            raise ConfigurationError(f"Unknown duration unit {unit!r} in {value!r}")
        milliseconds = float(match.group("value")) * _UNITS[unit]
    else:
        raise ConfigurationError(f"Invalid duration type: {type(value).__name__}")

    if not math.isfinite(milliseconds) or milliseconds < 0:
        raise ConfigurationError(f"Duration must be a non-negative number: {value!r}")
    return milliseconds


def max_age_seconds(value: Duration) -> int:
    """Duration → whole seconds, rounding .5 up."""
    return int(math.floor(parse_duration(value) / 1000 + 0.5))


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class StaticConfig:
    """
    Immutable configuration for a StaticEngine.

    Built once, validated eagerly, shared read-only by every request.
    Use ``dataclasses.replace`` (or ``StaticEngine.configure``) to derive
    a changed copy during setup.
    """

    hidden: bool = False
    """Allow path segments that start with a dot."""

    max_age: Duration = ONE_YEAR_MS
    """Cache lifetime, milliseconds or a duration string like "1d"."""

    etag: ETagFunction = field(default=weak_etag)
    """ETag generator, sync or async, called at most once per request."""

    index_file: str = "index.html"
    """File served for requests that end in "/"."""

    chunk_size: int = 64 * 1024
    """Read size for streamed bodies."""

    def __post_init__(self):
        self.validate()

    @property
    def cache_control(self) -> str:
        """The Cache-Control header value sent with every 200/304."""
        return f"public, max-age={max_age_seconds(self.max_age)}"

    @classmethod
    def from_env(cls) -> "StaticConfig":
        """
        Build from environment variables.

            STATIC_HIDDEN   "1"/"true" to serve dotfiles (default: off)
            STATIC_MAX_AGE  Duration, e.g. "1d" (default: one year)
        """
        return cls(
            hidden=env_flag("STATIC_HIDDEN"),
            max_age=os.getenv("STATIC_MAX_AGE", ONE_YEAR_MS),
        )

    def validate(self) -> None:
        """Fail fast on bad values."""
        parse_duration(self.max_age)

        if not callable(self.etag):
            raise ConfigurationError("etag must be a callable taking a ResolvedFile")

        if not self.index_file or "/" in self.index_file or self.index_file in (".", ".."):
            raise ConfigurationError(f"Invalid index_file: {self.index_file!r}")

        if self.chunk_size < 1:
            raise ConfigurationError("chunk_size must be >= 1")
