"""
Static file engine: mounts, resolution, ETags, freshness and streaming.
"""

from .config import ONE_YEAR_MS, StaticConfig, max_age_seconds, parse_duration
from .engine import ALLOW, LookupHook, Outcome, StaticEngine
from .etag import compute_etag, weak_etag
from .mounts import MountEntry, MountTable
from .resolver import PathResolver, ResolvedFile, safe_join
from .streams import FileStream

__all__ = [
    "ALLOW",
    "FileStream",
    "LookupHook",
    "MountEntry",
    "MountTable",
    "ONE_YEAR_MS",
    "Outcome",
    "PathResolver",
    "ResolvedFile",
    "StaticConfig",
    "StaticEngine",
    "compute_etag",
    "max_age_seconds",
    "parse_duration",
    "safe_join",
    "weak_etag",
]
