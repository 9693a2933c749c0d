"""
=============================================================================
PATH RESOLVER
=============================================================================

Turns a request path into a file on disk, or None.

=============================================================================
ALGORITHM
=============================================================================

    resolve("/assets/css/")
        │
        ▼
    1. HIDDEN FILTER ─────────────────────────────────────────────────────
       Any segment starting with "." (".git", ".env", "..")?  → None
       (skipped when hidden files are enabled)
        │
        ▼
    2. FOR EACH MOUNT WHOSE PREFIX MATCHES (registration order)
        │
        │   prefix "/assets/"  →  suffix "css/"
        │   suffix empty or ends in "/"  →  "css/index.html"
        │
        ▼
    3. SAFE JOIN ─────────────────────────────────────────────────────────
       normpath(directory / suffix) must stay inside directory,
       otherwise this mount is skipped (and the attempt logged)
        │
        ▼
    4. STAT (worker thread) ──────────────────────────────────────────────
       FileNotFoundError / NotADirectoryError  → try next mount
       any other OSError                       → propagate
        │
        ▼
    5. REGULAR FILE? ─────────────────────────────────────────────────────
       directory, socket, fifo ...             → try next mount
        │
        ▼
    6. ResolvedFile(filename, pathname, mount, size, mtime, content_type)

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    GET /static/..%2f..%2fetc/passwd

    The hidden filter already refuses ".." segments, but when hidden
    files are enabled the join itself is the last line:

        safe_join("/srv/public", "../../etc/passwd")  → None
        safe_join("/srv/public", "/etc/passwd")       → None (absolute)
        safe_join("/srv/public", "a/../b.txt")        → "/srv/public/b.txt"

    The check is purely lexical. Symlinks inside a mount are followed by
    the OS like any other file.

=============================================================================
"""

import asyncio
import logging
import os
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ..http.mime_types import content_type_for
from .mounts import MountEntry, MountTable


logger = logging.getLogger(__name__)

_NOT_FOUND_ERRORS = (FileNotFoundError, NotADirectoryError)


@dataclass
class ResolvedFile:
    """
    A request path resolved to a regular file.

    Created per request and owned by that request only; ``etag`` is
    filled in lazily by compute_etag() and never shared.
    """

    filename: str
    pathname: str
    mount: MountEntry
    size: int
    mtime: float
    is_file: bool = True
    content_type: Optional[str] = None
    etag: Optional[str] = None
    mtime_ns: Optional[int] = None

    @property
    def last_modified(self) -> datetime:
        """mtime as an aware UTC datetime."""
        return datetime.fromtimestamp(self.mtime, tz=timezone.utc)

    @classmethod
    def from_stat(
        cls,
        filename: str,
        pathname: str,
        mount: MountEntry,
        stat_result: os.stat_result,
    ) -> "ResolvedFile":
        return cls(
            filename=filename,
            pathname=pathname,
            mount=mount,
            size=stat_result.st_size,
            mtime=stat_result.st_mtime,
            mtime_ns=stat_result.st_mtime_ns,
            is_file=stat.S_ISREG(stat_result.st_mode),
            content_type=content_type_for(filename),
        )


def has_hidden_segment(pathname: str) -> bool:
    """True if any non-empty "/" segment starts with a dot."""
    return any(segment.startswith(".") for segment in pathname.split("/") if segment)


def is_within(directory: str, filename: str) -> bool:
    """Lexical containment check on normalized absolute paths."""
    directory = os.path.normpath(directory)
    filename = os.path.normpath(filename)
    try:
        return os.path.commonpath([directory, filename]) == directory
    except ValueError:
        # Different drives on Windows, or mixed absolute/relative.
        return False


def safe_join(directory: str, suffix: str) -> Optional[str]:
    """
    Join ``suffix`` onto ``directory`` without ever leaving it.

    Returns the normalized absolute filename, or None if the suffix is
    absolute, contains a NUL byte, or climbs out of ``directory``.
    """
    if "\x00" in suffix:
        return None

    if os.path.isabs(suffix) or suffix.startswith(("/", "\\")):
        return None

    candidate = os.path.normpath(os.path.join(directory, suffix))
    if not is_within(directory, candidate):
        return None
    return candidate


class PathResolver:
    """
    Resolves request paths against a MountTable.

    Usage:
        resolver = PathResolver(table)
        resolved = await resolver.resolve("/assets/app.js")
        if resolved is None:
            ...  # fall through to the caller's 404
    """

    def __init__(self, mounts: MountTable, hidden: bool = False, index_file: str = "index.html"):
        self.mounts = mounts
        self.hidden = hidden
        self.index_file = index_file

    async def resolve(self, pathname: str) -> Optional[ResolvedFile]:
        """
        Find the first mount that has a regular file for ``pathname``.

        Raises:
            OSError: If stat() fails for a reason other than "not found"
                     (permission denied, I/O error, too many symlinks).
        """
        if not self.hidden and has_hidden_segment(pathname):
            logger.debug(f"Refusing hidden path: {pathname}")
            return None

        for mount in self.mounts.matching(pathname):
            suffix = mount.strip(pathname)
            if not suffix or suffix.endswith("/"):
                suffix += self.index_file

            filename = safe_join(mount.directory, suffix)
            if filename is None:
                logger.warning(f"Path traversal attempt: {pathname!r} under {mount.prefix}")
                continue

            try:
                stat_result = await asyncio.to_thread(os.stat, filename)
            except _NOT_FOUND_ERRORS:
                continue

            if not stat.S_ISREG(stat_result.st_mode):
                continue

            logger.debug(f"Resolved {pathname} → {filename}")
            return ResolvedFile.from_stat(filename, pathname, mount, stat_result)

        return None
