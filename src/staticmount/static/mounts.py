"""
Mount table: ordered (prefix, directory) pairs.

Prefixes always start and end with "/" and are matched as plain string
prefixes. "/assets/" matches "/assets/app.js" and "/assets/x/y.css", but
there is no path-segment awareness beyond the trailing slash added here.
When prefixes overlap, entries are tried in registration order.
"""

import logging
import os
from dataclasses import dataclass
from typing import Iterator, List, Optional

from ..exceptions import ConfigurationError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MountEntry:
    """A URL prefix bound to an absolute directory."""

    prefix: str
    directory: str

    def matches(self, pathname: str) -> bool:
        return pathname.startswith(self.prefix)

    def strip(self, pathname: str) -> str:
        """The part of ``pathname`` after the prefix."""
        return pathname[len(self.prefix):]


def normalize_prefix(prefix: str) -> str:
    """
    Validate and normalize a mount prefix.

    >>> normalize_prefix("/static")
    '/static/'

    Raises:
        ConfigurationError: If the prefix does not begin with "/".
    """
    if not isinstance(prefix, str) or not prefix.startswith("/"):
        raise ConfigurationError(f"Mounted paths must begin with a '/': {prefix!r}")
    if not prefix.endswith("/"):
        prefix += "/"
    return prefix


class MountTable:
    """
    Append-only list of MountEntry objects.

    Usage:
        table = MountTable()
        table.mount("./public")               # prefix "/"
        table.mount("/assets", "./build")     # prefix "/assets/"
    """

    def __init__(self):
        self._entries: List[MountEntry] = []

    def mount(self, prefix: str, directory: Optional[str] = None) -> MountEntry:
        """
        Register a directory under a URL prefix.

        Called with one argument, that argument is the directory and the
        prefix defaults to "/". The directory is made absolute right away,
        so later chdir() calls do not move the mount.
        """
        if directory is None:
            prefix, directory = "/", prefix

        entry = MountEntry(
            prefix=normalize_prefix(prefix),
            directory=os.path.abspath(os.fspath(directory)),
        )
        self._entries.append(entry)
        logger.debug(f"Mounted {entry.directory} at {entry.prefix}")
        return entry

    def matching(self, pathname: str) -> Iterator[MountEntry]:
        """Entries whose prefix matches, in registration order."""
        return (entry for entry in self._entries if entry.matches(pathname))

    def __iter__(self) -> Iterator[MountEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
