"""
=============================================================================
STATIC ENGINE
=============================================================================

Resolves a request against the mount table and decides what to send.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    REQUEST STATE MACHINE                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   lookup(path) ── None ──────────────────────► return None (404)    │
    │        │                                                             │
    │        ▼                                                             │
    │   METHOD_CHECK                                                       │
    │        ├── OPTIONS ─────────► 204  Allow: OPTIONS,HEAD,GET           │
    │        ├── not GET/HEAD ────► 405  Allow: OPTIONS,HEAD,GET           │
    │        ▼                                                             │
    │   HEADER_SET (200)                                                   │
    │        Last-Modified, Content-Length, Content-Type, ETag,            │
    │        Cache-Control                                                 │
    │        ▼                                                             │
    │   FRESHNESS_CHECK                                                    │
    │        ├── fresh ───────────► 304, headers kept, no body            │
    │        ├── HEAD ────────────► 200, headers only                     │
    │        └── GET ─────────────► 200 + FileStream (opened lazily)      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The file is never opened for OPTIONS, 405, HEAD or 304. Headers are all
set before freshness is evaluated, so a 304 carries the same validators
a 200 would.

=============================================================================
LOOKUP HOOKS
=============================================================================

Before the mount table is consulted, registered LookupHook objects get a
chance to resolve the path (aliases, rewritten paths, build manifests).
A hook returns a ResolvedFile or None; the first non-None wins. Files a
hook returns must still live inside a mounted directory, otherwise they
are ignored and the next hook (then the mount table) is tried.

=============================================================================
"""

import dataclasses
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Mapping, Optional

from ..exceptions import ConfigurationError
from ..http.freshness import is_fresh
from ..http.mime_types import DEFAULT_MIME_TYPE, content_type_for
from ..http.response import HTTPResponse, format_http_date
from ..http.status_codes import HTTPStatus
from .config import StaticConfig
from .etag import compute_etag
from .mounts import MountEntry, MountTable
from .resolver import PathResolver, ResolvedFile, is_within
from .streams import FileStream


logger = logging.getLogger(__name__)

ALLOW = "OPTIONS,HEAD,GET"


class Outcome(Enum):
    """Terminal states of one request through the engine."""

    NOT_FOUND = "not_found"
    OPTIONS = "options"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    NOT_MODIFIED = "not_modified"
    SEND_EMPTY = "send_empty"
    SERVE_BODY = "serve_body"


class LookupHook(ABC):
    """
    Custom resolution step consulted before the mount table.

    Example:
        class Aliases(LookupHook):
            def __init__(self, aliases):
                self.aliases = aliases

            async def lookup(self, pathname, engine):
                target = self.aliases.get(pathname)
                return await engine.resolver.resolve(target) if target else None
    """

    @abstractmethod
    async def lookup(self, pathname: str, engine: "StaticEngine") -> Optional[ResolvedFile]:
        """Return a ResolvedFile for ``pathname`` or None to pass."""
        pass


class StaticEngine:
    """
    Mount-table static file engine.

    Usage:
        engine = StaticEngine(max_age="1d")
        engine.mount("./public").mount("/assets", "./build")

        response = await engine.serve("GET", "/assets/app.js", headers)
        if response is None:
            ...  # not found, fall through to a 404

    Setup (mount, configure, add_lookup) must finish before the first
    request; the engine is sealed as soon as serve() runs.
    """

    def __init__(self, config: Optional[StaticConfig] = None, **options):
        if config is None:
            config = StaticConfig(**options)
        elif options:
            config = dataclasses.replace(config, **options)

        self.config = config
        self.mounts = MountTable()
        self.hooks: List[LookupHook] = []
        self._sealed = False
        self.resolver = self._build_resolver()

    def _build_resolver(self) -> PathResolver:
        return PathResolver(
            self.mounts,
            hidden=self.config.hidden,
            index_file=self.config.index_file,
        )

    def _ensure_mutable(self, action: str) -> None:
        if self._sealed:
            raise ConfigurationError(f"Cannot {action} after the engine started serving")

    @property
    def sealed(self) -> bool:
        return self._sealed

    # =========================================================================
    # SETUP
    # =========================================================================

    def mount(self, prefix: str, directory: Optional[str] = None) -> "StaticEngine":
        """
        Mount a directory. ``mount(dir)`` serves it at "/".

        Returns self so calls can be chained.
        """
        self._ensure_mutable("mount")
        self.mounts.mount(prefix, directory)
        return self

    def configure(self, **changes) -> "StaticEngine":
        """
        Swap in a config with ``changes`` applied (hidden, max_age, etag...).

        Raises:
            ConfigurationError: After serving started, or for invalid values.
        """
        self._ensure_mutable("reconfigure")
        self.config = dataclasses.replace(self.config, **changes)
        self.resolver = self._build_resolver()
        return self

    def add_lookup(self, hook: LookupHook) -> "StaticEngine":
        """Register a LookupHook; hooks run in registration order."""
        self._ensure_mutable("add a lookup hook")
        if not isinstance(hook, LookupHook):
            raise ConfigurationError(f"Not a LookupHook: {hook!r}")
        self.hooks.append(hook)
        return self

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    def _owning_mount(self, resolved: ResolvedFile) -> Optional[MountEntry]:
        for mount in self.mounts:
            if is_within(mount.directory, resolved.filename):
                return mount
        return None

    async def lookup(self, pathname: str) -> Optional[ResolvedFile]:
        """
        Resolve ``pathname`` through the hooks, then the mount table.

        Returns None when nothing matches. OSErrors other than "not found"
        propagate to the caller.
        """
        for hook in self.hooks:
            resolved = await hook.lookup(pathname, self)
            if resolved is None:
                continue
            if self._owning_mount(resolved) is None:
                logger.warning(
                    f"{type(hook).__name__} returned {resolved.filename}, "
                    f"which is outside every mount; ignoring it"
                )
                continue
            # Keep the requested path so Content-Type can be guessed from the URL.
            return dataclasses.replace(resolved, pathname=pathname)

        return await self.resolver.resolve(pathname)

    # =========================================================================
    # SERVING
    # =========================================================================

    async def serve(
        self,
        method: str,
        path: str,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Optional[HTTPResponse]:
        """
        Build the response for one request, or None if no file matches.

        Args:
            method:  Request method, any case.
            path:    Decoded request path without the query string.
            headers: Request headers (If-None-Match, If-Modified-Since,
                     Cache-Control are consulted).
        """
        self._sealed = True
        headers = headers or {}
        method = method.upper()

        resolved = await self.lookup(path)
        if resolved is None:
            logger.debug(f"No file for {path}")
            return None

        response = HTTPResponse()
        outcome = await self._evaluate(method, resolved, headers, response)
        logger.debug(f"{method} {path} → {outcome.value}")

        if outcome is Outcome.SERVE_BODY:
            response.stream = FileStream(
                resolved.filename,
                size=resolved.size,
                chunk_size=self.config.chunk_size,
            )
        return response

    async def _evaluate(
        self,
        method: str,
        resolved: ResolvedFile,
        request_headers: Mapping[str, str],
        response: HTTPResponse,
    ) -> Outcome:
        # METHOD_CHECK
        if method == "OPTIONS":
            response.status = HTTPStatus.NO_CONTENT
            response.set_header("Allow", ALLOW)
            return Outcome.OPTIONS

        if method not in ("GET", "HEAD"):
            response.status = HTTPStatus.METHOD_NOT_ALLOWED
            response.set_header("Allow", ALLOW)
            return Outcome.METHOD_NOT_ALLOWED

        # HEADER_SET
        response.status = HTTPStatus.OK
        await self.set_file_headers(response, resolved)

        # FRESHNESS_CHECK
        if is_fresh(request_headers, response.headers):
            response.status = HTTPStatus.NOT_MODIFIED
            return Outcome.NOT_MODIFIED

        if method == "HEAD":
            return Outcome.SEND_EMPTY

        return Outcome.SERVE_BODY

    async def set_file_headers(self, response: HTTPResponse, resolved: ResolvedFile) -> None:
        """Set the validator and caching headers for ``resolved``."""
        content_type = (
            resolved.content_type
            or content_type_for(resolved.pathname)
            or DEFAULT_MIME_TYPE
        )

        response.set_header("Last-Modified", format_http_date(resolved.last_modified))
        response.set_header("Content-Length", str(resolved.size))
        response.set_header("Content-Type", content_type)
        response.set_header("ETag", await compute_etag(resolved, self.config.etag))
        response.set_header("Cache-Control", self.config.cache_control)
