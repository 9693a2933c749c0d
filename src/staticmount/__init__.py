"""
=============================================================================
STATICMOUNT - Mount-Table Static File Server
=============================================================================

Serves files from one or more mounted directories with correct
conditional-request semantics (ETag, Last-Modified, 304), Cache-Control
and method restrictions, on top of an asyncio HTTP/1.1 server.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    staticmount/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m staticmount)
    ├── server.py            # StaticServer (asyncio listener + keep-alive loop)
    ├── config.py            # ServerConfig dataclass
    ├── exceptions.py        # StaticMountError hierarchy
    ├── core/
    │   └── connection.py    # Connection over StreamReader/StreamWriter
    ├── http/
    │   ├── request.py       # Request parsing
    │   ├── response.py      # HTTPResponse, HTTP dates
    │   ├── freshness.py     # If-None-Match / If-Modified-Since
    │   ├── status_codes.py  # HTTPStatus enum
    │   └── mime_types.py    # Content-Type detection
    ├── middleware/
    │   ├── base.py          # Middleware, MiddlewarePipeline
    │   ├── logging.py       # Access log
    │   └── static.py        # StaticFilesMiddleware
    └── static/
        ├── mounts.py        # MountTable
        ├── resolver.py      # PathResolver, safe_join
        ├── etag.py          # ETag generation + per-request memo
        ├── streams.py       # FileStream
        ├── config.py        # StaticConfig, durations
        └── engine.py        # StaticEngine

=============================================================================
QUICK START
=============================================================================

    from staticmount import StaticServer, ServerConfig, LoggingMiddleware

    server = StaticServer(ServerConfig(port=8080, max_age="1d"))
    server.mount("./public")
    server.mount("/assets", "./build")
    server.use(LoggingMiddleware())
    server.run()

Or just the engine, inside another asyncio application:

    from staticmount import StaticEngine

    engine = StaticEngine(max_age="1h").mount("./public")
    response = await engine.serve("GET", "/index.html", request_headers)

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .exceptions import ConfigurationError, StaticMountError, StreamError
from .http import HTTPRequest, HTTPResponse, HTTPStatus
from .middleware import LoggingMiddleware, Middleware, StaticFilesMiddleware
from .server import StaticServer
from .static import LookupHook, ResolvedFile, StaticConfig, StaticEngine

__all__ = [
    "ConfigurationError",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPStatus",
    "LoggingMiddleware",
    "LookupHook",
    "Middleware",
    "ResolvedFile",
    "ServerConfig",
    "StaticConfig",
    "StaticEngine",
    "StaticFilesMiddleware",
    "StaticMountError",
    "StaticServer",
    "StreamError",
    "__version__",
]
