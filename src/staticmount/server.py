"""
=============================================================================
STATIC FILE SERVER
=============================================================================

Ties the pieces together: asyncio listener, HTTP/1.1 connection loop,
middleware pipeline and the static engine.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        StaticServer                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   asyncio.start_server ──► one task per connection                  │
    │                                  │                                   │
    │                                  ▼                                   │
    │   Connection.read_request ──► RequestParser.parse                   │
    │                                  │                                   │
    │                                  ▼                                   │
    │   ┌────────────────────────────────────────────────────────────┐    │
    │   │  user middleware (use()) ──► StaticFilesMiddleware(engine) │    │
    │   │                                   │                        │    │
    │   │                                   ▼                        │    │
    │   │                          fallback: empty 404               │    │
    │   └────────────────────────────────────────────────────────────┘    │
    │                                  │                                   │
    │                                  ▼                                   │
    │   Connection.send_response ──► head, then body or file stream       │
    │                                  │                                   │
    │                                  ▼                                   │
    │   keep-alive? ──► loop          otherwise close                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ERROR HANDLING
=============================================================================

    HTTPParseError (400/405/413/505) ─► JSON error, connection closed
    TimeoutError on the first request ─► 408, connection closed
    Handler exception ────────────────► logged, 500 JSON
    Unhandled 404 (empty body) ───────► {"error": "Not Found"}
    StreamError while sending a body ─► logged, connection aborted
    Client disconnect ────────────────► connection closed quietly

=============================================================================
"""

import asyncio
import logging
from typing import Dict, Optional

from .config import ServerConfig
from .core import Connection, ConnectionState
from .exceptions import StreamError
from .http import (
    HTTPParseError, HTTPRequest, HTTPResponse, HTTPStatus, RequestParser,
    error_response, internal_error, not_found,
)
from .middleware import Middleware, MiddlewarePipeline, StaticFilesMiddleware, is_unhandled
from .static import StaticEngine


logger = logging.getLogger(__name__)

_IDLE_STATES = (ConnectionState.NEW, ConnectionState.READING, ConnectionState.KEEP_ALIVE)


class StaticServer:
    """
    Asyncio HTTP/1.1 server for mounted static directories.

    =========================================================================
    USAGE
    =========================================================================

        server = StaticServer(ServerConfig(port=3000, max_age="1d"))
        server.mount("./public")
        server.mount("/assets", "./build")
        server.use(LoggingMiddleware())
        server.run()

    Or inside a running loop:

        await server.start()
        ...
        await server.stop()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None, engine: Optional[StaticEngine] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self.engine = engine or StaticEngine(self.config.static_config())
        for prefix, directory in self.config.mounts:
            self.engine.mount(prefix, directory)

        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._middleware = MiddlewarePipeline()
        self._static = StaticFilesMiddleware(self.engine)
        self._handler = None
        self._server: Optional[asyncio.AbstractServer] = None
        self._connections: Dict[asyncio.Task, Connection] = {}
        self._running = False

    # =========================================================================
    # SETUP
    # =========================================================================

    def use(self, middleware: Middleware) -> "StaticServer":
        """
        Add middleware. Runs in the order added, before the static files.

        Must be called before start().
        """
        self._middleware.add(middleware)
        return self

    def mount(self, prefix: str, directory: Optional[str] = None) -> "StaticServer":
        """Mount a directory on the engine; ``mount(dir)`` serves it at "/"."""
        self.engine.mount(prefix, directory)
        return self

    @property
    def address(self) -> tuple[str, int]:
        """The bound (host, port); the real port when configured with 0."""
        if self._server is None or not self._server.sockets:
            return (self.config.host, self.config.port)
        host, port = self._server.sockets[0].getsockname()[:2]
        return (host, port)

    @property
    def is_running(self) -> bool:
        return self._running

    def _build_handler(self):
        pipeline = MiddlewarePipeline().use(*self._middleware, self._static)
        return pipeline.wrap(self._fallback)

    async def _fallback(self, request: HTTPRequest) -> HTTPResponse:
        # Empty body marks the 404 as unhandled for StaticFilesMiddleware.
        return HTTPResponse(status=HTTPStatus.NOT_FOUND)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    async def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Run one parsed request through middleware and the engine.

        Never raises for handler errors; they become a 500 response.
        """
        if self._handler is None:
            self._handler = self._build_handler()

        try:
            response = await self._handler(request)
        except Exception as e:
            logger.exception(f"Handler error for {request.method} {request.path}: {e}")
            return internal_error()

        if is_unhandled(response):
            body = not_found()
            response.headers.update(body.headers)
            response.set_body(body.body)
        return response

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """Bind and start accepting connections (returns immediately)."""
        self._handler = self._build_handler()
        self._server = await asyncio.start_server(
            self._handle_connection,
            self.config.host,
            self.config.port,
            backlog=self.config.backlog,
            limit=self.config.max_request_size,
        )
        self._running = True

        host, port = self.address
        logger.info(f"Serving {len(self.engine.mounts)} mount(s) on http://{host}:{port}")

    async def stop(self, timeout: float = 5.0) -> None:
        """
        Graceful shutdown.

        1. Stop accepting new connections
        2. Cancel idle connections (waiting for a request)
        3. Give in-flight responses ``timeout`` seconds, then cancel them
        """
        if self._server is None:
            return

        logger.info("Shutting down server...")
        self._running = False
        self._server.close()

        for task, conn in list(self._connections.items()):
            if conn.state in _IDLE_STATES:
                task.cancel()

        pending = set(self._connections)
        if pending:
            _, still_running = await asyncio.wait(pending, timeout=timeout)
            for task in still_running:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        await self._server.wait_closed()
        self._server = None
        logger.info("Server stopped")

    def run(self) -> None:
        """Start the server and block until Ctrl+C."""
        self._setup_logging()
        try:
            asyncio.run(self._serve_forever())
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")

    async def _serve_forever(self) -> None:
        await self.start()
        self._print_startup_banner()
        try:
            await self._server.serve_forever()
        finally:
            await self.stop()

    def _print_startup_banner(self) -> None:
        host, port = self.address
        print()
        print(f"  {self.config.server_name} running on http://{host}:{port}")
        for entry in self.engine.mounts:
            print(f"    {entry.prefix:<20} → {entry.directory}")
        print("  Press Ctrl+C to stop")
        print()

    def _setup_logging(self) -> None:
        """Configure logging based on config."""
        level = self.config.numeric_log_level
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("staticmount").setLevel(level)

    # =========================================================================
    # CONNECTION LOOP
    # =========================================================================

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        conn = Connection(
            reader,
            writer,
            timeout=self.config.timeout,
            keep_alive_timeout=self.config.keep_alive_timeout,
            max_request_size=self.config.max_request_size,
        )
        task = asyncio.current_task()
        self._connections[task] = conn
        logger.debug(f"[{conn.id}] Accepted connection from {conn.client_ip}")

        try:
            async with conn:
                await self._process_connection(conn)
        finally:
            self._connections.pop(task, None)

    async def _process_connection(self, conn: Connection) -> None:
        """
        The HTTP keep-alive loop for one connection.

        1. Read and parse a request
        2. Run it through handle()
        3. Send the response (streamed body included)
        4. Repeat while both sides want keep-alive
        """
        while self._running:
            try:
                raw_request = await conn.read_request()
            except HTTPParseError as e:
                await self._send_error(conn, e.status_code, str(e))
                break
            except TimeoutError:
                await self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                break

            if raw_request is None:
                break

            try:
                request = self._parser.parse(raw_request, conn.address)
            except HTTPParseError as e:
                await self._send_error(conn, e.status_code, str(e))
                break

            response = await self.handle(request)

            keep_alive = request.is_keep_alive and self.config.keep_alive and self._running
            if keep_alive:
                response.headers.setdefault("Connection", "keep-alive")
                response.headers.setdefault(
                    "Keep-Alive",
                    f"timeout={int(self.config.keep_alive_timeout)}"
                )
            else:
                response.headers["Connection"] = "close"

            try:
                await conn.send_response(
                    response,
                    self.config.server_name,
                    head_only=request.method == "HEAD",
                )
            except StreamError as e:
                logger.exception(f"[{conn.id}] Aborting {request.path}: {e}")
                conn.abort()
                break
            except ConnectionError as e:
                logger.debug(f"[{conn.id}] Client went away: {e}")
                break

            if not keep_alive:
                break
            conn.set_keep_alive()

    async def _send_error(self, conn: Connection, status: int, message: str) -> None:
        """Send an error for failures before the handler ran, then close."""
        response = error_response(HTTPStatus(status), message)
        response.headers["Connection"] = "close"
        try:
            await conn.send_response(response, self.config.server_name)
        except ConnectionError as e:
            logger.debug(f"[{conn.id}] Could not send {status}: {e}")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. One asyncio task per connection, keep-alive loop inside
# 2. Middleware first, StaticFilesMiddleware last, empty 404 as the fallback
# 3. File bodies stream with drain() backpressure and are always closed
# 4. Graceful stop: idle connections cancelled, busy ones given a deadline
# =============================================================================
