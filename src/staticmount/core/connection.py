"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

One client connection on top of asyncio streams.

TCP is a byte stream, not a message protocol: a request head can arrive
split across any number of reads, and two pipelined requests can arrive
in one. StreamReader buffers for us, so reading a request is:

    1. readuntil(b"\\r\\n\\r\\n")      head, however it was fragmented
    2. Content-Length from the head
    3. readexactly(content_length)     body
    4. anything after stays in the reader for the next request

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► PROCESSING ──────► WRITING ────────┐
     │             │                                   │            │
     │             │ (EOF / idle timeout)              │ keep-alive │
     │             ▼                                   ▼            │
     └──────────► CLOSING ◄──────────────────── KEEP_ALIVE ◄────────┘
                    │
                    ▼
                  CLOSED

=============================================================================
WRITING A STREAMED BODY
=============================================================================

    write(head) ─► for chunk in stream: write(chunk); await drain()
                    │
                    └─ finally: await stream.aclose()

drain() is the backpressure point: a slow client suspends this coroutine
and no more file chunks are read until the socket buffer empties. The
stream is closed on every path out, including a client disconnect.

=============================================================================
"""

import asyncio
import logging
import uuid
from enum import Enum
from typing import Optional

from ..http.request import HTTPParseError
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

_HEAD_END = b"\r\n\r\n"


class ConnectionState(Enum):
    """Connection lifecycle states."""

    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


def _parse_content_length(head: bytes) -> int:
    """
    Content-Length from a raw head, or 0.

    Malformed values are left to RequestParser, which rejects them with
    a 400 once the full request is in hand.
    """
    for line in head.decode("latin-1").split("\r\n")[1:]:
        name, _, value = line.partition(":")
        if name.strip().lower() == "content-length":
            value = value.strip()
            return int(value) if value.isdigit() else 0
    return 0


class Connection:
    """
    A client connection.

    Attributes:
        reader, writer:   The asyncio stream pair from start_server().
        address:          Client (ip, port).
        id:               Short identifier for log lines.
        state:            Current ConnectionState.
        requests_handled: Requests read so far on this connection.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        timeout: Optional[float] = 30.0,
        keep_alive_timeout: float = 5.0,
        max_request_size: int = 1024 * 1024,
    ):
        self.reader = reader
        self.writer = writer
        self.timeout = timeout
        self.keep_alive_timeout = keep_alive_timeout
        self.max_request_size = max_request_size

        peer = writer.get_extra_info("peername")
        self.address: tuple[str, int] = tuple(peer[:2]) if peer else ("", 0)
        self.id = str(uuid.uuid4())[:8]
        self.state = ConnectionState.NEW
        self.requests_handled = 0

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    async def read_request(self) -> Optional[bytes]:
        """
        Read one complete request (head plus Content-Length body).

        Returns:
            The raw request bytes, or None when the client closed the
            connection or an idle keep-alive connection timed out.

        Raises:
            TimeoutError: The first request did not arrive in time.
            HTTPParseError: The request is larger than max_request_size.
        """
        self.state = ConnectionState.READING
        timeout = self.keep_alive_timeout if self.requests_handled > 0 else self.timeout

        try:
            head = await asyncio.wait_for(self.reader.readuntil(_HEAD_END), timeout)
        except asyncio.IncompleteReadError:
            return None
        except asyncio.LimitOverrunError as e:
            raise HTTPParseError("Request headers too large", 413) from e
        except asyncio.TimeoutError:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")
        except ConnectionError:
            return None

        content_length = _parse_content_length(head)
        if len(head) + content_length > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(head) + content_length} bytes "
                f"(max: {self.max_request_size})",
                413,
            )

        body = b""
        if content_length:
            try:
                body = await asyncio.wait_for(self.reader.readexactly(content_length), timeout)
            except asyncio.IncompleteReadError:
                return None
            except asyncio.TimeoutError:
                raise TimeoutError("Request body read timeout")

        self.requests_handled += 1
        self.state = ConnectionState.PROCESSING
        return head + body

    # =========================================================================
    # WRITING
    # =========================================================================

    async def send_response(
        self,
        response: HTTPResponse,
        server_name: str = "staticmount/1.0",
        head_only: bool = False,
    ) -> None:
        """
        Write ``response``, streaming its body if it has one.

        Args:
            head_only: Suppress the body (HEAD requests). The headers,
                       Content-Length included, are still sent.

        Raises:
            StreamError: The body stream failed after the head was sent;
                         the caller must abort() rather than reuse the
                         connection.
            ConnectionError: The client went away.
        """
        self.state = ConnectionState.WRITING
        stream = response.stream
        send_body = not head_only and HTTPStatus(response.status).allows_body

        try:
            self.writer.write(response.head_bytes(server_name))

            if send_body and stream is not None:
                async for chunk in stream:
                    self.writer.write(chunk)
                    await self.writer.drain()
            elif send_body and response.body:
                self.writer.write(response.body)

            await self.writer.drain()
        finally:
            if stream is not None:
                aclose = getattr(stream, "aclose", None)
                if aclose is not None:
                    await aclose()

    def set_keep_alive(self) -> None:
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def abort(self) -> None:
        """Drop the connection without flushing (body could not be completed)."""
        if self.state == ConnectionState.CLOSED:
            return
        self.writer.transport.abort()
        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection aborted")

    async def close(self) -> None:
        """Flush and close. Safe to call more than once."""
        if self.state == ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSING

        self.writer.close()
        try:
            await self.writer.wait_closed()
        except ConnectionError:
            # Peer already reset the connection.
            logger.debug(f"[{self.id}] Peer reset during close")

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    async def __aenter__(self) -> "Connection":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False
