"""
=============================================================================
FILE BODY STREAM
=============================================================================

The body of a 200 GET: an async iterator over file chunks.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    FileStream LIFECYCLE                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   created by engine ──► nothing opened yet (HEAD/304 never get one)│
    │        │                                                             │
    │        ▼  first __anext__()                                         │
    │   open(filename, "rb")        on a worker thread                    │
    │        │                                                             │
    │        ▼                                                             │
    │   read(chunk) ... read(chunk) on a worker thread                    │
    │        │                                                             │
    │        ├── EOF after exactly `size` bytes ──► close, stop           │
    │        ├── OSError / short file ───────────► close, StreamError     │
    │        └── aclose() / cancellation ─────────► close                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The headers (Content-Length in particular) are already on the wire when
iteration starts, so a failure here cannot become a different status.
StreamError tells the connection to abort instead of sending a body that
is shorter than promised.

=============================================================================
"""

import asyncio
import logging
from typing import BinaryIO, Optional

from ..exceptions import StreamError


logger = logging.getLogger(__name__)


def _close_orphan(task: "asyncio.Future[BinaryIO]") -> None:
    """Close a file whose open() finished after the reader was cancelled."""
    if task.cancelled() or task.exception() is not None:
        return
    task.result().close()


class FileStream:
    """
    Lazily opened, always closed, async chunk iterator over one file.

    Args:
        filename:   Absolute path of the file to send.
        size:       Byte count promised in Content-Length. The stream stops
                    after this many bytes and fails if the file is shorter.
                    None means "until EOF".
        chunk_size: Bytes per read.
    """

    def __init__(self, filename: str, size: Optional[int] = None, chunk_size: int = 64 * 1024):
        self.filename = filename
        self.size = size
        self.chunk_size = chunk_size
        self.bytes_read = 0
        self._file: Optional[BinaryIO] = None
        self._opened = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def opened(self) -> bool:
        """True once the underlying file has been opened."""
        return self._opened

    def __aiter__(self) -> "FileStream":
        return self

    async def __anext__(self) -> bytes:
        if self._closed:
            raise StopAsyncIteration

        try:
            if self._file is None:
                await self._open()

            to_read = self.chunk_size
            if self.size is not None:
                to_read = min(to_read, self.size - self.bytes_read)
                if to_read <= 0:
                    await self.aclose()
                    raise StopAsyncIteration

            chunk = await asyncio.to_thread(self._file.read, to_read)
        except OSError as e:
            await self.aclose()
            raise StreamError(f"Failed reading {self.filename}: {e}", self.filename, e) from e
        except asyncio.CancelledError:
            self._close_now()
            raise

        if not chunk:
            await self.aclose()
            if self.size is not None and self.bytes_read < self.size:
                raise StreamError(
                    f"{self.filename} shrank while streaming: "
                    f"sent {self.bytes_read} of {self.size} bytes",
                    self.filename,
                )
            raise StopAsyncIteration

        self.bytes_read += len(chunk)
        return chunk

    async def _open(self) -> None:
        opener = asyncio.ensure_future(asyncio.to_thread(open, self.filename, "rb"))
        try:
            self._file = await asyncio.shield(opener)
        except asyncio.CancelledError:
            opener.add_done_callback(_close_orphan)
            raise
        self._opened = True
        logger.debug(f"Opened {self.filename} for streaming")

    def _close_now(self) -> None:
        self._closed = True
        if self._file is not None:
            handle, self._file = self._file, None
            handle.close()

    async def aclose(self) -> None:
        """Release the file handle. Safe to call any number of times."""
        if self._closed:
            return
        self._closed = True
        if self._file is not None:
            handle, self._file = self._file, None
            await asyncio.to_thread(handle.close)

    async def read_all(self) -> bytes:
        """Drain the stream into memory (tests and small files)."""
        chunks = []
        try:
            async for chunk in self:
                chunks.append(chunk)
        finally:
            await self.aclose()
        return b"".join(chunks)
