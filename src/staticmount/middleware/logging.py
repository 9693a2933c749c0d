"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

One log line per request on the "staticmount.access" logger, plus an
X-Request-ID response header for correlating client reports with logs.

    text:  127.0.0.1 - - [15/Jan/2026:10:00:00 +0000] "GET /app.js" 200 5120 1.42ms
    json:  {"request_id": "3f2a9c1e", "method": "GET", "path": "/app.js", ...}

The logger is namespaced so it can be routed on its own:

    logging.getLogger("staticmount.access").addHandler(file_handler)

=============================================================================
"""

import time
import json
import uuid
import logging
from typing import Optional
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("staticmount.access")


@dataclass
class RequestLog:
    """
    Structured log entry for a request.

    content_length is the declared Content-Length when the response has
    one (streamed files, 304s), otherwise the in-memory body size.
    """

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache-style line."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


def _content_length(response: HTTPResponse) -> int:
    declared = response.get_header("Content-Length")
    if declared is not None and declared.isdigit():
        return int(declared)
    return len(response.body)


class LoggingMiddleware(Middleware):
    """
    Request logging middleware. Add it first so it sees every request.

    Usage:
        server.use(LoggingMiddleware(log_format="json"))
        server.use(LoggingMiddleware(skip_paths=["/favicon.ico"]))
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[list[str]] = None,
    ):
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    async def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.perf_counter()

        try:
            response = await next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        if self.include_request_id:
            response.set_header("X-Request-ID", request_id)

        if request.path in self.skip_paths:
            return response

        log_entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=str(request.query_params) if request.query_params else "",
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=_content_length(response),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(self.log_level, log_entry.to_text())

        return response


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Timing with perf_counter, reported in milliseconds
# 2. X-Request-ID on every response, skipped paths included
# 3. Text or JSON lines on the "staticmount.access" logger
# 4. Handler errors are logged and re-raised for the server to turn into 500
# =============================================================================
