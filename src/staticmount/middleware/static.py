"""
=============================================================================
STATIC FILES MIDDLEWARE
=============================================================================

Puts a StaticEngine into the middleware pipeline. The downstream handler
runs FIRST; files are only served for requests nobody else answered.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    DOWNSTREAM-FIRST                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   response = await next(request)                                    │
    │        │                                                             │
    │        ├── status != 404 ───────────────► return it unchanged       │
    │        ├── 404 with a body / stream ────► return it unchanged       │
    │        │   (an explicit "not found" from an application route)      │
    │        ▼                                                             │
    │   engine.serve(method, path, headers)                               │
    │        ├── None ────────────────────────► return the 404            │
    │        └── response ───────────────────► return the file response   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import logging

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus
from ..static.engine import StaticEngine


logger = logging.getLogger(__name__)


def is_unhandled(response: HTTPResponse) -> bool:
    """A 404 nobody filled in: no body and no stream."""
    return (
        response.status == HTTPStatus.NOT_FOUND
        and not response.body
        and response.stream is None
    )


class StaticFilesMiddleware(Middleware):
    """
    Serve files from ``engine`` when the rest of the app has nothing.

    Usage:
        engine = StaticEngine(max_age="1d").mount("./public")
        server.use(StaticFilesMiddleware(engine))
    """

    def __init__(self, engine: StaticEngine):
        self.engine = engine

    async def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        response = await next(request)
        if not is_unhandled(response):
            return response

        served = await self.engine.serve(request.method, request.path, request.headers)
        if served is None:
            return response

        logger.debug(f"Served {request.path} with status {int(served.status)}")
        return served
