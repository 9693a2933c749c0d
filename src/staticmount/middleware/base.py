"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

Async middleware protocol and the pipeline that chains it (Chain of
Responsibility).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    REQUEST / RESPONSE FLOW                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Request ─────────────────────────────────────────────►            │
    │                                                                      │
    │   ┌──────────┐    ┌──────────────┐    ┌──────────────────┐          │
    │   │ Logging  │───►│ StaticFiles  │───►│ server fallback  │          │
    │   │    MW    │    │      MW      │    │ (empty 404)      │          │
    │   └──────────┘    └──────────────┘    └──────────────────┘          │
    │                                                                      │
    │   ◄───────────────────────────────────────────────── Response       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each middleware is awaited with the request and the next handler. It may
answer on its own (short-circuit) or await ``next(request)`` and adjust
what comes back.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# NextHandler is the next middleware or the final handler.
NextHandler = Callable[[HTTPRequest], Awaitable[HTTPResponse]]


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Anatomy:

        class AddHeader(Middleware):
            async def __call__(self, request, next):
                # pre-processing, or return early to short-circuit
                response = await next(request)
                # post-processing
                response.set_header("X-Processed-By", "AddHeader")
                return response
    """

    @abstractmethod
    async def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The incoming HTTP request
            next: The next handler in the chain (await it to continue)

        Returns:
            HTTP response (either from next() or short-circuited)
        """
        pass

    @property
    def name(self) -> str:
        """Middleware name for logging."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains middleware around a final handler.

    First added is outermost:

        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware())
        pipeline.add(StaticFilesMiddleware(engine))
        handler = pipeline.wrap(fallback)
        response = await handler(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append middleware; returns self for chaining."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        """Add several middleware at once."""
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap ``handler`` with every middleware in the pipeline.

        Given [MW1, MW2, MW3] the result is MW1 → MW2 → MW3 → handler.
        Wrapping runs in reverse so the first-added middleware ends up
        outermost.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    def _create_wrapped_handler(
        self,
        middleware: Middleware,
        next_handler: NextHandler
    ) -> NextHandler:
        async def wrapped(request: HTTPRequest) -> HTTPResponse:
            return await middleware(request, next_handler)

        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)


# =============================================================================
# FUNCTION MIDDLEWARE
# =============================================================================
#
# Quick one-off middleware from a coroutine function instead of a class.
#
# =============================================================================

class FunctionMiddleware(Middleware):
    """
    Wraps a coroutine function as middleware.

    Usage:
        @function_middleware
        async def add_header(request, next):
            response = await next(request)
            response.set_header("X-Custom", "value")
            return response

        server.use(add_header)
    """

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], Awaitable[HTTPResponse]],
        name: Optional[str] = None
    ):
        self._func = func
        self._name = name or func.__name__

    async def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return await self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(
    func: Callable[[HTTPRequest, NextHandler], Awaitable[HTTPResponse]]
) -> FunctionMiddleware:
    """Decorator form of FunctionMiddleware."""
    return FunctionMiddleware(func)
