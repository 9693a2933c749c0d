"""
Middleware for the static server.

    LoggingMiddleware      - access log + X-Request-ID
    StaticFilesMiddleware  - serve files for otherwise unhandled requests
"""

from .base import FunctionMiddleware, Middleware, MiddlewarePipeline, NextHandler, function_middleware
from .logging import LoggingMiddleware, RequestLog
from .static import StaticFilesMiddleware, is_unhandled

__all__ = [
    "FunctionMiddleware",
    "LoggingMiddleware",
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "RequestLog",
    "StaticFilesMiddleware",
    "function_middleware",
    "is_unhandled",
]
