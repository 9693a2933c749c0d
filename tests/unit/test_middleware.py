"""
Unit tests for the middleware pipeline, access logging and static files.
"""

import asyncio
import json
import logging

import pytest

from staticmount.http.request import HTTPRequest
from staticmount.http.response import HTTPResponse, json_response
from staticmount.http.status_codes import HTTPStatus
from staticmount.middleware import (
    LoggingMiddleware,
    Middleware,
    MiddlewarePipeline,
    StaticFilesMiddleware,
    function_middleware,
    is_unhandled,
)


def make_request(method: str = "GET", path: str = "/hello.txt", headers=None) -> HTTPRequest:
    return HTTPRequest(
        method=method,
        path=path,
        headers=headers or {},
        client_address=("127.0.0.1", 5555),
    )


async def empty_404(request: HTTPRequest) -> HTTPResponse:
    return HTTPResponse(status=HTTPStatus.NOT_FOUND)


class Recorder(Middleware):
    def __init__(self, name, log):
        self._name = name
        self.log = log

    async def __call__(self, request, next):
        self.log.append(f"{self._name}:before")
        response = await next(request)
        self.log.append(f"{self._name}:after")
        return response


class TestMiddlewarePipeline:
    """Tests for MiddlewarePipeline."""

    def test_order(self):
        log = []
        pipeline = MiddlewarePipeline().use(Recorder("a", log), Recorder("b", log))

        async def handler(request):
            log.append("handler")
            return HTTPResponse()

        asyncio.run(pipeline.wrap(handler)(make_request()))

        assert log == ["a:before", "b:before", "handler", "b:after", "a:after"]
        assert len(pipeline) == 2

    def test_short_circuit(self):
        @function_middleware
        async def deny(request, next):
            return HTTPResponse(status=HTTPStatus.FORBIDDEN)

        called = []

        async def handler(request):
            called.append(True)
            return HTTPResponse()

        response = asyncio.run(MiddlewarePipeline().add(deny).wrap(handler)(make_request()))

        assert response.status == HTTPStatus.FORBIDDEN
        assert called == []
        assert deny.name == "deny"


class TestLoggingMiddleware:
    """Tests for the access log."""

    def test_text_line(self, caplog):
        caplog.set_level(logging.INFO, logger="staticmount.access")
        middleware = LoggingMiddleware()

        async def handler(request):
            return HTTPResponse(headers={"Content-Length": "11"})

        response = asyncio.run(middleware(make_request(), handler))

        assert len(response.headers["X-Request-ID"]) == 8
        record = caplog.records[-1]
        assert record.name == "staticmount.access"
        assert '"GET /hello.txt" 200 11' in record.getMessage()

    def test_json_line(self, caplog):
        caplog.set_level(logging.INFO, logger="staticmount.access")
        middleware = LoggingMiddleware(log_format="json")

        async def handler(request):
            return HTTPResponse(status=HTTPStatus.NOT_MODIFIED)

        response = asyncio.run(middleware(make_request(), handler))
        entry = json.loads(caplog.records[-1].getMessage())

        assert entry["status_code"] == 304
        assert entry["path"] == "/hello.txt"
        assert entry["client_ip"] == "127.0.0.1"
        assert entry["request_id"] == response.headers["X-Request-ID"]

    def test_skip_paths(self, caplog):
        caplog.set_level(logging.INFO, logger="staticmount.access")
        middleware = LoggingMiddleware(skip_paths=["/favicon.ico"])

        response = asyncio.run(middleware(make_request(path="/favicon.ico"), empty_404))

        assert [r for r in caplog.records if r.name == "staticmount.access"] == []
        assert "X-Request-ID" in response.headers

    def test_errors_logged_and_reraised(self, caplog):
        middleware = LoggingMiddleware()

        async def handler(request):
            raise PermissionError("denied")

        with pytest.raises(PermissionError):
            asyncio.run(middleware(make_request(), handler))

        assert "PermissionError" in caplog.records[-1].getMessage()


class TestStaticFilesMiddleware:
    """Downstream first, files only for unhandled 404s."""

    def test_is_unhandled(self):
        assert is_unhandled(HTTPResponse(status=HTTPStatus.NOT_FOUND))
        assert not is_unhandled(json_response(HTTPStatus.NOT_FOUND, {"error": "no user"}))
        assert not is_unhandled(HTTPResponse(status=HTTPStatus.OK))

    def test_serves_file_after_empty_404(self, engine):
        middleware = StaticFilesMiddleware(engine)

        response = asyncio.run(middleware(make_request("HEAD"), empty_404))

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Length"] == "11"

    def test_downstream_response_wins(self, engine):
        middleware = StaticFilesMiddleware(engine)

        async def handler(request):
            return HTTPResponse(body=b"dynamic")

        response = asyncio.run(middleware(make_request(), handler))

        assert response.body == b"dynamic"
        assert engine.sealed is False

    def test_explicit_404_body_kept(self, engine):
        middleware = StaticFilesMiddleware(engine)

        async def handler(request):
            return json_response(HTTPStatus.NOT_FOUND, {"error": "no such user"})

        response = asyncio.run(middleware(make_request(), handler))

        assert json.loads(response.body) == {"error": "no such user"}

    def test_missing_file_keeps_404(self, engine):
        middleware = StaticFilesMiddleware(engine)

        response = asyncio.run(middleware(make_request(path="/missing.txt"), empty_404))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b""

    def test_conditional_headers_passed_through(self, engine):
        middleware = StaticFilesMiddleware(engine)
        first = asyncio.run(middleware(make_request("HEAD"), empty_404))

        request = make_request(headers={"if-none-match": first.headers["ETag"]})
        second = asyncio.run(middleware(request, empty_404))

        assert second.status == HTTPStatus.NOT_MODIFIED
