"""
Unit tests for HTTP request parsing.
"""

import pytest

from staticmount.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    parse_request,
)


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/assets/app.js"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_headers(self, sample_get_request: bytes):
        """Headers are stored lowercase, values untouched."""
        request = parse_request(sample_get_request)

        assert request.host == "localhost:8080"
        assert request.user_agent == "pytest"
        assert request.headers["if-none-match"] == 'W/"2a-19bc1f2a6c0"'
        assert request.is_keep_alive is True

    def test_parse_query_params(self, sample_get_request: bytes):
        """The query string is split off the path."""
        request = parse_request(sample_get_request)

        assert request.get_query("v") == "3"
        assert request.get_query("missing") is None
        assert request.get_query("missing", "default") == "default"

    def test_parse_percent_encoded_path(self):
        """Paths are percent-decoded before resolution."""
        raw = b"GET /docs/hello%20world.txt HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/docs/hello world.txt"

    def test_parse_invalid_method(self):
        """Unknown methods are rejected with 405."""
        raw = b"INVALID /path HTTP/1.1\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 405

    def test_parse_invalid_request_line(self):
        """Test handling of malformed request line."""
        raw = b"GET\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_parse_unsupported_version(self):
        """HTTP/2.0 in a text request line gets 505."""
        raw = b"GET / HTTP/2.0\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 505

    def test_parse_missing_headers(self):
        """Test parsing request with no headers."""
        raw = b"GET / HTTP/1.1\r\n\r\n"
        request = parse_request(raw)

        assert request.method == "GET"
        assert request.path == "/"
        assert len(request.headers) == 0

    def test_dot_segments_passed_through(self):
        """".." segments are left for the static engine to refuse as not found."""
        raw = b"GET /a/../hello.txt HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/a/../hello.txt"

    def test_encoded_dot_segments_decoded(self):
        """%2e%2e and %2f are decoded, so the engine sees the real segments."""
        raw = b"GET /static/%2e%2e%2f%2e%2e%2fetc/passwd HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/static/../../etc/passwd"

    def test_parse_nul_byte_blocked(self):
        """A percent-encoded NUL byte is a 400."""
        raw = b"GET /index.html%00.png HTTP/1.1\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_double_dots_inside_a_name_allowed(self):
        """Dots inside a name are ordinary characters."""
        raw = b"GET /app..min.js HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/app..min.js"

    def test_parse_request_too_large(self):
        """Test that oversized requests are rejected."""
        parser = RequestParser(max_request_size=100)
        raw = b"GET / HTTP/1.1\r\n" + b"X-Large: " + b"A" * 200 + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert exc_info.value.status_code == 413

    def test_http_version_parsing(self):
        """Test HTTP/1.0 and HTTP/1.1 version handling."""
        # HTTP/1.0 (Connection: close by default)
        request_10 = parse_request(b"GET / HTTP/1.0\r\nHost: test\r\n\r\n")
        assert request_10.version == "HTTP/1.0"
        assert request_10.is_keep_alive is False

        # HTTP/1.1 (keep-alive by default)
        request_11 = parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n\r\n")
        assert request_11.version == "HTTP/1.1"
        assert request_11.is_keep_alive is True

        closing = parse_request(b"GET / HTTP/1.1\r\nConnection: close\r\n\r\n")
        assert closing.is_keep_alive is False

    def test_content_length_handling(self):
        """The body is cut at Content-Length."""
        raw = (
            b"POST / HTTP/1.1\r\n"
            b"Content-Length: 9\r\n"
            b"\r\n"
            b"test body"
        )

        request = parse_request(raw)
        assert request.body == b"test body"

    def test_invalid_content_length(self):
        """A non-numeric Content-Length is a 400."""
        raw = b"POST / HTTP/1.1\r\nContent-Length: abc\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_case_insensitive_headers(self):
        """Test that header names are case-insensitive."""
        raw = b"GET / HTTP/1.1\r\nIF-MODIFIED-SINCE: Wed, 15 Jan 2026 10:00:00 GMT\r\n\r\n"
        request = parse_request(raw)

        assert request.get_header("If-Modified-Since") == "Wed, 15 Jan 2026 10:00:00 GMT"
        assert request.get_header("if-modified-since") == "Wed, 15 Jan 2026 10:00:00 GMT"

    def test_repeated_headers_are_joined(self):
        """Two If-None-Match lines become one comma-separated value."""
        raw = (
            b"GET / HTTP/1.1\r\n"
            b"If-None-Match: \"a\"\r\n"
            b"If-None-Match: \"b\"\r\n"
            b"\r\n"
        )
        request = parse_request(raw)

        assert request.headers["if-none-match"] == '"a", "b"'


class TestHTTPRequest:
    """Tests for HTTPRequest dataclass."""

    def test_get_header_default(self):
        """Test get_header with default value."""
        request = HTTPRequest(method="GET", path="/")

        assert request.get_header("X-Missing") == ""
        assert request.get_header("X-Missing", "default") == "default"

    def test_query_first_value(self):
        """get_query returns the first of repeated values."""
        request = HTTPRequest(
            method="GET",
            path="/",
            query_params={"tags": ["python", "http", "server"]},
        )

        assert request.get_query("tags") == "python"
