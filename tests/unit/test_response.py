"""
Unit tests for HTTP response building.
"""

from datetime import datetime, timezone

from confserve.http.response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    format_http_date,
    internal_error,
    method_not_allowed,
    not_found,
    ok,
)
from confserve.http.status_codes import HTTPStatus


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        assert HTTPResponse(status=HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(status=HTTPStatus.NOT_FOUND).status_line == "HTTP/1.1 404 Not Found"

    def test_to_bytes_includes_headers(self):
        """Test that to_bytes includes all headers."""
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Server: confserve/1.0\r\n" in result
        assert b"Date: " in result
        assert result.endswith(b"\r\n\r\ntest")

    def test_empty_body_content_length(self):
        """Test that bodiless responses still announce length 0."""
        assert b"Content-Length: 0\r\n" in HTTPResponse().to_bytes()

    def test_server_name(self):
        """Test overriding the Server header."""
        assert b"Server: edge\r\n" in HTTPResponse().to_bytes(server_name="edge")

    def test_set_header_chaining(self):
        """Test method chaining for headers."""
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert response.headers["X-One"] == "1"
        assert response.headers["X-Two"] == "2"


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_status(self):
        """Test setting status code."""
        response = ResponseBuilder().status(HTTPStatus.NOT_FOUND).build()
        assert response.status == HTTPStatus.NOT_FOUND

    def test_content_type_none_skipped(self):
        """Test that a None content type leaves the header out."""
        response = ResponseBuilder().content_type(None).body(b"x").build()
        assert "Content-Type" not in response.headers
        assert b"Content-Type" not in response.to_bytes()

    def test_text_body(self):
        """Test plain text body."""
        response = ResponseBuilder().text("Hello, World!").build()

        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.body == b"Hello, World!"

    def test_str_body_encoded(self):
        """Test that string bodies are UTF-8 encoded."""
        assert ResponseBuilder().body("héllo").build().body == "héllo".encode()

    def test_close_connection(self):
        """Test connection close header."""
        response = ResponseBuilder().close_connection().build()
        assert response.headers["Connection"] == "close"

    def test_builds_are_independent(self):
        """Test that two builds don't share a header dict."""
        builder = ResponseBuilder().header("X-A", "1")
        first = builder.build()
        first.set_header("X-B", "2")
        assert "X-B" not in builder.build().headers


class TestConvenienceFunctions:
    """Tests for convenience response functions."""

    def test_ok(self):
        """Test ok() with and without a type."""
        response = ok(b"body", "text/css")
        assert response.status == HTTPStatus.OK
        assert response.content_type == "text/css"

        assert ok(b"body").content_type is None

    def test_not_found(self):
        """Test that not_found() is bare."""
        response = not_found()
        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b""
        assert response.content_type is None

    def test_method_not_allowed(self):
        """Test the 405 helper."""
        response = method_not_allowed(["GET"])
        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET"
        assert response.body == b""

    def test_internal_error(self):
        """Test internal_error() function."""
        response = internal_error("I/O error")
        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.body == b"I/O error"

    def test_error_response_closes(self):
        """Test that error_response() asks to close the connection."""
        response = error_response(HTTPStatus.BAD_REQUEST, "bad")
        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.headers["Connection"] == "close"


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_status_phrases(self):
        """Test that all statuses have phrases."""
        for status in HTTPStatus:
            assert status.phrase

    def test_is_int(self):
        """Test that members compare equal to ints."""
        assert HTTPStatus.NOT_FOUND == 404

    def test_classification(self):
        """Test success and error checks."""
        assert HTTPStatus.OK.is_success
        assert not HTTPStatus.OK.is_error
        assert HTTPStatus.SERVICE_UNAVAILABLE.is_error


class TestFormatHttpDate:
    """Tests for format_http_date()."""

    def test_format(self):
        """Test the RFC 9110 date format."""
        dt = datetime(2026, 10, 18, 9, 5, 3, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Sun, 18 Oct 2026 09:05:03 GMT"
