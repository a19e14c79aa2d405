"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them to bytes.

=============================================================================
RESPONSE ANATOMY
=============================================================================

    HTTP/1.1 200 OK\\r\\n                  ← status line
    Content-Type: image/png\\r\\n          ← only when the route has a type
    Content-Length: 5120\\r\\n             ← always, auto-calculated
    Date: Sun, 18 Oct 2026 12:00:00 GMT\\r\\n
    Server: confserve/1.0\\r\\n
    \\r\\n                                 ← end of headers
    <file bytes>

=============================================================================
CONTENT-TYPE IS OPTIONAL
=============================================================================

A route whose type could not be determined is served WITHOUT a
Content-Type header (not with application/octet-stream). That is why
ResponseBuilder.content_type() accepts None and simply skips the header.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional, Union

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialized.

    Use ResponseBuilder (or the helpers at the bottom of this module)
    rather than filling the fields by hand.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """E.g. "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def content_type(self) -> Optional[str]:
        """The Content-Type header, or None when the response has none."""
        return self.headers.get("Content-Type")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header; returns self for chaining."""
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = "confserve/1.0") -> bytes:
        """
        Serialize for socket.sendall().

        Content-Length, Date and Server are added unless already set.
        """
        response_headers = dict(self.headers)
        response_headers.setdefault("Content-Length", str(len(self.body)))
        response_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        response_headers.setdefault("Server", server_name)

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in response_headers.items())
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .content_type("text/css")
            .body(css_bytes)
            .build())

    Every method but build() returns self.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        """Set the status code."""
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Add a single header."""
        self._headers[name] = value
        return self

    def content_type(self, content_type: Optional[str]) -> "ResponseBuilder":
        """Set Content-Type; None leaves the header out entirely."""
        if content_type is not None:
            self._headers["Content-Type"] = content_type
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the body; strings are UTF-8 encoded."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str) -> "ResponseBuilder":
        """Set a plain text body with a UTF-8 text/plain Content-Type."""
        self._headers["Content-Type"] = "text/plain; charset=utf-8"
        return self.body(text)

    def close_connection(self) -> "ResponseBuilder":
        """Ask the client to close the connection after this response."""
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        """Build the HTTPResponse."""
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an HTTP-date (RFC 9110).

    Example: "Sun, 18 Oct 2026 12:00:00 GMT"
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE RESPONSES
# =============================================================================

def ok(body: bytes, content_type: Optional[str] = None) -> HTTPResponse:
    """200 OK with the given body and optional Content-Type."""
    return ResponseBuilder().content_type(content_type).body(body).build()


def not_found() -> HTTPResponse:
    """Bare 404: no body, no Content-Type."""
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).build()


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """405 with the Allow header (required by RFC 9110) and no body."""
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500 with a short, generic text body. Never put OS details in it."""
    return ResponseBuilder().status(HTTPStatus.INTERNAL_SERVER_ERROR).text(message).build()


def error_response(status: HTTPStatus, message: str) -> HTTPResponse:
    """An error status with a text body that closes the connection."""
    return ResponseBuilder().status(status).text(message).close_connection().build()
