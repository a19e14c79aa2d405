"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Parses raw HTTP/1.x request bytes into HTTPRequest objects.

=============================================================================
WHAT THE FILE SERVER NEEDS FROM A REQUEST
=============================================================================

Very little. The route lookup only looks at the PATH, and the dispatcher
only looks at the METHOD:

    GET /css/site.css?v=3 HTTP/1.1\r\n
    ─┬─ ──────┬────── ─┬─ ────┬───
     │        │        │      │
     │        │        │      └── version: decides keep-alive default
     │        │        └───────── query: parsed, never used for lookup
     │        └────────────────── path: percent-decoded, used for lookup
     └─────────────────────────── method: anything but GET → 405

Headers are still parsed (lowercase names) for keep-alive handling and
for the access log.

=============================================================================
SECURITY
=============================================================================

1. SIZE LIMIT - requests over max_request_size → 413.
2. ".." SEGMENTS - a path segment that is exactly ".." is rejected with
   400. Names that merely contain two dots ("v1..2.txt") are ordinary
   keys and go to the lookup like any other.
3. UNKNOWN METHOD TOKENS - rejected with 405 before dispatch.

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import parse_qs, unquote, urlsplit


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the status code to answer with:

        400 Bad Request                - malformed syntax
        405 Method Not Allowed         - unknown method token
        413 Payload Too Large          - over the size limit
        505 HTTP Version Not Supported - not HTTP/1.0 or HTTP/1.1
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method: Request method, e.g. "GET".
        path: Percent-decoded path WITHOUT the query string.
        version: "HTTP/1.1" or "HTTP/1.0".
        headers: Header name (lowercase) → value.
        query_params: Query string as dict of lists.
        body: Raw body bytes (ignored by the file server).
        target: The request target exactly as sent, for logging.
        client_address: (ip, port) of the client.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""
    target: str = ""
    client_address: tuple[str, int] = ("", 0)

    @property
    def user_agent(self) -> str:
        """Get the User-Agent header value."""
        return self.headers.get("user-agent", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        Check if the connection should stay open after the response.

        HTTP/1.1 keeps alive unless "Connection: close".
        HTTP/1.0 closes unless "Connection: keep-alive".
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Get a header value (case-insensitive lookup)."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

        Raw bytes
            │
            ├── 1. size check                → 413
            ├── 2. split at \\r\\n\\r\\n         → 400 if missing
            ├── 3. request line              → 400 / 405 / 505
            ├── 4. headers (lowercased)
            └── 5. body by Content-Length    → 400 if short
            │
            ▼
        HTTPRequest
    """

    VALID_METHODS = {
        "GET", "HEAD", "POST", "PUT", "DELETE",
        "PATCH", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data.

        Args:
            data: Raw request bytes from the socket.
            client_address: Client's (ip, port) for logging.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, target, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            target=target,
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str,
    ) -> tuple[str, str, str, Dict[str, list[str]], str]:
        """
        Parse "METHOD SP TARGET SP VERSION".

        Returns:
            (method, target, path, query_params, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        path, query = self._split_target(target)
        query_params = parse_qs(query, keep_blank_values=True)

        if ".." in path.split("/"):
            raise HTTPParseError("Invalid path: contains a '..' segment")

        return method, target, path, query_params, version

    @staticmethod
    def _split_target(target: str) -> tuple[str, str]:
        """
        Split a request target into (decoded path, raw query).

        Origin-form targets are split by hand: "//a.txt" is a path with an
        empty first segment, not a network location. Absolute-form targets
        ("http://host/a.txt") go through urlsplit().
        """
        if not target.startswith("/") and "://" in target:
            parts = urlsplit(target)
            raw_path, query = parts.path or "/", parts.query
        else:
            raw_path, _, query = target.partition("?")
        return unquote(raw_path) or "/", query

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict with lowercase names.

        Repeated headers are joined with ", ". Malformed lines are skipped.
        """
        headers: Dict[str, str] = {}

        for line in lines:
            if not line:
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: Optional[int] = None,
) -> HTTPRequest:
    """Parse a request with a throwaway RequestParser."""
    parser = RequestParser() if max_size is None else RequestParser(max_request_size=max_size)
    return parser.parse(data, client_address)
