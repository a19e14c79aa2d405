"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The handful of status codes this server can actually produce.

    ┌───────┬───────────────────────────┬───────────────────────────────────┐
    │ Code  │ Phrase                    │ When                              │
    ├───────┼───────────────────────────┼───────────────────────────────────┤
    │  200  │ OK                        │ Route hit, file read              │
    │  400  │ Bad Request               │ Unparsable request                │
    │  404  │ Not Found                 │ No route, or routed file missing  │
    │  405  │ Method Not Allowed        │ Anything but GET                  │
    │  408  │ Request Timeout           │ Client never finished its request │
    │  413  │ Payload Too Large         │ Request over the size limit       │
    │  500  │ Internal Server Error     │ File I/O failure, handler crash   │
    │  503  │ Service Unavailable       │ Worker queue full                 │
    │  505  │ HTTP Version Not Supported│ Neither HTTP/1.0 nor HTTP/1.1     │
    └───────┴───────────────────────────┴───────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes with reason phrases.

    IntEnum, so members compare equal to plain ints:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200

    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line, e.g. "Not Found"."""
        return _STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        """Check if this is a 2xx status."""
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        """Check if this is a 4xx or 5xx status."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
