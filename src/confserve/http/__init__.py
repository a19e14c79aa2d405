"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

The wire-level pieces of the server. None of them know about routes or
config files.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py       raw bytes      → HTTPRequest                       │
    │ response.py      HTTPResponse   → raw bytes                         │
    │ status_codes.py  HTTPStatus enum with reason phrases                │
    │ mime_types.py    extension / literal string → Content-Type value    │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,                  # 200 OK
    not_found,           # 404 Not Found (bare)
    method_not_allowed,  # 405 Method Not Allowed
    internal_error,      # 500 Internal Server Error
    error_response,      # any error status, closes connection
)
from .status_codes import HTTPStatus
from .mime_types import MIME_TYPES, infer_mime, parse_mime

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "not_found",
    "method_not_allowed",
    "internal_error",
    "error_response",

    # Status codes
    "HTTPStatus",

    # MIME types
    "MIME_TYPES",
    "infer_mime",
    "parse_mime",
]
