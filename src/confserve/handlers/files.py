"""
=============================================================================
ROUTED FILE HANDLER
=============================================================================

Answers every request from the route table. There is no directory
scanning: a file is reachable only if the site file routes it.

=============================================================================
FLOW
=============================================================================

    request
       │
       ├── method != GET ─────────────────────────────► 405, Allow: GET
       │
       ├── table.resolve(path) is None ───────────────► 404 page
       │     "[GET /x] blocked (no configured route)"
       │
       └── read the routed file
             "[GET /x] open 'css/site.css'"
             │
             ├── OK ──────────────────────────────────► 200 (+ Content-Type)
             ├── FileNotFoundError / NotADirectoryError ► 404 page
             └── any other OSError ───────────────────► 500 "I/O error"

The 500 body is deliberately generic. The OS error (which names paths
on the host) only goes to the server log.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, internal_error, method_not_allowed, ok
from ..routing import RouteTable
from .error_page import ErrorPage


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("confserve.access")

ALLOWED_METHODS = ["GET"]
IO_ERROR_MESSAGE = "I/O error"


class FileRouteHandler:
    """
    Serves the files named in a RouteTable.

    Holds only read-only state, so one instance is shared by every worker.

    Usage:
        handler = FileRouteHandler(table, error_page, root=site.root)
        response = handler.handle(request)
    """

    def __init__(
        self,
        route_table: RouteTable,
        error_page: Optional[ErrorPage] = None,
        root: Optional[Path] = None,
    ):
        """
        Args:
            route_table: Request key → (content type, absolute path).
            error_page: Payload for misses; defaults to a bare 404.
            root: Site root, only used to shorten paths in the log.
        """
        self.route_table = route_table
        self.error_page = error_page or ErrorPage()
        self.root = root

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Produce the response for one request."""
        uri = request.target or request.path

        if request.method != "GET":
            access_logger.info(f"[!] unsupported request: {request.method} {uri}")
            return method_not_allowed(ALLOWED_METHODS)

        route = self.route_table.resolve(request.path)
        if route is None:
            access_logger.info(f"[GET {uri}] blocked (no configured route)")
            return self.error_page.response()

        access_logger.info(f"[GET {uri}] open {str(self._display_path(route.path))!r}")

        try:
            body = route.path.read_bytes()
        except (FileNotFoundError, NotADirectoryError) as e:
            logger.error(f"I/O error at {str(route.path)!r}: {e}")
            return self.error_page.response()
        except OSError as e:
            logger.error(f"I/O error at {str(route.path)!r}: {e}")
            return internal_error(IO_ERROR_MESSAGE)

        return ok(body, route.content_type)

    __call__ = handle

    def _display_path(self, path: Path) -> Path:
        if self.root is not None and path.is_relative_to(self.root):
            return path.relative_to(self.root)
        return path
