"""
=============================================================================
404 PAGE CACHE
=============================================================================

The site file may name a page to send with every 404:

    404 = "errors/not-found.html"

It is read ONCE, before the listener is bound, and kept in memory for the
life of the process. Editing the file on disk afterwards changes nothing
until a restart.

    ┌────────────────────────┬──────────────────────────────────────────┐
    │ site file              │ every 404 response                       │
    ├────────────────────────┼──────────────────────────────────────────┤
    │ no `404` key           │ status only, empty body                  │
    │ `404` readable         │ cached bytes, Content-Type: text/html    │
    │ `404` unreadable       │ error logged, status only, empty body    │
    └────────────────────────┴──────────────────────────────────────────┘

A broken 404 page never stops the server from starting.

=============================================================================
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

ERROR_PAGE_CONTENT_TYPE = "text/html"


@dataclass(frozen=True)
class ErrorPage:
    """
    The cached 404 payload; ``body`` is None when there is nothing to send.
    """

    body: Optional[bytes] = None
    content_type: str = ERROR_PAGE_CONTENT_TYPE
    status: HTTPStatus = HTTPStatus.NOT_FOUND

    @property
    def is_empty(self) -> bool:
        return self.body is None

    def response(self) -> HTTPResponse:
        """A fresh response for one miss. Callers may add headers to it."""
        builder = ResponseBuilder().status(self.status)
        if self.body is not None:
            builder.content_type(self.content_type).body(self.body)
        return builder.build()


def load_error_page(path: Optional[Path]) -> ErrorPage:
    """
    Read the 404 page, or fall back to an empty one.

    Args:
        path: Absolute path from the site file, or None.

    Returns:
        The ErrorPage to use for the rest of the process.
    """
    if path is None:
        logger.info("proceeding without 404 file")
        return ErrorPage()

    try:
        body = Path(path).read_bytes()
    except OSError as e:
        logger.error(f"failed to load 404 file: {e}")
        return ErrorPage()

    logger.info("loaded 404 file")
    return ErrorPage(body=body)
