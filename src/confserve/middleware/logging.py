"""
=============================================================================
ACCESS LOGGING
=============================================================================

Logs one line per completed request on the ``confserve.access`` logger,
which setup_logging() points at stdout.

    127.0.0.1 - - [18/Oct/2026:12:00:00 +0000] "GET /css/site.css" 200 5120 0.41ms

The server installs it at DEBUG, below the routed handler's own INFO
lines, so the summary only shows up with ``--log-level DEBUG``.

=============================================================================
"""

import logging
import time
from dataclasses import dataclass

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("confserve.access")


@dataclass
class RequestLog:
    """One access log entry."""

    method: str
    target: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_text(self) -> str:
        """Apache-style: ip - - [time] "METHOD target" status bytes duration."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Times each request and logs the outcome.

    Args:
        log_level: Level the entries are logged at.
    """

    def __init__(self, log_level: int = logging.INFO):
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        start = time.perf_counter()
        try:
            response = next(request)
        except Exception as e:
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e}"
            )
            raise

        if not logger.isEnabledFor(self.log_level):
            return response

        entry = RequestLog(
            method=request.method,
            target=request.target or request.path,
            client_ip=request.client_address[0] or "-",
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=(time.perf_counter() - start) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )
        logger.log(self.log_level, entry.to_text())

        return response
