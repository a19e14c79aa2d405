"""
=============================================================================
SERVER
=============================================================================

Ties the pieces together: startup happens once, in order, on the calling
thread; serving happens on the worker pool.

=============================================================================
STARTUP
=============================================================================

    load_config(path)              SiteConfig          (CLI, before this)
          │
          ▼
    build_route_table(...)         RouteTable          immutable
          │
          ▼
    load_error_page(...)           ErrorPage           immutable
          │
          ▼
    bind_first(candidates)         BoundListener       or None → stop
          │
          ▼
    SocketServer.start(...)        accept loop         blocks

Everything above the accept loop either completes or fails before a
single request is read. After that the route table and the 404 page are
only ever read, so every worker shares them without locks.

=============================================================================
PER CONNECTION (worker thread)
=============================================================================

    read_request() ──► RequestParser ──► middleware ──► FileRouteHandler
         ▲                   │ HTTPParseError → 400/405/413/505, close
         │                   ▼
         └──── keep-alive ◄── send_response()

=============================================================================
"""

import logging
import sys
from typing import Optional

from .config import ServerConfig, SiteConfig
from .core import BoundListener, Connection, ConnectionState, SocketServer, ThreadPool, bind_first
from .handlers import ErrorPage, FileRouteHandler, load_error_page
from .http import (
    HTTPParseError,
    HTTPResponse,
    HTTPStatus,
    RequestParser,
    error_response,
    internal_error,
    method_not_allowed,
)
from .middleware import LoggingMiddleware, MiddlewarePipeline
from .routing import RouteTable, build_route_table


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
ACCESS_LOG_FORMAT = "%(asctime)s %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class HTTPServer:
    """
    Declaratively configured file server.

    Usage:
        site = load_config("site.toml")
        server = HTTPServer(site)
        if not server.prepare():
            sys.exit(1)         # no address could be bound
        server.serve_forever()  # until SIGINT/SIGTERM or shutdown()

    prepare() and serve_forever() are split so tests (and embedding code)
    can learn the bound port before the accept loop starts.
    """

    def __init__(self, site: SiteConfig, config: Optional[ServerConfig] = None):
        self.site = site
        self.config = config or ServerConfig()
        self.config.validate()

        self.route_table: Optional[RouteTable] = None
        self.error_page: Optional[ErrorPage] = None
        self.listener: Optional[BoundListener] = None

        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._middleware = MiddlewarePipeline().add(LoggingMiddleware(log_level=logging.DEBUG))
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._socket_server: Optional[SocketServer] = None
        self._handler = None
        self._running = False

    @property
    def address(self) -> tuple:
        """Bound (host, port); only valid after prepare()."""
        if self.listener is None:
            raise RuntimeError("server is not bound")
        return self.listener.socket.getsockname()[:2]

    # =========================================================================
    # STARTUP
    # =========================================================================

    def prepare(self) -> bool:
        """
        Build the route table, load the 404 page, then bind.

        Returns:
            False if none of the candidate addresses could be bound.
        """
        self.route_table = build_route_table(self.site.routes, self.site.root, self.site.index)
        self.error_page = load_error_page(self.site.not_found)
        self._handler = self._middleware.wrap(
            FileRouteHandler(self.route_table, self.error_page, self.site.root).handle
        )

        self.listener = bind_first(self.site.candidates, backlog=self.config.backlog)
        if self.listener is None:
            logger.error("failed to bind to any address")
            return False

        self._socket_server = SocketServer(self.listener.socket, self.config)
        return True

    def serve_forever(self):
        """Run the accept loop until shutdown. Requires prepare()."""
        if self._socket_server is None:
            raise RuntimeError("call prepare() first")

        self._running = True
        self._thread_pool.start()
        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._stop_workers()

    def run(self) -> bool:
        """prepare() then serve_forever(); False if nothing could be bound."""
        if not self.prepare():
            return False
        self.serve_forever()
        return True

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Stop accepting and wait for the accept loop to exit.

        Returns:
            False if the loop did not stop within ``timeout``.
        """
        if self._socket_server is None:
            return True
        self._socket_server.shutdown()
        return self._socket_server.wait_for_shutdown(timeout)

    def _stop_workers(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # SERVING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Accept-loop callback: queue the connection, or refuse it with 503."""
        if not self._thread_pool.submit(self._process_connection, conn):
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one connection (worker thread)."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except HTTPParseError as e:
                    self._send_error(conn, HTTPStatus(e.status_code), str(e))
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    self._send_parse_error(conn, e)
                    break

                conn.state = ConnectionState.PROCESSING
                try:
                    response = self._handler(request)
                except Exception:
                    logger.exception(f"[{conn.id}] Handler error")
                    response = internal_error()

                keep_alive = self.config.keep_alive and request.is_keep_alive
                self._set_connection_headers(response, keep_alive)

                if not conn.send_response(response.to_bytes(self.config.server_name)):
                    break
                if not keep_alive:
                    break
                conn.set_keep_alive()

    def _set_connection_headers(self, response: HTTPResponse, keep_alive: bool):
        if keep_alive:
            response.headers.setdefault("Connection", "keep-alive")
            response.headers.setdefault(
                "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
            )
        else:
            response.headers["Connection"] = "close"

    def _send_parse_error(self, conn: Connection, error: HTTPParseError):
        if error.status_code == HTTPStatus.METHOD_NOT_ALLOWED:
            response = method_not_allowed(["GET"]).set_header("Connection", "close")
            conn.send_response(response.to_bytes(self.config.server_name))
        else:
            self._send_error(conn, HTTPStatus(error.status_code), str(error))

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        response = error_response(status, message)
        conn.send_response(response.to_bytes(self.config.server_name))


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(level: str = "INFO"):
    """
    Configure logging once at startup.

    Diagnostics go to stderr in the usual format. The ``confserve.access``
    logger writes to stdout and does not propagate, so request lines and
    diagnostics can be redirected separately.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stderr,
    )
    logging.getLogger("confserve").setLevel(numeric_level)

    access = logging.getLogger("confserve.access")
    if not any(getattr(h, "_confserve_access", False) for h in access.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(ACCESS_LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        handler._confserve_access = True
        access.addHandler(handler)
    access.propagate = False
