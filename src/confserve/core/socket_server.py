"""
=============================================================================
ACCEPT LOOP
=============================================================================

Runs the accept loop on a socket that the binder has ALREADY bound and put
into listening mode. Choosing the address is not this module's business:

    bind_first(candidates)  ──►  BoundListener  ──►  SocketServer(listener)
                                                         │
                                                         └──► start(handler)
                                                                 accept()
                                                                 Connection(...)
                                                                 handler(conn)

=============================================================================
INTERRUPTIBLE ACCEPT
=============================================================================

accept() blocks forever by default, so the listener gets a 1 second
timeout and the loop re-checks its running flag on every timeout:

    while running:
        try:    accept()          ← at most 1s
        except  socket.timeout:   continue

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, systemd, kill) trigger a
graceful shutdown. Python only allows signal handlers on the main thread,
so when start() runs elsewhere (tests, embedding) no handlers are
installed and shutdown() must be called instead.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Accepts connections on a bound listener and hands them to a callback.

    Usage:
        server = SocketServer(listener.socket, config)
        server.start(handle_connection)   # blocks until shutdown()
    """

    def __init__(self, listener: socket.socket, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self._socket: Optional[socket.socket] = listener
        self._running = False
        self._stopped = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> tuple:
        """The (host, port, ...) the listener is bound to."""
        if self._socket is None:
            raise RuntimeError("listener already closed")
        return self._socket.getsockname()

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, leaving signal handlers alone")
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown() is called. Blocks.

        The listener is closed when this returns.
        """
        if self._socket is None:
            raise RuntimeError("listener already closed")

        self._socket.settimeout(ACCEPT_POLL_INTERVAL)
        self._running = True
        self._stopped.clear()
        self._setup_signals()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self):
        """Ask the accept loop to stop. Idempotent, callable from any thread."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        self._stopped.set()
        logger.info("Socket server stopped")

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop has exited; False on timeout."""
        return self._stopped.wait(timeout)
