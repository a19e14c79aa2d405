"""
Networking core: address binding, the accept loop, per-connection I/O and
the worker pool.
"""

from .binder import BoundListener, bind_first, open_listener, resolve_address, split_host_port
from .connection import Connection, ConnectionState
from .socket_server import SocketServer
from .thread_pool import ThreadPool

__all__ = [
    "BoundListener",
    "bind_first",
    "open_listener",
    "resolve_address",
    "split_host_port",
    "Connection",
    "ConnectionState",
    "SocketServer",
    "ThreadPool",
]
