"""
=============================================================================
ADDRESS FALLBACK BINDER
=============================================================================

Turns the ordered list of candidate address strings from the site file
into ONE listening socket.

    addr = "example.local:80"
    failsafe_addrs = ["127.0.0.1:8080", "localhost:8081"]

            candidates, in order
                    │
    ┌───────────────▼───────────────┐
    │ "example.local:80"            │── getaddrinfo() fails ──► warn, skip
    ├───────────────────────────────┤
    │ "127.0.0.1:8080"              │
    │    └── 127.0.0.1:8080         │── bind() EADDRINUSE ───► warn, next
    ├───────────────────────────────┤
    │ "localhost:8081"              │
    │    ├── [::1]:8081             │── bind() OK ───────────► DONE
    │    └── 127.0.0.1:8081         │   (never tried)
    └───────────────────────────────┘

One string can RESOLVE to several socket addresses (a hostname with both
IPv6 and IPv4 entries). Each is tried in the order the resolver returns
them. The first successful bind wins and nothing after it is attempted.

If nothing binds, bind_first() returns None and the caller stops cleanly.

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR:
    Rebind right after a restart, while old connections sit in TIME_WAIT.

TCP_NODELAY:
    Inherited by accepted sockets; small responses leave immediately.

SO_REUSEPORT is NOT set. With it, a bind to a port another process is
already serving can succeed, and the fallback would never kick in.

=============================================================================
"""

import logging
import socket
from dataclasses import dataclass
from typing import Iterable, Optional


logger = logging.getLogger(__name__)

SockAddr = tuple


@dataclass
class BoundListener:
    """
    A listening socket plus where it came from.

    Attributes:
        socket: Bound and listening TCP socket.
        candidate: The address string that produced it.
        address: The concrete socket address it is bound to.
    """

    socket: socket.socket
    candidate: str
    address: SockAddr

    @property
    def host(self) -> str:
        return self.socket.getsockname()[0]

    @property
    def port(self) -> int:
        """Actual bound port (differs from the candidate for port 0)."""
        return self.socket.getsockname()[1]

    def close(self):
        self.socket.close()


def split_host_port(candidate: str) -> tuple[str, int]:
    """
    Split "host:port" into its parts.

    IPv6 literals must be bracketed: "[::1]:8080".

    Raises:
        ValueError: No port, an empty host, or a port outside 0-65535.
    """
    host, sep, port_text = candidate.rpartition(":")
    if not sep:
        raise ValueError("invalid socket address")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if not host:
        raise ValueError("invalid socket address")

    if not port_text.isdigit():
        raise ValueError("invalid port value")
    port = int(port_text)
    if port > 65535:
        raise ValueError("invalid port value")

    return host, port


def resolve_address(candidate: str) -> list[tuple[int, SockAddr]]:
    """
    Resolve a candidate string to (family, sockaddr) pairs, in resolver order.

    Raises:
        ValueError: The string is not "host:port".
        OSError: The host does not resolve (socket.gaierror).
    """
    host, port = split_host_port(candidate)
    infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)

    resolved: list[tuple[int, SockAddr]] = []
    for family, _type, _proto, _canonname, sockaddr in infos:
        if (family, sockaddr) not in resolved:
            resolved.append((family, sockaddr))
    return resolved


def format_sockaddr(sockaddr: SockAddr) -> str:
    """"127.0.0.1:8080" for IPv4, "[::1]:8080" for IPv6."""
    host, port = sockaddr[0], sockaddr[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def open_listener(family: int, sockaddr: SockAddr, backlog: int = 128) -> socket.socket:
    """
    Create, bind and listen on one concrete address.

    The socket is closed again if any step fails.

    Raises:
        OSError: From socket(), bind() or listen().
    """
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.bind(sockaddr)
        sock.listen(backlog)
    except OSError:
        sock.close()
        raise
    return sock


def bind_first(candidates: Iterable[str], backlog: int = 128) -> Optional[BoundListener]:
    """
    Bind to the first candidate address that works.

    Args:
        candidates: Address strings, primary first.
        backlog: listen() backlog for the winning socket.

    Returns:
        The BoundListener, or None if every candidate failed.
    """
    for candidate in candidates:
        try:
            resolved = resolve_address(candidate)
        except (OSError, ValueError) as e:
            logger.warning(f"no socket addr found for {candidate!r} ({e})")
            continue

        for family, sockaddr in resolved:
            try:
                sock = open_listener(family, sockaddr, backlog)
            except OSError as e:
                logger.warning(
                    f"failed to bind to address {candidate!r} = "
                    f"{format_sockaddr(sockaddr)} ({e})"
                )
                continue

            logger.info(f"listening on {candidate!r} = {format_sockaddr(sock.getsockname())}")
            return BoundListener(socket=sock, candidate=candidate, address=sockaddr)

    return None
