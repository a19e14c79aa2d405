"""
=============================================================================
CONFIGURATION
=============================================================================

Two kinds of configuration, kept apart on purpose:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         CONFIGURATION                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SiteConfig  ← the TOML file given on the command line             │
    │      WHAT to serve and WHERE to listen                              │
    │      addr, failsafe_addrs, 404, index, get_routes                   │
    │      frozen: built once, never changed                              │
    │                                                                      │
    │   ServerConfig ← defaults + CONFSERVE_* environment variables       │
    │      HOW to serve: workers, timeouts, buffer sizes, log level       │
    │      validated at startup (fail fast)                               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THE SITE FILE
=============================================================================

    addr = "127.0.0.1:8080"
    failsafe_addrs = ["127.0.0.1:8081", "localhost:8082"]
    404 = "404.html"
    index = "index.html"

    [get_routes]
    direct = ["style.css", "img/logo.png"]
    "about" = "pages/about.html"
    "notes" = { type = "text/markdown", path = "notes.md" }
    "%direct" = "pages/direct.html"     # answers GET /direct

Relative paths are relative to the directory holding the config file
(the ROOT), not to the current working directory.

=============================================================================
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Optional

from .routing import FileObject, RouteSpec, absolutize, parse_file_object


logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """The site config file could not be read or understood."""


# =============================================================================
# RUNTIME SETTINGS
# =============================================================================

@dataclass
class ServerConfig:
    """
    Runtime tuning for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK
    - backlog, buffer_size, timeout

    HTTP
    - keep_alive, keep_alive_timeout, max_request_size

    THREADING
    - min_workers, max_workers, queue_size

    LOGGING / IDENTITY
    - log_level, server_name

    The listen address is NOT here: it comes from the site file, which may
    list several candidates.

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 8192
    """Bytes read per recv() call."""

    timeout: Optional[float] = 30.0
    """Socket timeout for the first request on a connection, in seconds."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """Allow several requests per TCP connection."""

    keep_alive_timeout: float = 5.0
    """Idle time after which a kept-alive connection is closed."""

    max_request_size: int = 1024 * 1024  # 1 MB
    """
    Largest accepted request, headers included.
    GET requests are small; anything near this limit is abuse.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    queue_size: int = 100
    """Connections waiting for a worker before new ones get 503."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    server_name: str = "confserve/1.0"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create a configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        CONFSERVE_WORKERS    Max worker threads (default: 16)
        CONFSERVE_TIMEOUT    Socket timeout in seconds (default: 30)
        CONFSERVE_BACKLOG    Listen backlog (default: 128)
        CONFSERVE_LOG_LEVEL  DEBUG, INFO, WARNING or ERROR (default: INFO)

        =====================================================================
        """
        max_workers = int(os.getenv("CONFSERVE_WORKERS", "16"))
        return cls(
            backlog=int(os.getenv("CONFSERVE_BACKLOG", "128")),
            timeout=float(os.getenv("CONFSERVE_TIMEOUT", "30")),
            min_workers=min(4, max_workers),
            max_workers=max_workers,
            log_level=os.getenv("CONFSERVE_LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> None:
        """Reject nonsensical values before anything is started."""
        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError(f"unknown log level: {self.log_level}")


# =============================================================================
# SITE FILE
# =============================================================================

@dataclass(frozen=True)
class SiteConfig:
    """
    The parsed, path-resolved site config file.

    Attributes:
        root: Absolute directory containing the config file.
        addr: Primary listen address, "host:port".
        failsafe_addrs: Fallback addresses, tried in order after ``addr``.
        not_found: Absolute path of the 404 page, if configured.
        routes: The ``[get_routes]`` section, if present.
        index: File served for ``/``, if configured.
    """

    root: Path
    addr: str
    failsafe_addrs: tuple[str, ...] = ()
    not_found: Optional[Path] = None
    routes: Optional[RouteSpec] = None
    index: Optional[FileObject] = None

    @property
    def candidates(self) -> tuple[str, ...]:
        """All listen addresses in the order they should be tried."""
        return (self.addr, *self.failsafe_addrs)


def config_root(config_path: Path) -> Path:
    """
    Directory containing the config file, as an absolute path.

    Symlinks are NOT resolved: the root is where the user says the file is.
    """
    root = config_path.parent
    if not root.is_absolute():
        root = Path.cwd() / root
    return root


def load_config(config_path: str | Path) -> SiteConfig:
    """
    Read and parse a site config file.

    Args:
        config_path: Path to the TOML file.

    Returns:
        The SiteConfig, with ``not_found`` already absolute.

    Raises:
        ConfigError: If the file can't be read or isn't a valid site config.
    """
    config_path = Path(config_path)

    try:
        text = config_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"failed to open file ({e})") from e

    try:
        data = tomllib.loads(text)
        return parse_site_config(data, config_root(config_path))
    except (tomllib.TOMLDecodeError, ValueError) as e:
        raise ConfigError(f"malformed config file ({e})") from e


def parse_site_config(data: dict[str, Any], root: Path) -> SiteConfig:
    """
    Build a SiteConfig from an already-parsed TOML document.

    Unknown top-level keys are ignored.

    Raises:
        ValueError: On missing keys or wrong value types.
    """
    addr = data.get("addr")
    if not isinstance(addr, str):
        raise ValueError("`addr` must be given as a string")

    failsafe_addrs = data.get("failsafe_addrs", [])
    if not isinstance(failsafe_addrs, list) or not all(
        isinstance(a, str) for a in failsafe_addrs
    ):
        raise ValueError("`failsafe_addrs` must be a list of strings")

    not_found = data.get("404")
    if not_found is not None and not isinstance(not_found, str):
        raise ValueError("`404` must be a path string")

    index = data.get("index")
    routes = data.get("get_routes")
    if routes is not None and not isinstance(routes, dict):
        raise ValueError("`get_routes` must be a table")

    return SiteConfig(
        root=root,
        addr=addr,
        failsafe_addrs=tuple(failsafe_addrs),
        not_found=absolutize(Path(not_found), root) if not_found is not None else None,
        routes=parse_route_spec(routes) if routes is not None else None,
        index=_file_object("index", index) if index is not None else None,
    )


def parse_route_spec(section: dict[str, Any]) -> RouteSpec:
    """
    Split a ``[get_routes]`` table into its direct list and its map.

    Every key except ``direct`` is a request key mapped to a file object.
    """
    direct = section.get("direct", [])
    if not isinstance(direct, list):
        raise ValueError("`get_routes.direct` must be a list")

    direct_files = tuple(
        _file_object(f"get_routes.direct[{i}]", value) for i, value in enumerate(direct)
    )
    mapped = {
        key: _file_object(f"get_routes.{key}", value)
        for key, value in section.items()
        if key != "direct"
    }

    return RouteSpec(direct=direct_files, map=MappingProxyType(mapped))


def _file_object(where: str, value: Any) -> FileObject:
    try:
        return parse_file_object(value)
    except ValueError as e:
        raise ValueError(f"`{where}`: {e}") from e
