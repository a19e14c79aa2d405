"""
=============================================================================
ROUTE TABLE
=============================================================================

Turns the declarative ``[get_routes]`` section into an immutable lookup
table from request path to (content type, absolute file path).

=============================================================================
BUILD PIPELINE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      build_route_table()                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   RouteSpec(direct=[...], map={...})                                │
    │        │                                                             │
    │        ▼                                                             │
    │   1. normalize_direct()                                             │
    │        ├── relative             → kept as is                        │
    │        ├── absolute, under root → made relative (INFO)              │
    │        └── absolute, elsewhere  → dropped (WARNING)                 │
    │        │                                                             │
    │        ▼                                                             │
    │   2. index and map entries: relative kept, absolute dropped (WARN)  │
    │   3. absolutize every path against root                             │
    │   4. resolve_mime() every entry                                     │
    │        │                                                             │
    │        ▼                                                             │
    │   5. insert, in this order:                                         │
    │        index   → key ""                                             │
    │        map     → key as written by the author                       │
    │        direct  → key = relative path string  (wins on collisions)   │
    │        │                                                             │
    │        ▼                                                             │
    │   RouteTable (read-only, shared by every worker thread)             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
LOOKUP RULES
=============================================================================

    request path      table key
    ────────────      ─────────
    /a.txt            a.txt
    a.txt             a.txt
    /                 ""            (the index entry, if configured)
    /direct           %direct       ("direct" is taken by the direct list)

A missing key is a miss (None), never an exception.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping, NamedTuple, Optional

from .file_object import FileObject, file_path, resolve_mime, with_path
from .paths import absolutize, relativize_if_descendant


logger = logging.getLogger(__name__)


# The direct list lives under get_routes.direct, so a map route for the
# request path /direct has to be registered under this key instead.
DIRECT_KEY = "direct"
RESERVED_DIRECT_KEY = "%direct"

INDEX_KEY = ""


class Route(NamedTuple):
    """One resolved route: optional content type plus absolute path."""

    content_type: Optional[str]
    path: Path


@dataclass(frozen=True)
class RouteSpec:
    """
    The raw ``[get_routes]`` section.

    Attributes:
        direct: Files reachable under their own relative path.
        map: Request key → file, as written by the config author.
    """

    direct: tuple[FileObject, ...] = ()
    map: Mapping[str, FileObject] = field(default_factory=dict)


@dataclass(frozen=True)
class NormalizeReport:
    """
    Outcome of normalizing the direct list.

    Attributes:
        kept: Direct entries with relative paths, in config order.
        converted: (absolute, relative) pairs rewritten under the root.
        dropped: Absolute paths outside the root.
    """

    kept: tuple[FileObject, ...]
    converted: tuple[tuple[Path, Path], ...]
    dropped: tuple[Path, ...]


def normalize_direct(direct: tuple[FileObject, ...], root: Path) -> NormalizeReport:
    """
    Make every direct entry relative to ``root``, or drop it.

    Pure: returns new FileObjects and a report, logs nothing.
    """
    kept: list[FileObject] = []
    converted: list[tuple[Path, Path]] = []
    dropped: list[Path] = []

    for obj in direct:
        path = file_path(obj)
        if not path.is_absolute():
            kept.append(obj)
            continue

        relative = relativize_if_descendant(path, root)
        if relative is None:
            dropped.append(path)
            continue

        converted.append((path, relative))
        kept.append(with_path(obj, relative))

    return NormalizeReport(tuple(kept), tuple(converted), tuple(dropped))


class RouteTable:
    """
    Immutable mapping from request key to Route.

    Built once at startup, then read concurrently by every worker without
    locking.

    Usage:
        table = build_route_table(spec, root)
        route = table.resolve("/css/site.css")
        if route is None:
            ...  # 404
    """

    __slots__ = ("_routes",)

    def __init__(self, routes: Optional[Mapping[str, Route]] = None):
        self._routes = MappingProxyType(dict(routes or {}))

    @staticmethod
    def lookup_key(request_path: str) -> str:
        """
        Map a request path to its table key.

        Strips ONE leading slash, then rewrites "direct" to "%direct".
        """
        key = request_path[1:] if request_path.startswith("/") else request_path
        if key == DIRECT_KEY:
            return RESERVED_DIRECT_KEY
        return key

    def resolve(self, request_path: str) -> Optional[Route]:
        """Find the route for ``request_path``; None on a miss."""
        return self._routes.get(self.lookup_key(request_path))

    def __getitem__(self, key: str) -> Route:
        return self._routes[key]

    def __contains__(self, key: object) -> bool:
        return key in self._routes

    def __iter__(self) -> Iterator[str]:
        return iter(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def __repr__(self) -> str:
        return f"RouteTable({len(self._routes)} routes)"


def build_route_table(
    spec: Optional[RouteSpec],
    root: Path,
    index: Optional[FileObject] = None,
) -> RouteTable:
    """
    Build the route table for a site.

    Args:
        spec: The ``[get_routes]`` section, or None if the file has none.
        root: Absolute directory containing the config file.
        index: Optional file served for ``/``.

    Returns:
        A RouteTable with absolute paths only.
    """
    routes: dict[str, Route] = {}

    if index is not None and _relative_or_warn("index", index):
        routes[INDEX_KEY] = _route(index, root)

    if spec is None:
        return RouteTable(routes)

    report = normalize_direct(spec.direct, root)
    for path in report.dropped:
        logger.warning(
            f"ignoring {str(path)!r} (absolute paths in `direct` must be "
            f"descendants of the config file's directory)"
        )
    for absolute, relative in report.converted:
        logger.info(f"converted {str(absolute)!r} to the relative path {str(relative)!r}")

    for key, obj in spec.map.items():
        if _relative_or_warn(key, obj):
            routes[key] = _route(obj, root)

    # Direct entries go last so they override map entries with the same key
    for obj in report.kept:
        routes[str(file_path(obj))] = _route(obj, root)

    logger.debug(f"built route table with {len(routes)} routes")
    return RouteTable(routes)


def _relative_or_warn(key: str, obj: FileObject) -> bool:
    # Only `direct` entries are converted; a mapped absolute path is never routed
    path = file_path(obj)
    if path.is_absolute():
        logger.warning(
            f"ignoring {str(path)!r} for route {key!r} (mapped paths must be "
            f"relative to the config file's directory)"
        )
        return False
    return True


def _route(obj: FileObject, root: Path) -> Route:
    return Route(resolve_mime(obj), absolutize(file_path(obj), root))
