"""
=============================================================================
ROUTING
=============================================================================

Everything between the parsed config file and "which file answers this
request path":

    file_object.py   InferMime / ExplicitMime, the two shapes of a route
    paths.py         relative/absolute handling against the config root
    table.py         RouteSpec → RouteTable, and request path lookup

=============================================================================
"""

from .file_object import (
    ExplicitMime,
    FileObject,
    InferMime,
    file_path,
    parse_file_object,
    resolve_mime,
)
from .paths import PathKind, absolutize, classify, relativize_if_descendant
from .table import (
    RESERVED_DIRECT_KEY,
    Route,
    RouteSpec,
    RouteTable,
    build_route_table,
    normalize_direct,
)

__all__ = [
    # File objects
    "FileObject",
    "InferMime",
    "ExplicitMime",
    "file_path",
    "parse_file_object",
    "resolve_mime",

    # Path normalization
    "PathKind",
    "classify",
    "relativize_if_descendant",
    "absolutize",

    # Route table
    "Route",
    "RouteSpec",
    "RouteTable",
    "RESERVED_DIRECT_KEY",
    "build_route_table",
    "normalize_direct",
]
