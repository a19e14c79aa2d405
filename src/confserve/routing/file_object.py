"""
=============================================================================
FILE OBJECTS
=============================================================================

A file object describes ONE routable file in the config file. It comes in
exactly two shapes:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        FILE OBJECT SHAPES                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   TOML                                  Python                      │
    │   ────                                  ──────                      │
    │                                                                      │
    │   "css/site.css"                        InferMime(path)             │
    │     └── bare string                       └── type from extension   │
    │                                                                      │
    │   { type = "text/plain",                ExplicitMime(type, path)    │
    │     path = "notes.md" }                   └── type given literally  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The two shapes are a closed sum: every consumer handles both, so they are
plain frozen dataclasses joined with a Union instead of a class hierarchy.
=============================================================================
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from ..http.mime_types import infer_mime, parse_mime


@dataclass(frozen=True)
class InferMime:
    """A file whose content type is derived from its extension."""

    path: Path


@dataclass(frozen=True)
class ExplicitMime:
    """A file whose content type is given literally by the config author."""

    type: str
    path: Path


FileObject = Union[InferMime, ExplicitMime]


def parse_file_object(value: Any) -> FileObject:
    """
    Build a FileObject from a parsed TOML value.

    Args:
        value: A string (inferred type) or a table with ``type`` and
               ``path`` string keys (explicit type). Extra keys in the
               table are ignored.

    Returns:
        The matching FileObject.

    Raises:
        ValueError: If the value has neither shape.
    """
    if isinstance(value, str):
        return InferMime(Path(value))

    if isinstance(value, dict):
        mime = value.get("type")
        path = value.get("path")
        if isinstance(mime, str) and isinstance(path, str):
            return ExplicitMime(mime, Path(path))
        raise ValueError(
            f"file table needs string `type` and `path` keys, got {sorted(value)}"
        )

    raise ValueError(
        f"expected a path string or a {{ type, path }} table, got {type(value).__name__}"
    )


def file_path(obj: FileObject) -> Path:
    """Get the path carried by either shape."""
    return obj.path


def with_path(obj: FileObject, path: Path) -> FileObject:
    """Return a copy of ``obj`` pointing at ``path``, keeping its shape."""
    if isinstance(obj, ExplicitMime):
        return ExplicitMime(obj.type, path)
    return InferMime(path)


def resolve_mime(obj: FileObject) -> Optional[str]:
    """
    Content type for a file object, or None if there is none to send.

    An explicit type that fails to parse degrades to None; the route is
    still served, only without a Content-Type header.
    """
    if isinstance(obj, ExplicitMime):
        return parse_mime(obj.type)
    return infer_mime(obj.path)
