"""
=============================================================================
PATH NORMALIZATION
=============================================================================

Every path in the config file is interpreted against the ROOT: the
absolute directory that contains the config file.

    root = /srv/site

    ┌──────────────────────────┬────────────────────┬──────────────────────┐
    │ Path in config           │ Kind               │ Result               │
    ├──────────────────────────┼────────────────────┼──────────────────────┤
    │ img/x.png                │ relative           │ /srv/site/img/x.png  │
    │ /srv/site/img/x.png      │ absolute, inside   │ img/x.png (relative) │
    │ /etc/passwd              │ absolute, outside  │ stays absolute       │
    │ /srv/site                │ absolute, == root  │ stays absolute       │
    └──────────────────────────┴────────────────────┴──────────────────────┘

The descendant check is component-wise: /srv/site2/x is NOT inside
/srv/site, even though the strings share a prefix.

A root or path that cannot be encoded as UTF-8 (undecodable bytes from the
filesystem end up as lone surrogates in a Python str) never matches.
=============================================================================
"""

from enum import Enum
from pathlib import Path
from typing import Optional


class PathKind(Enum):
    """Classification of a path relative to the filesystem root."""

    ABSOLUTE = "absolute"
    RELATIVE = "relative"


def classify(path: Path) -> PathKind:
    """Tell whether ``path`` is absolute or relative."""
    return PathKind.ABSOLUTE if path.is_absolute() else PathKind.RELATIVE


def is_utf8_safe(path: Path) -> bool:
    """Check that ``path`` round-trips through UTF-8."""
    try:
        str(path).encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def relativize_if_descendant(path: Path, root: Path) -> Optional[Path]:
    """
    Strip ``root`` off an absolute ``path`` that lies strictly below it.

    Args:
        path: Candidate path.
        root: Absolute root directory.

    Returns:
        The relative remainder, or None when ``path`` is relative, outside
        ``root``, equal to ``root``, or not UTF-8 safe.
    """
    if not path.is_absolute():
        return None
    if not (is_utf8_safe(root) and is_utf8_safe(path)):
        return None
    if not path.is_relative_to(root):
        return None

    remainder = path.relative_to(root)
    if remainder == Path("."):
        return None
    return remainder


def absolutize(path: Path, root: Path) -> Path:
    """Join a relative ``path`` onto ``root``; absolute paths pass through."""
    if path.is_absolute():
        return path
    return root / path
