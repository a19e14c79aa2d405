"""
=============================================================================
MIME TYPE RESOLUTION
=============================================================================

Decides the Content-Type header for a routed file.

=============================================================================
TWO SOURCES OF TRUTH
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                 resolve_mime(file_object)                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ExplicitMime("text/markdown", "notes.md")                         │
    │       └── parse "text/markdown"                                     │
    │              ├── valid   → "text/markdown"                          │
    │              └── invalid → None (served without Content-Type)       │
    │                                                                      │
    │   InferMime("img/logo.png")                                         │
    │       └── look up extension "png" in MIME_TYPES                     │
    │              ├── known   → "image/png"                              │
    │              └── unknown → None                                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A bad or unknown type NEVER stops a route from being served. The file is
still sent, just without a Content-Type header, and the browser sniffs.

=============================================================================
CASE SENSITIVITY
=============================================================================

Extension lookup is case-sensitive: "logo.PNG" has no inferred type. Use
an explicit { type, path } entry for files with uppercase extensions.

=============================================================================
"""

import re
from pathlib import Path
from typing import Optional


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Keys are extensions WITHOUT the dot, matched case-sensitively.
#
# =============================================================================

MIME_TYPES = {
    # -------------------------------------------------------------------------
    # TEXT
    # -------------------------------------------------------------------------
    "txt": "text/plain",
    "html": "text/html",
    "css": "text/css",
    "js": "text/javascript",
    # -------------------------------------------------------------------------
    # IMAGES
    # -------------------------------------------------------------------------
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "jxl": "image/jxl",
    "svg": "image/svg+xml",
    # -------------------------------------------------------------------------
    # VIDEO
    # -------------------------------------------------------------------------
    "mp4": "video/mp4",
    "m4v": "video/mp4",
    "mkv": "video/x-matroska",     # Not registered, suggested by matroska.org
    # -------------------------------------------------------------------------
    # APPLICATION
    # -------------------------------------------------------------------------
    "pdf": "application/pdf",
    "wasm": "application/wasm",
}


# =============================================================================
# MIME SYNTAX (RFC 9110 section 8.3.1)
# =============================================================================
#
#   media-type = type "/" subtype *( OWS ";" OWS parameter )
#   parameter  = token "=" ( token / quoted-string )
#
# =============================================================================

_TOKEN = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_QUOTED = r'"(?:[\t\x20\x21\x23-\x5b\x5d-\x7e]|\\[\t\x20-\x7e])*"'

MEDIA_TYPE_PATTERN = re.compile(
    rf"^({_TOKEN})/({_TOKEN})"
    rf"((?:[ \t]*;[ \t]*{_TOKEN}=(?:{_TOKEN}|{_QUOTED}))*)[ \t]*;?$"
)


def parse_mime(value: str) -> Optional[str]:
    """
    Validate a media type string.

    Type and subtype are lowercased (they are case-insensitive), parameters
    are kept as written.

    Args:
        value: Candidate media type, e.g. "text/plain; charset=utf-8".

    Returns:
        The normalized media type, or None if ``value`` is not one.

    Examples:
        >>> parse_mime("Text/HTML")
        'text/html'

        >>> parse_mime("not a mime") is None
        True
    """
    match = MEDIA_TYPE_PATTERN.match(value.strip())
    if not match:
        return None

    main_type, subtype, params = match.groups()
    return f"{main_type.lower()}/{subtype.lower()}{params}"


def infer_mime(path: str | Path) -> Optional[str]:
    """
    Look up the media type for a file's final extension.

    Examples:
        >>> infer_mime("site/app.js")
        'text/javascript'

        >>> infer_mime("logo.PNG") is None
        True
    """
    if isinstance(path, str):
        path = Path(path)

    extension = path.suffix[1:]  # ".png" → "png", no case folding
    return MIME_TYPES.get(extension) if extension else None

