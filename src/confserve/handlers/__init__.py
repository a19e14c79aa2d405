"""
=============================================================================
HANDLERS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ error_page.py   the 404 payload, loaded once at startup             │
    │ files.py        GET → route table → file bytes, or 404/405/500      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .error_page import ErrorPage, load_error_page
from .files import FileRouteHandler

__all__ = [
    "ErrorPage",
    "load_error_page",
    "FileRouteHandler",
]
