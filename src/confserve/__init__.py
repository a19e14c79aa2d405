"""
=============================================================================
CONFSERVE
=============================================================================

A small HTTP/1.1 file server whose entire URL space is declared in a TOML
file. Nothing is served unless the config routes it.

=============================================================================
PACKAGE LAYOUT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ config.py       SiteConfig (TOML) + ServerConfig (env tuning)       │
    │ routing/        file objects, path normalizing, the route table     │
    │ http/           request parser, responses, status codes, MIME       │
    │ core/           address fallback binder, accept loop, thread pool   │
    │ handlers/       404 page cache, routed file handler                 │
    │ middleware/     pipeline + access log                               │
    │ server.py       startup order and the per-connection loop           │
    │ __main__.py     command line                                        │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

__version__ = "1.0.0"

from .config import ConfigError, ServerConfig, SiteConfig, load_config
from .server import HTTPServer, setup_logging

__all__ = [
    "ConfigError",
    "ServerConfig",
    "SiteConfig",
    "load_config",
    "HTTPServer",
    "setup_logging",
    "__version__",
]
