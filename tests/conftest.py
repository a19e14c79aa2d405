"""
pytest configuration and fixtures.
"""

import http.client
import logging
import socket
import textwrap
import threading
from pathlib import Path
from typing import Callable, Generator, Optional

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from confserve import HTTPServer, ServerConfig, load_config


@pytest.fixture(autouse=True)
def reset_confserve_logging():
    """Undo whatever setup_logging() did, so caplog keeps seeing records."""
    yield
    logging.getLogger("confserve").setLevel(logging.NOTSET)
    access = logging.getLogger("confserve.access")
    for handler in list(access.handlers):
        access.removeHandler(handler)
    access.propagate = True


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """
    A small site on disk:

        site/
            index.html
            style.css
            notes.md
            v1..2.txt
            logo.PNG
            img/logo.png
            pages/about.html
            pages/direct.html
            errors/404.html
    """
    root = tmp_path / "site"
    (root / "img").mkdir(parents=True)
    (root / "pages").mkdir()
    (root / "errors").mkdir()

    (root / "index.html").write_text("<h1>home</h1>")
    (root / "style.css").write_text("body { color: red; }")
    (root / "notes.md").write_text("# notes")
    (root / "v1..2.txt").write_text("release notes")
    (root / "logo.PNG").write_bytes(b"\x89PNG upper")
    (root / "img" / "logo.png").write_bytes(b"\x89PNG lower")
    (root / "pages" / "about.html").write_text("<h1>about</h1>")
    (root / "pages" / "direct.html").write_text("<h1>direct</h1>")
    (root / "errors" / "404.html").write_text("<h1>nothing here</h1>")
    return root


@pytest.fixture
def write_config(site_dir: Path) -> Callable[[str], Path]:
    """Write a site.toml into site_dir and return its path."""
    def write(text: str, name: str = "site.toml") -> Path:
        path = site_dir / name
        path.write_text(textwrap.dedent(text))
        return path
    return write


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
    )


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Bind on the calling thread, then serve in the background."""
        if not self.server.prepare():
            raise RuntimeError("Server failed to bind")
        self._thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self._thread.start()

    def request(
        self,
        method: str,
        path: str,
        headers: Optional[dict] = None,
    ) -> tuple[int, http.client.HTTPMessage, bytes]:
        """Send one request on a fresh connection; returns (status, headers, body)."""
        conn = http.client.HTTPConnection("127.0.0.1", self.port, timeout=5)
        try:
            conn.request(method, path, headers={"Connection": "close", **(headers or {})})
            response = conn.getresponse()
            return response.status, response.headers, response.read()
        finally:
            conn.close()

    def stop(self):
        """Stop the server."""
        self.server.shutdown(timeout=5.0)
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


SITE_TOML = """\
    addr = "127.0.0.1:0"
    404 = "errors/404.html"
    index = "index.html"

    [get_routes]
    direct = ["style.css", "img/logo.png", "gone.txt", "pages", "v1..2.txt"]
    "about" = "pages/about.html"
    "notes" = { type = "text/markdown; charset=utf-8", path = "notes.md" }
    "%direct" = "pages/direct.html"
    "upper" = "logo.PNG"
"""


@pytest.fixture
def test_server(write_config, config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running server for the site_dir site."""
    site = load_config(write_config(SITE_TOML))
    test_srv = TestServer(HTTPServer(site, config))
    test_srv.start()

    yield test_srv

    test_srv.stop()
