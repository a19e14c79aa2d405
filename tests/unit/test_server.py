"""
End-to-end tests: a real server on an ephemeral port, driven by http.client.
"""

import http.client
import logging
import socket

from confserve import HTTPServer, load_config


class TestServing:
    """Requests against the SITE_TOML site."""

    def test_direct_route(self, test_server):
        """Test a direct entry served under its own path with an inferred type."""
        status, headers, body = test_server.request("GET", "/style.css")
        assert status == 200
        assert headers["Content-Type"] == "text/css"
        assert body == b"body { color: red; }"

    def test_nested_direct_route(self, test_server):
        """Test a direct entry in a subdirectory."""
        status, headers, body = test_server.request("GET", "/img/logo.png")
        assert status == 200
        assert headers["Content-Type"] == "image/png"
        assert body == b"\x89PNG lower"

    def test_map_route(self, test_server):
        """Test a map entry with an inferred type."""
        status, headers, body = test_server.request("GET", "/about")
        assert status == 200
        assert headers["Content-Type"] == "text/html"
        assert body == b"<h1>about</h1>"

    def test_explicit_type(self, test_server):
        """Test that an explicit type is sent verbatim."""
        status, headers, _ = test_server.request("GET", "/notes")
        assert status == 200
        assert headers["Content-Type"] == "text/markdown; charset=utf-8"

    def test_uppercase_extension_has_no_type(self, test_server):
        """Test that extension matching is case-sensitive."""
        status, headers, body = test_server.request("GET", "/upper")
        assert status == 200
        assert "Content-Type" not in headers
        assert body == b"\x89PNG upper"

    def test_index(self, test_server):
        """Test that / serves the index file."""
        status, headers, body = test_server.request("GET", "/")
        assert status == 200
        assert headers["Content-Type"] == "text/html"
        assert body == b"<h1>home</h1>"

    def test_reserved_direct_key(self, test_server):
        """Test that /direct is served from the %direct map entry."""
        status, _, body = test_server.request("GET", "/direct")
        assert status == 200
        assert body == b"<h1>direct</h1>"

    def test_query_string_ignored(self, test_server):
        """Test that the query does not take part in the lookup."""
        status, _, body = test_server.request("GET", "/style.css?v=2")
        assert status == 200
        assert body == b"body { color: red; }"

    def test_unrouted_file_is_404(self, test_server):
        """Test that an existing file with no route is not served."""
        status, headers, body = test_server.request("GET", "/index.html")
        assert status == 404
        assert headers["Content-Type"] == "text/html"
        assert body == b"<h1>nothing here</h1>"

    def test_config_file_not_served(self, test_server):
        """Test that the site file itself is unreachable."""
        status, _, _ = test_server.request("GET", "/site.toml")
        assert status == 404

    def test_routed_but_missing(self, test_server):
        """Test that a routed file that doesn't exist gets the 404 page."""
        status, _, body = test_server.request("GET", "/gone.txt")
        assert status == 404
        assert body == b"<h1>nothing here</h1>"

    def test_directory_route_is_500(self, test_server):
        """Test that a route pointing at a directory is an I/O error."""
        status, _, body = test_server.request("GET", "/pages")
        assert status == 500
        assert body == b"I/O error"

    def test_traversal_rejected(self, test_server):
        """Test that .. never reaches the route table."""
        status, _, _ = test_server.request("GET", "/pages/../index.html")
        assert status == 400

    def test_double_dot_in_name_served(self, test_server):
        """Test that a routed name containing '..' is reachable."""
        status, headers, body = test_server.request("GET", "/v1..2.txt")
        assert status == 200
        assert headers["Content-Type"] == "text/plain"
        assert body == b"release notes"

    def test_leading_double_slash_not_index(self, test_server):
        """Test that //style.css looks up '/style.css' and misses."""
        status, _, body = test_server.request("GET", "//style.css")
        assert status == 404
        assert body == b"<h1>nothing here</h1>"

    def test_head_not_allowed(self, test_server):
        """Test that HEAD is refused."""
        status, headers, body = test_server.request("HEAD", "/style.css")
        assert status == 405
        assert headers["Allow"] == "GET"
        assert body == b""

    def test_post_not_allowed(self, test_server):
        """Test that POST is refused with no body."""
        status, headers, body = test_server.request("POST", "/style.css")
        assert status == 405
        assert headers["Allow"] == "GET"
        assert headers["Content-Length"] == "0"
        assert body == b""

    def test_unknown_method(self, test_server):
        """Test that a made-up method is refused too."""
        with socket.create_connection(("127.0.0.1", test_server.port), timeout=5) as sock:
            sock.sendall(b"BREW /style.css HTTP/1.1\r\nHost: x\r\n\r\n")
            data = sock.recv(4096)
        assert data.startswith(b"HTTP/1.1 405 Method Not Allowed\r\n")
        assert b"Allow: GET\r\n" in data

    def test_server_header(self, test_server):
        """Test the Server header."""
        _, headers, _ = test_server.request("GET", "/style.css")
        assert headers["Server"] == "confserve/1.0"

    def test_keep_alive(self, test_server):
        """Test two requests over one connection."""
        conn = http.client.HTTPConnection("127.0.0.1", test_server.port, timeout=5)
        try:
            conn.request("GET", "/style.css")
            first = conn.getresponse()
            assert first.read() == b"body { color: red; }"
            assert first.headers["Connection"] == "keep-alive"

            conn.request("GET", "/about")
            second = conn.getresponse()
            assert second.status == 200
            assert second.read() == b"<h1>about</h1>"
        finally:
            conn.close()

    def test_access_log(self, test_server, caplog):
        """Test the per-request access lines."""
        with caplog.at_level(logging.INFO, logger="confserve.access"):
            test_server.request("GET", "/style.css")
            test_server.request("GET", "/secret")

        assert "[GET /style.css] open 'style.css'" in caplog.text
        assert "[GET /secret] blocked (no configured route)" in caplog.text


class TestStartup:
    """prepare() without serving."""

    def test_no_bindable_address(self, write_config, config, caplog):
        """Test that prepare() fails when every candidate fails."""
        site = load_config(write_config("""\
            addr = "no port"
            failsafe_addrs = [":80"]
        """))
        server = HTTPServer(site, config)

        with caplog.at_level(logging.ERROR, logger="confserve.server"):
            assert server.prepare() is False

        assert "failed to bind to any address" in caplog.text
        assert server.listener is None

    def test_failsafe_used(self, write_config, config, free_port):
        """Test falling back when the primary address is taken."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", free_port))
            blocker.listen(1)

            site = load_config(write_config(f"""\
                addr = "127.0.0.1:{free_port}"
                failsafe_addrs = ["127.0.0.1:0"]
            """))
            server = HTTPServer(site, config)
            try:
                assert server.prepare() is True
                assert server.listener.candidate == "127.0.0.1:0"
                assert server.address[1] != free_port
            finally:
                server.listener.close()

    def test_table_and_page_built_before_bind(self, write_config, config):
        """Test that a bind failure happens after the table and 404 page exist."""
        site = load_config(write_config("""\
            addr = "no port"
            404 = "errors/404.html"
            [get_routes]
            direct = ["style.css"]
        """))
        server = HTTPServer(site, config)

        assert server.prepare() is False
        assert "style.css" in server.route_table
        assert server.error_page.body == b"<h1>nothing here</h1>"

    def test_dropped_direct_path_logged(self, write_config, config, tmp_path, caplog):
        """Test the warning for an absolute direct path outside the root."""
        outside = tmp_path / "outside.txt"
        outside.write_text("x")
        site = load_config(write_config(f"""\
            addr = "no port"
            [get_routes]
            direct = ["{outside}"]
        """))

        with caplog.at_level(logging.WARNING, logger="confserve.routing"):
            HTTPServer(site, config).prepare()

        assert f"ignoring '{outside}'" in caplog.text
