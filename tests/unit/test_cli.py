"""
Unit tests for the command line entry point.
"""

import logging

import pytest

from confserve import __version__
from confserve.__main__ import build_parser, main, read_readme


class TestParser:
    """Tests for argument handling."""

    def test_help(self, capsys):
        """Test that --help goes to stdout and exits 0."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--help"])

        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert "usage: confserve" in out
        assert f"confserve v{__version__}" in out

    def test_version(self, capsys):
        """Test --version."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert capsys.readouterr().out.strip() == f"confserve {__version__}"

    def test_print_readme(self, capsys):
        """Test that --print-readme writes the packaged README and exits 0."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--print-readme"])

        assert exc_info.value.code == 0
        out = capsys.readouterr().out
        assert out == read_readme()
        assert "get_routes" in out

    def test_print_readme_needs_no_config(self, capsys):
        """Test that --print-readme works before the positional is checked."""
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--print-readme", "site.toml"])
        assert exc_info.value.code == 0

    def test_missing_config(self, capsys):
        """Test that a missing argument is a usage error on stderr."""
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 2
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "usage: confserve" in captured.err

    @pytest.mark.parametrize("argv", [
        ["a.toml", "b.toml"],
        ["--bogus", "a.toml"],
    ])
    def test_usage_errors(self, argv, capsys):
        """Test that extra positionals and unknown flags are usage errors."""
        with pytest.raises(SystemExit) as exc_info:
            main(argv)

        assert exc_info.value.code == 2
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "usage:" in captured.err

    def test_double_dash(self):
        """Test that -- allows a config path starting with a dash."""
        args = build_parser().parse_args(["--", "-site.toml"])
        assert args.config == "-site.toml"

    def test_bad_environment(self, monkeypatch, capsys):
        """Test that an invalid environment is a usage error."""
        monkeypatch.setenv("CONFSERVE_WORKERS", "many")

        with pytest.raises(SystemExit) as exc_info:
            main(["site.toml"])

        assert exc_info.value.code == 2
        assert "invalid environment" in capsys.readouterr().err


class TestMain:
    """Tests for main() failure exits."""

    def test_unreadable_config(self, tmp_path, caplog):
        """Test that a config that can't be opened exits 1."""
        with caplog.at_level(logging.ERROR, logger="confserve"):
            with pytest.raises(SystemExit) as exc_info:
                main([str(tmp_path / "missing.toml")])

        assert exc_info.value.code == 1
        assert "failed to load config: failed to open file" in caplog.text

    def test_malformed_config(self, write_config, caplog):
        """Test that a malformed config exits 1."""
        path = write_config("addr = [\n")

        with caplog.at_level(logging.ERROR, logger="confserve"):
            with pytest.raises(SystemExit) as exc_info:
                main([str(path)])

        assert exc_info.value.code == 1
        assert "malformed config file" in caplog.text

    def test_nothing_bindable(self, write_config):
        """Test that failing every address exits 1."""
        path = write_config('addr = "no port"\n')

        with pytest.raises(SystemExit) as exc_info:
            main([str(path)])

        assert exc_info.value.code == 1
