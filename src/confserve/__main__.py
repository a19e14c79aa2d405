"""
=============================================================================
CLI ENTRY POINT
=============================================================================

    confserve [--] <path to config file>
        Run the server normally
    confserve -h|--help
        Show usage and exit
    confserve --print-readme
        Write out the documentation (README.md) to stdout
    confserve --version
        Show the version and exit

Also runnable as ``python -m confserve``.

Exit status:
    0   help / readme / version, or the server stopped on a signal
    1   the config file could not be loaded, or no address could be bound
    2   bad command line (argparse)

=============================================================================
"""

import argparse
import logging
import sys
from importlib import resources
from typing import Optional, Sequence

from . import __version__
from .config import ConfigError, ServerConfig, load_config
from .server import HTTPServer, setup_logging


logger = logging.getLogger("confserve")


def read_readme() -> str:
    """The README shipped inside the package."""
    return resources.files("confserve").joinpath("README.md").read_text(encoding="utf-8")


class PrintReadmeAction(argparse.Action):
    """``--print-readme``: dump the embedded README to stdout and exit 0."""

    def __init__(self, option_strings, dest=argparse.SUPPRESS, default=argparse.SUPPRESS, help=None):
        super().__init__(option_strings, dest=dest, default=default, nargs=0, help=help)

    def __call__(self, parser, namespace, values, option_string=None):
        sys.stdout.write(read_readme())
        parser.exit()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="confserve",
        description=f"confserve v{__version__}\n\nServe exactly the files a TOML config file routes.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  CONFSERVE_WORKERS     max worker threads (default: 16)
  CONFSERVE_TIMEOUT     socket timeout in seconds (default: 30)
  CONFSERVE_BACKLOG     listen backlog (default: 128)
  CONFSERVE_LOG_LEVEL   DEBUG, INFO, WARNING or ERROR (default: INFO)
        """,
    )

    parser.add_argument(
        "config",
        metavar="CONFIG",
        help="TOML site config; relative paths in it are relative to its directory",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (overrides CONFSERVE_LOG_LEVEL)",
    )
    parser.add_argument(
        "--print-readme",
        action=PrintReadmeAction,
        help="Write out this software's documentation (README.md) to stdout",
    )
    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"confserve {__version__}",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None):
    """Parse arguments, load the site, serve until stopped."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = ServerConfig.from_env()
        if args.log_level:
            config.log_level = args.log_level
        config.validate()
    except ValueError as e:
        parser.error(f"invalid environment: {e}")

    setup_logging(config.log_level)

    try:
        site = load_config(args.config)
    except ConfigError as e:
        logger.error(f"failed to load config: {e}")
        sys.exit(1)

    server = HTTPServer(site, config)
    if not server.run():
        sys.exit(1)


if __name__ == "__main__":
    main()
