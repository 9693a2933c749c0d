"""
=============================================================================
STATICMOUNT CLI ENTRY POINT
=============================================================================

    # Serve ./public at http://127.0.0.1:8080/
    python -m staticmount ./public

    # Several directories at "/", first match wins
    python -m staticmount ./public ./fallback

    # Mount under a prefix
    python -m staticmount ./public --mount /assets=./build

    # Short cache lifetime, dotfiles allowed, JSON access log
    python -m staticmount ./public --max-age 5m --hidden --log-format json

Command-line values override environment variables (HTTP_PORT,
STATIC_DIR, STATIC_MAX_AGE, ...), which override the defaults.

=============================================================================
"""

import argparse
import dataclasses
import sys
from typing import List, Optional, Tuple

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, ServerConfig
from .exceptions import ConfigurationError
from .middleware import LoggingMiddleware
from .server import StaticServer


def parse_mount(value: str) -> Tuple[str, str]:
    """
    Parse a ``--mount PREFIX=DIR`` value.

    >>> parse_mount("/assets=./build")
    ('/assets', './build')
    """
    prefix, sep, directory = value.partition("=")
    if not sep or not prefix or not directory:
        raise argparse.ArgumentTypeError(f"expected PREFIX=DIR, got {value!r}")
    if not prefix.startswith("/"):
        raise argparse.ArgumentTypeError(f"mount prefix must begin with '/': {prefix!r}")
    return prefix, directory


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticmount",
        description="Serve mounted directories over HTTP with ETag/304 support",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m staticmount ./public                       # Serve ./public at /
  python -m staticmount ./public --mount /assets=./build
  python -m staticmount ./public --port 3000 --max-age 1d
        """
    )

    parser.add_argument(
        "directories",
        nargs="*",
        metavar="DIR",
        help="Directories to mount at / (tried in order)"
    )

    parser.add_argument(
        "--mount", "-m",
        action="append",
        type=parse_mount,
        default=[],
        metavar="PREFIX=DIR",
        help="Mount DIR under a URL prefix (repeatable)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", default=None, help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port to listen on (default: 8080)")

    # ─────────────────────────────────────────────────────────────────────
    # STATIC FILES
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--hidden",
        action="store_true",
        default=None,
        help="Serve files and directories whose names start with a dot"
    )
    parser.add_argument(
        "--max-age",
        default=None,
        help='Cache-Control max-age: milliseconds or a duration like "1d" (default: 1 year)'
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Access log format (default: text)"
    )

    parser.add_argument("--version", "-v", action="version", version=f"staticmount {__version__}")

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment config with command-line values layered on top."""
    config = ServerConfig.from_env()

    mounts: List[Tuple[str, str]] = [("/", directory) for directory in args.directories]
    mounts.extend(args.mount)

    overrides = {
        "host": args.host,
        "port": args.port,
        "hidden": args.hidden,
        "max_age": args.max_age,
        "log_level": args.log_level,
        "log_format": args.log_format,
        "mounts": mounts or None,
    }
    return dataclasses.replace(
        config,
        **{name: value for name, value in overrides.items() if value is not None},
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        server = StaticServer(config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not config.mounts:
        print("Warning: nothing mounted, every request will 404", file=sys.stderr)

    server.use(LoggingMiddleware(log_format=config.log_format))
    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Positional DIRs mount at "/", --mount PREFIX=DIR for prefixes
# 2. CLI > environment > defaults, merged with dataclasses.replace
# 3. ConfigurationError exits with status 1 before anything binds
# =============================================================================
