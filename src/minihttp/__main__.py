"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    python -m minihttp --directory /tmp/files
    minihttp --directory /tmp/files --port 4221

Settings come from, in increasing priority:

    defaults  →  HTTP_* environment variables  →  command-line flags

Exit status:
    0   stopped cleanly (Ctrl+C / SIGTERM)
    1   could not start (invalid configuration, port in use, ...)

=============================================================================
"""

import argparse
import sys
from dataclasses import replace
from typing import List, Optional

from . import __version__
from .config import ServerConfig, LOG_LEVELS, LOG_FORMATS
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minihttp",
        description="Minimal concurrent HTTP/1.1 server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  minihttp                                # 127.0.0.1:4221, files from cwd
  minihttp --directory /tmp/files         # serve/store /files/* there
  minihttp --host 0.0.0.0 --port 8080     # listen on all interfaces
  minihttp --workers 32 --log-level DEBUG
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "-d",
        default=None,
        help="Root directory for /files/* (default: current directory)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 4221)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Maximum worker threads (default: 16)"
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

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttp {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """
    Layer command-line flags over ServerConfig.from_env().

    Flags left unset keep the environment/default value.

    Raises:
        ValueError: If an HTTP_* variable does not parse.
    """
    config = ServerConfig.from_env()

    overrides = {
        "directory": args.directory,
        "host": args.host,
        "port": args.port,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    if args.workers is not None:
        overrides["max_workers"] = args.workers
        overrides["min_workers"] = max(1, min(config.min_workers, args.workers))

    return replace(config, **{k: v for k, v in overrides.items() if v is not None})


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments, build the server and run it.

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)

    try:
        server = HTTPServer(config_from_args(args))
    except ValueError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
