# SPDX-License-Identifier: MIT
# Copyright (c) 2026 FlightSurety Contributors

"""Command-line entry point for the FlightSurety server."""

from __future__ import annotations

import argparse
import sys

from ..core.logging import configure_logging
from .config import ServerSettings, get_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="FlightSurety HTTP server with an in-process oracle responder",
        prog="flightsurety-server",
    )
    parser.add_argument("--host", help="Host to bind to (default: FLIGHTSURETY_HOST or 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, help="Port to bind to (default: FLIGHTSURETY_PORT or 3000)")
    parser.add_argument(
        "--oracles",
        "-n",
        type=int,
        help="Number of oracle identities to register at start-up (default: 20)",
    )
    parser.add_argument(
        "--no-responder",
        action="store_true",
        help="Serve the HTTP API without running the oracle responder",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: FLIGHTSURETY_LOG_LEVEL or INFO)",
    )
    parser.add_argument("--json-logs", action="store_true", help="Force JSON log output")
    return parser


def settings_from_args(args: argparse.Namespace, base: ServerSettings | None = None) -> ServerSettings:
    """Apply command-line overrides on top of environment settings."""
    base = base or get_settings()
    overrides: dict = {}
    if args.host:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.oracles is not None:
        if args.oracles < 1:
            raise SystemExit("--oracles must be at least 1")
        overrides["oracle_count"] = args.oracles
    if args.no_responder:
        overrides["responder_enabled"] = False
    if args.log_level:
        overrides["log_level"] = args.log_level
    return base.model_copy(update=overrides)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)

    configure_logging(level=settings.log_level, json_format=True if args.json_logs else None)

    from .app import run

    run(settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
