"""Run the registration API under uvicorn."""

from __future__ import annotations

import argparse
import logging
from typing import Sequence

import uvicorn

from vending_registry.cli._helpers import add_common_args, configure_logging

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vending-server",
        description="Serve the vending machine registration API.",
    )
    add_common_args(parser)
    parser.add_argument("--host", default="0.0.0.0", help="Interface to bind")
    parser.add_argument("--port", type=int, default=3000, help="Port to listen on")
    parser.add_argument("--reload", action="store_true", help="Reload on source changes (development)")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    LOGGER.info("Starting registration API on %s:%d", args.host, args.port)
    uvicorn.run(
        "vending_registry.server.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="debug" if args.verbose else "info",
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
