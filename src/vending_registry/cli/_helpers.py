"""Shared utilities for CLI entrypoints."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Optional

from vending_registry.config.loader import AgentConfig, ConfigError, load_config

DEFAULT_CONFIG_PATH = "config/agent.example.yaml"
LOCAL_CONFIG_PATH = "config/agent.local.yaml"
DEFAULT_SERVER_URL = "http://localhost:3000"


def add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging for troubleshooting",
    )


def add_config_arg(parser: argparse.ArgumentParser, *, require_config: bool = False) -> None:
    parser.add_argument(
        "--config",
        dest="config",
        default=None,
        required=require_config,
        help=(
            "Path to YAML agent config file (default: "
            f"{LOCAL_CONFIG_PATH} if present, else {DEFAULT_CONFIG_PATH})"
        ),
    )


def add_server_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--server",
        default=os.environ.get("VENDING_SERVER_URL", DEFAULT_SERVER_URL),
        help="Registration API base URL (env VENDING_SERVER_URL)",
    )
    parser.add_argument(
        "--token",
        default=os.environ.get("VENDING_ADMIN_TOKEN"),
        help="Admin bearer token (env VENDING_ADMIN_TOKEN)",
    )
    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=10000,
        help="HTTP timeout per request in milliseconds",
    )


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")
    if verbose:
        return
    # Quiet HTTP client internals unless explicitly requested.
    for name in ("urllib3", "requests", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)


def load_cli_config(config_path: Optional[str]) -> AgentConfig:
    if config_path:
        resolved = config_path
    else:
        local = Path(LOCAL_CONFIG_PATH)
        resolved = str(local) if local.exists() else DEFAULT_CONFIG_PATH
    try:
        return load_config(resolved)
    except ConfigError as exc:
        raise SystemExit(f"Config validation failed: {exc}") from exc
