"""Vending machine agent: register, wait for approval, report credentials."""

from __future__ import annotations

import argparse
import json
import logging
from typing import Sequence

from vending_registry.cli._helpers import add_common_args, add_config_arg, configure_logging, load_cli_config
from vending_registry.client.agent import VendingMachineClient

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vending-agent",
        description="Register this machine with the backend and poll until an administrator decides.",
    )
    add_common_args(parser)
    add_config_arg(parser)
    parser.add_argument(
        "--once",
        action="store_true",
        help="Send one registration and one status check, then exit",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=None,
        help="Stop polling after this many register/status attempts",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    config = load_cli_config(args.config)
    LOGGER.info("Config loaded from %s (hardware_id=%s)", config.source, config.hardware_id)

    client = VendingMachineClient(config)

    if args.once:
        if not client.register():
            LOGGER.error("Registration failed: %s", client.last_error)
            return 1
        check = client.check_status()
        print(json.dumps({
            "status": check.status,
            "deviceId": check.device_id,
            "queueEndpoint": check.queue_endpoint,
            "message": check.message,
        }))
        return 0

    try:
        credentials = client.run_until_approved(max_attempts=args.max_attempts)
    except KeyboardInterrupt:
        client.stop()
        LOGGER.info("Interrupted; exiting")
        return 130

    if credentials is None:
        LOGGER.error("Device was not approved")
        return 1
    print(json.dumps({"deviceId": credentials.device_id, "queueEndpoint": credentials.queue_endpoint}))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
