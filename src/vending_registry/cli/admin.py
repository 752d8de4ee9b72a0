"""Administrative CLI: review pending registrations and manage the backend."""

from __future__ import annotations

import argparse
import json
import logging
from datetime import timedelta
from typing import Sequence

from vending_registry.cli._helpers import add_common_args, add_server_args, configure_logging
from vending_registry.client.admin import AdminClient, AdminRequestError

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vending-admin",
        description="Approve or reject vending machine registrations.",
    )
    add_common_args(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    pending = subparsers.add_parser("pending", help="List devices awaiting review")
    add_server_args(pending)

    approve = subparsers.add_parser("approve", help="Approve a pending device")
    add_server_args(approve)
    approve.add_argument("hardware_id", help="Hardware ID of the pending device")

    reject = subparsers.add_parser("reject", help="Reject a pending device")
    add_server_args(reject)
    reject.add_argument("hardware_id", help="Hardware ID of the pending device")
    reject.add_argument("--reason", required=True, help="Reason shown to the device (1-500 characters)")

    purge = subparsers.add_parser("purge", help="Remove pending registrations older than 24 hours")
    add_server_args(purge)

    issue = subparsers.add_parser("issue-token", help="Mint an admin token from JWT_SECRET")
    issue.add_argument("--subject", default="admin", help="Token subject claim")
    issue.add_argument("--minutes", type=int, default=None, help="Token lifetime in minutes")

    subparsers.add_parser("init-db", help="Create the devices table in DATABASE_URL")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "issue-token":
        return _issue_token(args)
    if args.command == "init-db":
        return _init_db()

    if not args.token:
        LOGGER.error("An admin token is required (--token or VENDING_ADMIN_TOKEN)")
        return 2
    client = AdminClient(args.server, args.token, timeout_ms=args.timeout_ms)
    try:
        if args.command == "pending":
            devices = client.list_pending()
            print(json.dumps(devices, indent=2))
            LOGGER.info("%d device(s) pending", len(devices))
        elif args.command == "approve":
            result = client.approve(args.hardware_id)
            LOGGER.info(result.message)
            print(json.dumps(result.data))
        elif args.command == "reject":
            result = client.reject(args.hardware_id, args.reason)
            LOGGER.info(result.message)
        elif args.command == "purge":
            removed = client.purge_expired()
            LOGGER.info("Removed %d expired registration(s)", removed)
    except AdminRequestError as exc:
        LOGGER.error("%s failed: %s", args.command, exc)
        return 1
    return 0


def _issue_token(args: argparse.Namespace) -> int:
    from vending_registry.server.auth_service import ADMIN_ROLE, create_access_token
    from vending_registry.server.config import get_settings

    try:
        settings = get_settings()
    except ValueError as exc:
        LOGGER.error("Settings invalid: %s", exc)
        return 2
    lifetime = timedelta(minutes=args.minutes) if args.minutes else None
    print(create_access_token({"sub": args.subject, "role": ADMIN_ROLE}, settings, expires_delta=lifetime))
    return 0


def _init_db() -> int:
    from vending_registry.server.config import Settings
    from vending_registry.store.database import build_engine, create_tables

    settings = Settings()
    if settings.uses_memory_store:
        LOGGER.error("DATABASE_URL points at the in-memory store; nothing to initialize")
        return 2
    create_tables(build_engine(settings.DATABASE_URL))
    LOGGER.info("Tables created in %s", settings.DATABASE_URL)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
