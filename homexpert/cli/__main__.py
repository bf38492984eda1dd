"""
HomeXpert CLI - maintenance commands for the engagement store.

Usage:
    homexpert sweep [--db PATH] [--json]
    homexpert status PROFILE_ID --household ID [--db PATH] [--json]
"""

import argparse
import json
import logging
import os
import sqlite3
import sys

from homexpert.engagement import EngagementConfig, EngagementError, build_engagement
from homexpert.engagement.storage import InMemoryEngagementStorage, SQLiteEngagementStorage

# Set up logging
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

DB_PATH_ENV = "HOMEXPERT_DB_PATH"


def open_coordinator(db_path):
    """Build a coordinator over the SQLite store at ``db_path`` (in-memory if None)."""
    if db_path:
        storage = SQLiteEngagementStorage(db_path)
    else:
        logger.warning(f"No --db given and {DB_PATH_ENV} unset; using an empty in-memory store")
        storage = InMemoryEngagementStorage()
    return build_engagement(EngagementConfig.from_env(), storage=storage)


def cmd_sweep(args, coordinator):
    """Expire overdue profile locks and hire requests."""
    result = coordinator.sweep_expired()
    if args.json:
        print(json.dumps(result, indent=2))
    else:
        print(f"Expired locks released: {result['locks']}")
        print(f"Hire requests expired: {result['requests']}")


def cmd_status(args, coordinator):
    """Show whether a profile is unlocked, and whether by the given household."""
    status = coordinator.check_status(args.profile_id, args.household)
    if args.json:
        print(json.dumps(status.to_dict(), indent=2))
        return

    if not status.unlocked:
        print(f"Profile {args.profile_id}: available")
    elif status.unlocked_by_me:
        print(f"Profile {args.profile_id}: unlocked by {args.household}")
        print(f"  Expires: {status.expires_at.isoformat()}")
    else:
        print(f"Profile {args.profile_id}: locked by another household")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="homexpert",
        description="Household and househelp engagement maintenance",
    )
    parser.add_argument(
        "--db",
        default=os.environ.get(DB_PATH_ENV),
        help=f"SQLite database path (default: ${DB_PATH_ENV})",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at INFO level")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # sweep
    p_sweep = subparsers.add_parser("sweep", help="Expire overdue locks and hire requests")
    p_sweep.add_argument("--json", "-j", action="store_true")

    # status
    p_status = subparsers.add_parser("status", help="Check a profile's unlock status")
    p_status.add_argument("profile_id", help="Househelp profile ID")
    p_status.add_argument("--household", required=True, help="Requesting household ID")
    p_status.add_argument("--json", "-j", action="store_true")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    try:
        coordinator = open_coordinator(args.db)
    except (ValueError, OSError, sqlite3.Error) as e:
        logger.error(f"Failed to open engagement store: {e}")
        sys.exit(1)

    try:
        if args.command == "sweep":
            cmd_sweep(args, coordinator)
        elif args.command == "status":
            cmd_status(args, coordinator)
    except EngagementError as e:
        logger.error(f"{e.kind}: {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
