"""
Operator CLI.

Usage:
    python -m clicktrail.cli cleanup [--days N]
    python -m clicktrail.cli reconcile --link-id ID

Meant for external schedulers (cron) and one-off maintenance. Exits with
status 1 when the command is rejected.
"""

import argparse
import asyncio
import json
import sys
from typing import Optional, Sequence

from clicktrail.core.exceptions import ClickTrailError
from clicktrail.core.setting import settings
from clicktrail.db import session as db_session
from clicktrail.middleware.logging import configure_logging
from clicktrail.services.link_service import LinkService
from clicktrail.services.retention_service import RetentionService


async def cleanup(days: int) -> dict:
    """Delete click events older than ``days``."""
    async with db_session.async_session_maker() as session:
        result = await RetentionService(session).cleanup(days)
    return {"retention_days": days, **result.to_dict()}


async def reconcile(link_id: str) -> dict:
    """Raise a link's click_count to its recorded event count."""
    async with db_session.async_session_maker() as session:
        service = LinkService(session)
        click_count = await service.reconcile_click_count(link_id)
        link = await service.get_by_id(link_id)
    return {"id": link.id, "short_code": link.short_code, "click_count": click_count}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clicktrail",
        description="ClickTrail maintenance commands",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    cleanup_parser = subparsers.add_parser("cleanup", help="Delete old click events")
    cleanup_parser.add_argument(
        "--days",
        type=int,
        default=settings.CLICK_RETENTION_DAYS,
        help=f"Retention horizon in days (default: {settings.CLICK_RETENTION_DAYS})",
    )

    reconcile_parser = subparsers.add_parser("reconcile", help="Repair a link's click counter")
    reconcile_parser.add_argument("--link-id", required=True, help="Link id")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    configure_logging(settings.LOG_LEVEL)
    args = build_parser().parse_args(argv)

    try:
        if args.command == "cleanup":
            output = asyncio.run(cleanup(args.days))
        else:
            output = asyncio.run(reconcile(args.link_id))
    except ClickTrailError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
