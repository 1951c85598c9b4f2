"""
Retention Service

Deletes click events older than a retention horizon.

Design Decisions:
- A bad retention value is a configuration error: rejected, never retried
- A single "DELETE ... WHERE clicked_at < cutoff" keeps the job idempotent
  and safe to run while clicks are being recorded
- The scheduled entry point logs and swallows every failure so a scheduler
  never re-runs a partially applied cleanup on its own
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from clicktrail.core.exceptions import ConfigurationError
from clicktrail.core.timeutils import MS_PER_DAY, ms_to_iso, now_ms
from clicktrail.db import session as db_session
from clicktrail.db.models import ClickEvent

logger = logging.getLogger(__name__)

MAX_RETENTION_DAYS = 3650


@dataclass(frozen=True)
class RetentionResult:
    deleted_count: int
    cutoff: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deleted": self.deleted_count,
            "cutoff": self.cutoff,
            "cutoff_date": ms_to_iso(self.cutoff),
        }


def validate_retention_days(retention_days: Any) -> int:
    """
    Raises:
        ConfigurationError: Unless retention_days is an int in 1..3650
    """
    if isinstance(retention_days, bool) or not isinstance(retention_days, int):
        raise ConfigurationError("retentionDays must be a positive integer")
    if retention_days <= 0:
        raise ConfigurationError("retentionDays must be a positive integer")
    if retention_days > MAX_RETENTION_DAYS:
        raise ConfigurationError(
            f"retentionDays cannot exceed {MAX_RETENTION_DAYS} (10 years)"
        )
    return retention_days


class RetentionService:
    """Service for pruning the click event log."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def cleanup(self, retention_days: int, now: Optional[int] = None) -> RetentionResult:
        """
        Delete click events older than ``retention_days``.

        Args:
            retention_days: Horizon in days (1..3650)
            now: Reference time in epoch ms, defaults to the current time

        Returns:
            RetentionResult with the number of deleted rows and the cutoff used

        Raises:
            ConfigurationError: If retention_days is out of bounds
        """
        validate_retention_days(retention_days)

        reference = now if now is not None else now_ms()
        cutoff = reference - retention_days * MS_PER_DAY
        logger.info(f"Starting cleanup: deleting click events older than {ms_to_iso(cutoff)}")

        result = await self.session.execute(
            delete(ClickEvent).where(ClickEvent.clicked_at < cutoff)
        )
        await self.session.commit()

        deleted = result.rowcount or 0
        if deleted:
            logger.info(f"Cleanup completed: {deleted} click events deleted")
        else:
            logger.info("No old click events to delete")

        return RetentionResult(deleted_count=deleted, cutoff=cutoff)


async def run_scheduled_cleanup(retention_days: int) -> Optional[RetentionResult]:
    """
    Scheduled entry point.

    Opens its own session and never raises: failures are logged and the
    run is abandoned until the next schedule.

    Returns:
        The RetentionResult, or None if the run failed
    """
    try:
        async with db_session.async_session_maker() as session:
            result = await RetentionService(session).cleanup(retention_days)
        logger.info(
            f"Scheduled cleanup summary: deleted={result.deleted_count}, "
            f"cutoff={ms_to_iso(result.cutoff)}"
        )
        return result
    except Exception as e:
        logger.error(f"Scheduled cleanup failed: {str(e)}", exc_info=True)
        return None
