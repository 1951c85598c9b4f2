"""
Retention Cleanup Scheduler

This module manages the global cleanup loop of the admin service.
The loop is started on application startup and cancelled on shutdown.

Design:
- Singleton pattern: One loop per application instance
- Each iteration runs run_scheduled_cleanup(), which never raises
- Disabled with CLEANUP_SCHEDULER_ENABLED=false when an external
  scheduler (cron, a platform trigger) calls the CLI instead
"""

import asyncio
import logging
from typing import Optional

from clicktrail.core.setting import settings
from clicktrail.services.retention_service import run_scheduled_cleanup

logger = logging.getLogger(__name__)


class CleanupScheduler:
    """Runs the retention cleanup on a fixed interval."""

    def __init__(self, retention_days: int, interval_seconds: float):
        self.retention_days = retention_days
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run_loop(self) -> None:
        logger.info(
            f"Starting retention cleanup loop "
            f"(retention: {self.retention_days}d, interval: {self.interval_seconds}s)"
        )
        while True:
            await run_scheduled_cleanup(self.retention_days)
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            logger.warning("Cleanup scheduler already running")
            return
        self._task = asyncio.create_task(self._run_loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Cleanup scheduler stopped")


# Global scheduler instance (started on admin startup)
_scheduler: Optional[CleanupScheduler] = None


async def start_scheduler() -> None:
    """Start the cleanup loop if enabled in settings."""
    global _scheduler

    if not settings.CLEANUP_SCHEDULER_ENABLED:
        logger.info("Retention cleanup scheduler disabled")
        return

    if _scheduler is not None and _scheduler.running:
        logger.warning("Cleanup scheduler already initialized")
        return

    _scheduler = CleanupScheduler(
        retention_days=settings.CLICK_RETENTION_DAYS,
        interval_seconds=settings.CLEANUP_INTERVAL_HOURS * 3600,
    )
    _scheduler.start()


async def stop_scheduler() -> None:
    global _scheduler

    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None
