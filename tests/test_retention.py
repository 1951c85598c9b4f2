"""
Tests for the retention cleanup.
"""

import asyncio

import pytest
from sqlalchemy import func, select

from clicktrail.core import cleanup_scheduler
from clicktrail.core.cleanup_scheduler import CleanupScheduler
from clicktrail.core.exceptions import ConfigurationError
from clicktrail.core.timeutils import MS_PER_DAY, now_ms
from clicktrail.db.models import ClickEvent
from clicktrail.services.link_service import LinkService
from clicktrail.services.retention_service import RetentionService, run_scheduled_cleanup


class TestRetentionBounds:
    @pytest.mark.parametrize("days", [0, -5, 3651, True, 1.5, "30"])
    async def test_rejects_bad_retention(self, session, days):
        with pytest.raises(ConfigurationError):
            await RetentionService(session).cleanup(days)

    async def test_empty_store(self, session):
        result = await RetentionService(session).cleanup(365)
        assert result.deleted_count == 0

    async def test_upper_bound_allowed(self, session):
        result = await RetentionService(session).cleanup(3650)
        assert result.deleted_count == 0


class TestCleanup:
    async def test_deletes_only_older_events(self, session):
        link = await LinkService(session).create_link("https://example.com")
        now = now_ms()
        for age_days in (400, 366, 10, 0):
            session.add(ClickEvent(
                link_id=link.id,
                short_code=link.short_code,
                clicked_at=now - age_days * MS_PER_DAY,
            ))
        await session.commit()

        result = await RetentionService(session).cleanup(365, now=now)

        assert result.deleted_count == 2
        assert result.cutoff == now - 365 * MS_PER_DAY
        remaining = (await session.execute(select(func.count()).select_from(ClickEvent))).scalar()
        assert remaining == 2

        again = await RetentionService(session).cleanup(365, now=now)
        assert again.deleted_count == 0

    async def test_scheduled_cleanup_swallows_errors(self, db):
        assert await run_scheduled_cleanup(0) is None

    async def test_scheduled_cleanup_runs(self, db):
        result = await run_scheduled_cleanup(30)
        assert result is not None
        assert result.deleted_count == 0


class TestCleanupScheduler:
    async def test_runs_on_interval_and_stops(self, monkeypatch):
        calls = []

        async def fake_cleanup(retention_days):
            calls.append(retention_days)

        monkeypatch.setattr(cleanup_scheduler, "run_scheduled_cleanup", fake_cleanup)
        scheduler = CleanupScheduler(retention_days=30, interval_seconds=0.01)

        scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert calls and set(calls) == {30}
        assert not scheduler.running
