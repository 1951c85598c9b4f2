"""
Tests for the analytics service.
"""

from datetime import date, datetime, timezone

import pytest

from clicktrail.core.exceptions import ForbiddenError
from clicktrail.core.timeutils import now_ms
from clicktrail.db.models import ClickEvent
from clicktrail.services.analytics_service import AnalyticsService
from clicktrail.services.link_service import LinkService

from tests.helpers import OTHER_USER, OWNER


def _ms(year, month, day, hour=12):
    return int(datetime(year, month, day, hour, tzinfo=timezone.utc).timestamp() * 1000)


async def _add_clicks(session, link, events):
    for clicked_at, country, device_type, browser in events:
        session.add(ClickEvent(
            link_id=link.id,
            short_code=link.short_code,
            clicked_at=clicked_at,
            country=country,
            device_type=device_type,
            browser=browser,
            os="windows",
        ))
    await session.commit()


class TestLinkAnalytics:
    async def test_report(self, session):
        link = await LinkService(session).create_link("https://example.com", short_code="stats1", owner_id=OWNER)
        now = now_ms()
        await _add_clicks(session, link, [
            (now - 1000, "US", "desktop", "chrome"),
            (now - 2000, "US", "mobile", "safari"),
            (now - 3000, "DE", "desktop", "chrome"),
            (now - 4000, None, "desktop", "firefox"),
        ])

        report = await AnalyticsService(session).get_link_analytics("stats1", principal_id=OWNER)

        assert report["url"].id == link.id
        assert report["total_clicks"] == 4
        assert report["clicks_by_country"] == {"US": 2, "DE": 1}
        assert report["clicks_by_device"] == {"desktop": 3, "mobile": 1}
        assert report["clicks_by_browser"]["chrome"] == 2
        assert sum(report["clicks_by_date"].values()) == 4
        assert [event.clicked_at for event in report["recent_clicks"]] == [now - 1000, now - 2000, now - 3000, now - 4000]

    async def test_missing_link(self, session):
        assert await AnalyticsService(session).get_link_analytics("nothere") is None

    async def test_other_owner_forbidden(self, session):
        await LinkService(session).create_link("https://example.com", short_code="private1", owner_id=OWNER)
        with pytest.raises(ForbiddenError):
            await AnalyticsService(session).get_link_analytics("private1", principal_id=OTHER_USER)

    async def test_archived_link_still_reported(self, session):
        service = LinkService(session)
        link = await service.create_link("https://example.com", short_code="arch1", owner_id=OWNER)
        await service.update_link(link.id, {"is_active": False})

        report = await AnalyticsService(session).get_link_analytics("arch1", principal_id=OWNER)
        assert report is not None
        assert report["total_clicks"] == 0

    async def test_public_summary(self, session):
        link = await LinkService(session).create_link("https://example.com", short_code="pub1", owner_id=OWNER)
        await _add_clicks(session, link, [(now_ms(), "US", "desktop", "chrome")])

        summary = await AnalyticsService(session).get_public_analytics("pub1")

        assert summary == {"short_code": "pub1", "total_clicks": 1, "created_at": link.created_at}


class TestOverallStats:
    async def test_owner_without_links(self, session):
        stats = await AnalyticsService(session).get_overall_stats("nobody")

        assert stats["total_clicks"] == 0
        assert stats["total_links"] == 0
        assert stats["active_links"] == 0
        assert stats["top_links"] == []
        assert stats["click_trend"] == {}
        assert stats["country_distribution"] == {}
        assert stats["device_distribution"] == {}

    async def test_range_is_inclusive_and_owner_scoped(self, session):
        service = LinkService(session)
        first = await service.create_link("https://example.com/1", short_code="top1", owner_id=OWNER)
        second = await service.create_link("https://example.com/2", short_code="top2", owner_id=OWNER)
        archived = await service.create_link("https://example.com/3", short_code="top3", owner_id=OWNER)
        await service.update_link(archived.id, {"is_active": False})
        foreign = await service.create_link("https://example.com/4", short_code="top4", owner_id=OTHER_USER)

        await _add_clicks(session, first, [
            (_ms(2024, 3, 1, 0), "US", "desktop", "chrome"),
            (_ms(2024, 3, 1, 23), "US", "desktop", "chrome"),
            (_ms(2024, 3, 31, 12), "FR", "mobile", "safari"),
            (_ms(2024, 4, 1, 0), "US", "desktop", "chrome"),
        ])
        await _add_clicks(session, second, [(_ms(2024, 3, 15), "DE", "tablet", "firefox")])
        await _add_clicks(session, foreign, [(_ms(2024, 3, 15), "US", "desktop", "chrome")])

        stats = await AnalyticsService(session).get_overall_stats(OWNER, date(2024, 3, 1), date(2024, 3, 31))

        assert stats["total_clicks"] == 4
        assert stats["total_links"] == 3
        assert stats["active_links"] == 2
        assert stats["click_trend"] == {"2024-03-01": 2, "2024-03-15": 1, "2024-03-31": 1}
        assert [item["short_code"] for item in stats["top_links"]] == ["top1", "top2"]
        assert stats["top_links"][0]["click_count"] == 3
        assert stats["country_distribution"] == {"US": 2, "FR": 1, "DE": 1}
        assert stats["device_distribution"] == {"desktop": 2, "mobile": 1, "tablet": 1}
        assert stats["date_range"] == {"start": "2024-03-01", "end": "2024-03-31"}


class TestUsageStats:
    async def test_usage(self, session):
        link = await LinkService(session).create_link("https://example.com")
        await _add_clicks(session, link, [
            (now_ms(), "US", "desktop", "chrome"),
            (_ms(2020, 1, 1), "US", "desktop", "chrome"),
        ])

        usage = await AnalyticsService(session).get_usage_stats()

        assert usage["total_clicks"] == 2
        assert usage["today_clicks"] == 1
        assert usage["month_clicks"] == 1
        assert usage["total_links"] == 1
        assert usage["oldest_click_at"] == _ms(2020, 1, 1)
