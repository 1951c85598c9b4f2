"""
Analytics Service

Read-side aggregation over the click event log:
- Per-link report (totals, daily trend, country/device/browser breakdowns,
  most recent clicks)
- Public, redacted per-link summary
- Owner-wide statistics over a date range
- Store-wide usage figures for operators

Design Decisions:
- The event log is authoritative; Link.click_count is never used here
- Every aggregate joins through the links table so events of deleted links
  are never counted
- Day buckets are computed in SQL by the database adapter (UTC calendar days)
"""

from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clicktrail.core.setting import AnonymousLinkPolicy, settings
from clicktrail.core.timeutils import (
    MS_PER_DAY,
    current_month_range,
    day_end_ms,
    day_start_ms,
    now_ms,
)
from clicktrail.db.adapters import get_database_adapter
from clicktrail.db.interface import DatabaseAdapter
from clicktrail.db.models import ClickEvent, Link
from clicktrail.services.link_service import LinkService
from clicktrail.services.ownership import ensure_allowed

ANALYTICS_DEFAULT_DAYS = 30
TOP_COUNTRIES = 10
TOP_BROWSERS = 5
TOP_LINKS = 10
RECENT_CLICKS = 20


class AnalyticsService:
    """
    Service for click analytics.

    Aggregates click events for one link or for all links of an owner.
    """

    def __init__(
        self,
        session: AsyncSession,
        adapter: Optional[DatabaseAdapter] = None,
        anonymous_policy: Optional[AnonymousLinkPolicy] = None,
    ):
        """
        Args:
            session: Async database session for database operations
            adapter: Database adapter providing dialect-specific expressions
            anonymous_policy: Rule for principals viewing unowned links
        """
        self.session = session
        self.adapter = adapter or get_database_adapter()
        self.anonymous_policy = anonymous_policy or settings.ANONYMOUS_LINK_POLICY
        self.link_service = LinkService(session, anonymous_policy=self.anonymous_policy)

    async def _count(self, *filters) -> int:
        statement = (
            select(func.count(ClickEvent.id))
            .select_from(ClickEvent)
            .join(Link, Link.id == ClickEvent.link_id)
            .where(*filters)
        )
        return (await self.session.execute(statement)).scalar() or 0

    async def _distribution(self, column, *filters, limit: Optional[int] = None) -> Dict[str, int]:
        """Click counts grouped by ``column``, largest first, NULLs skipped."""
        count = func.count(ClickEvent.id).label("count")
        statement = (
            select(column, count)
            .select_from(ClickEvent)
            .join(Link, Link.id == ClickEvent.link_id)
            .where(column.is_not(None), *filters)
            .group_by(column)
            .order_by(count.desc(), column)
        )
        if limit is not None:
            statement = statement.limit(limit)
        result = await self.session.execute(statement)
        return {row[0]: row[1] for row in result.all()}

    async def _trend(self, *filters) -> Dict[str, int]:
        """Click counts per UTC day, oldest first."""
        bucket = self.adapter.day_bucket(ClickEvent.clicked_at)
        statement = (
            select(bucket, func.count(ClickEvent.id))
            .select_from(ClickEvent)
            .join(Link, Link.id == ClickEvent.link_id)
            .where(*filters)
            .group_by(bucket)
            .order_by(bucket)
        )
        result = await self.session.execute(statement)
        return {str(row[0]): row[1] for row in result.all()}

    async def get_link_analytics(
        self,
        short_code: str,
        principal_id: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Build the full analytics report for one link.

        Archived links are included so owners can still inspect them.

        Args:
            short_code: The link's short code
            principal_id: Requesting principal; ownership is enforced when given

        Returns:
            Report dictionary, or None if the short code does not exist

        Raises:
            ForbiddenError: If the principal may not view the link
        """
        link = await self.link_service.find_by_short_code(short_code)
        if link is None:
            return None

        ensure_allowed(link, principal_id, self.anonymous_policy)

        for_link = ClickEvent.link_id == link.id
        since = now_ms() - ANALYTICS_DEFAULT_DAYS * MS_PER_DAY

        recent_statement = (
            select(ClickEvent)
            .where(for_link)
            .order_by(ClickEvent.clicked_at.desc(), ClickEvent.id)
            .limit(RECENT_CLICKS)
        )
        recent_clicks = list((await self.session.execute(recent_statement)).scalars().all())

        return {
            "url": link,
            "total_clicks": await self._count(for_link),
            "clicks_by_date": await self._trend(for_link, ClickEvent.clicked_at >= since),
            "clicks_by_country": await self._distribution(ClickEvent.country, for_link, limit=TOP_COUNTRIES),
            "clicks_by_device": await self._distribution(ClickEvent.device_type, for_link),
            "clicks_by_browser": await self._distribution(ClickEvent.browser, for_link, limit=TOP_BROWSERS),
            "recent_clicks": recent_clicks,
        }

    async def get_public_analytics(self, short_code: str) -> Optional[Dict[str, Any]]:
        """
        Redacted summary safe for anonymous sharing.

        Returns:
            {short_code, total_clicks, created_at} or None if not found
        """
        link = await self.link_service.find_by_short_code(short_code)
        if link is None:
            return None

        return {
            "short_code": link.short_code,
            "total_clicks": await self._count(ClickEvent.link_id == link.id),
            "created_at": link.created_at,
        }

    async def get_overall_stats(
        self,
        owner_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Statistics across all links owned by ``owner_id``.

        The range is inclusive of both calendar days (UTC). Without a range
        the current calendar month is used.

        Args:
            owner_id: Owning principal
            start_date: First day of the range
            end_date: Last day of the range

        Returns:
            Report dictionary; all zero/empty when the owner has no links
        """
        if start_date is None or end_date is None:
            start_date, end_date = current_month_range()

        date_range = {"start": start_date.isoformat(), "end": end_date.isoformat()}

        links_statement = select(Link.is_active).where(Link.owner_id == owner_id)
        link_flags = [row[0] for row in (await self.session.execute(links_statement)).all()]
        total_links = len(link_flags)

        if total_links == 0:
            return {
                "total_clicks": 0,
                "active_links": 0,
                "total_links": 0,
                "click_trend": {},
                "top_links": [],
                "country_distribution": {},
                "device_distribution": {},
                "date_range": date_range,
            }

        filters = (
            Link.owner_id == owner_id,
            ClickEvent.clicked_at >= day_start_ms(start_date),
            ClickEvent.clicked_at <= day_end_ms(end_date),
        )

        click_count = func.count(ClickEvent.id).label("click_count")
        top_statement = (
            select(Link.short_code, Link.destination_url, Link.title, click_count)
            .select_from(ClickEvent)
            .join(Link, Link.id == ClickEvent.link_id)
            .where(*filters)
            .group_by(Link.id, Link.short_code, Link.destination_url, Link.title)
            .order_by(click_count.desc(), Link.short_code)
            .limit(TOP_LINKS)
        )
        top_links: List[Dict[str, Any]] = [
            {
                "short_code": row.short_code,
                "destination_url": row.destination_url,
                "title": row.title,
                "click_count": row.click_count,
            }
            for row in (await self.session.execute(top_statement)).all()
        ]

        return {
            "total_clicks": await self._count(*filters),
            "active_links": sum(1 for is_active in link_flags if is_active),
            "total_links": total_links,
            "click_trend": await self._trend(*filters),
            "top_links": top_links,
            "country_distribution": await self._distribution(ClickEvent.country, *filters, limit=TOP_COUNTRIES),
            "device_distribution": await self._distribution(ClickEvent.device_type, *filters),
            "date_range": date_range,
        }

    async def get_usage_stats(self) -> Dict[str, Any]:
        """
        Store-wide figures for operators: click volume and table sizes.
        """
        now = now_ms()

        total_clicks = (await self.session.execute(select(func.count(ClickEvent.id)))).scalar() or 0
        total_links = (await self.session.execute(select(func.count(Link.id)))).scalar() or 0
        oldest = (await self.session.execute(select(func.min(ClickEvent.clicked_at)))).scalar()

        # Epoch milliseconds are UTC, so whole days align with UTC midnight
        today_start = now - (now % MS_PER_DAY)
        month_start = day_start_ms(current_month_range(now)[0])

        today_clicks = (await self.session.execute(
            select(func.count(ClickEvent.id)).where(ClickEvent.clicked_at >= today_start)
        )).scalar() or 0
        month_clicks = (await self.session.execute(
            select(func.count(ClickEvent.id)).where(ClickEvent.clicked_at >= month_start)
        )).scalar() or 0

        return {
            "total_clicks": total_clicks,
            "today_clicks": today_clicks,
            "month_clicks": month_clicks,
            "total_links": total_links,
            "oldest_click_at": oldest,
            "timestamp": now,
        }
