"""
Redirect Service

This service decides what happens to an inbound short code. Every request
is resolved independently into one of four outcomes:

- NOT_FOUND: no link with this code (404, no click)
- FOUND_ARCHIVED: the link is archived (redirect to the fallback URL, no click)
- FOUND_EXPIRED: the link is active but past expires_at (410, no click)
- FOUND_ACTIVE: redirect to the destination and record a click

Archived takes precedence over expired. The service only classifies; the
endpoint turns the outcome into a response and schedules the click.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from clicktrail.core.timeutils import now_ms
from clicktrail.core.validators import is_valid_short_code
from clicktrail.db.models import Link
from clicktrail.services.link_service import LinkService


class ResolutionState(str, enum.Enum):
    FOUND_ACTIVE = "found_active"
    FOUND_EXPIRED = "found_expired"
    FOUND_ARCHIVED = "found_archived"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Resolution:
    state: ResolutionState
    link: Optional[Link] = None

    @property
    def records_click(self) -> bool:
        return self.state == ResolutionState.FOUND_ACTIVE


def classify_link(link: Optional[Link], now: int) -> ResolutionState:
    """Pure policy: map a looked-up link (or None) to a resolution state."""
    if link is None:
        return ResolutionState.NOT_FOUND
    if not link.is_active:
        return ResolutionState.FOUND_ARCHIVED
    if link.expires_at is not None and link.expires_at < now:
        return ResolutionState.FOUND_EXPIRED
    return ResolutionState.FOUND_ACTIVE


class RedirectService:
    """Service for resolving short codes on the public redirect path."""

    def __init__(self, session: AsyncSession):
        """
        Initialize the redirect service with a database session.

        Args:
            session: Async database session for database operations
        """
        self.session = session
        self.link_service = LinkService(session)

    async def resolve(self, short_code: str) -> Resolution:
        """
        Resolve a short code.

        Codes that cannot exist (wrong shape) are NOT_FOUND without a
        database round trip.
        """
        if not is_valid_short_code(short_code):
            return Resolution(ResolutionState.NOT_FOUND)

        link = await self.link_service.find_by_short_code(short_code)
        state = classify_link(link, now_ms())
        return Resolution(state, link if state != ResolutionState.NOT_FOUND else None)
