"""
Click Recording Service

This service turns one resolved redirect into a ClickEvent row and bumps
the link's advisory counter.

Design Decisions:
- Request metadata is captured into a ClickContext while the request is
  still alive; the recording itself runs after the response is sent
- The event insert is committed before the counter increment is attempted,
  so a failure in between can only leave the counter behind, never ahead
- Missing headers never prevent recording: the event is stored with NULLs
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from clicktrail.core.setting import settings
from clicktrail.core.timeutils import now_ms
from clicktrail.db.models import (
    CITY_MAX_LENGTH,
    COUNTRY_MAX_LENGTH,
    IP_ADDRESS_MAX_LENGTH,
    USER_AGENT_MAX_LENGTH,
    ClickEvent,
)
from clicktrail.services.link_service import LinkService
from clicktrail.services.user_agent import LabelSet, classify, labels_for

logger = logging.getLogger(__name__)

# Edge network headers, checked in order for the client address
REAL_IP_HEADERS = ("CF-Connecting-IP", "X-Real-IP")
FORWARDED_FOR_HEADER = "X-Forwarded-For"
COUNTRY_HEADER = "CF-IPCountry"
CITY_HEADER = "CF-IPCity"

# Cloudflare reports XX for unknown locations and T1 for Tor exits
UNKNOWN_COUNTRY_CODES = frozenset({"XX", "T1"})


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _truncate(value: Optional[str], max_length: int) -> Optional[str]:
    return value[:max_length] if value else None


def extract_client_ip(headers: Mapping[str, str]) -> Optional[str]:
    """
    Extract the client address from proxy headers.

    Prefers an edge-provided real IP header, then the first entry of
    X-Forwarded-For. Returns None when neither is present.
    """
    for name in REAL_IP_HEADERS:
        value = _header(headers, name)
        if value:
            return value

    forwarded_for = _header(headers, FORWARDED_FOR_HEADER)
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first one
        return forwarded_for.split(",")[0].strip() or None

    return None


@dataclass(frozen=True)
class ClickContext:
    """Everything needed to record a click, detached from the request."""
    link_id: str
    short_code: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str], short_code: str, link_id: str) -> "ClickContext":
        country = _header(headers, COUNTRY_HEADER)
        if country and country.upper() in UNKNOWN_COUNTRY_CODES:
            country = None
        return cls(
            link_id=link_id,
            short_code=short_code,
            ip_address=extract_client_ip(headers),
            user_agent=_header(headers, "User-Agent"),
            referrer=_header(headers, "Referer"),
            country=country.upper() if country else None,
            city=_header(headers, CITY_HEADER),
        )

    @classmethod
    def from_request(cls, request: Request, short_code: str, link_id: str) -> "ClickContext":
        return cls.from_headers(request.headers, short_code, link_id)


class ClickRecorderService:
    """
    Service for recording clicks.

    Designed to be called from a background task with its own session so
    the redirect response never waits on it.
    """

    def __init__(self, session: AsyncSession, labels: Optional[LabelSet] = None):
        """
        Args:
            session: Async database session for database operations
            labels: Fallback labels for unrecognised browsers/operating systems
        """
        self.session = session
        self.labels = labels or labels_for(settings.CLICK_FALLBACK_LABEL)
        self.link_service = LinkService(session)

    def build_event(self, context: ClickContext) -> ClickEvent:
        device_type = browser = os_name = None
        if context.user_agent:
            device = classify(context.user_agent, self.labels)
            device_type, browser, os_name = device.device_type, device.browser, device.os

        return ClickEvent(
            link_id=context.link_id,
            short_code=context.short_code,
            clicked_at=now_ms(),
            ip_address=_truncate(context.ip_address, IP_ADDRESS_MAX_LENGTH),
            user_agent=_truncate(context.user_agent, USER_AGENT_MAX_LENGTH),
            referrer=context.referrer,
            country=_truncate(context.country, COUNTRY_MAX_LENGTH),
            city=_truncate(context.city, CITY_MAX_LENGTH),
            device_type=device_type,
            browser=browser,
            os=os_name,
        )

    async def record(self, context: ClickContext) -> ClickEvent:
        """
        Persist a click event, then increment the link's counter.

        Args:
            context: Captured request metadata

        Returns:
            The stored ClickEvent
        """
        event = self.build_event(context)
        self.session.add(event)
        await self.session.commit()

        await self.link_service.increment_click_count(context.link_id)
        await self.session.commit()
        return event
