"""Shared constants and polling helpers for the test suite."""

import asyncio
import time

from sqlalchemy import func, select

from clicktrail.db import session as db_session
from clicktrail.db.models import ClickEvent

CHROME_WINDOWS_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

OWNER = "user-1"
OTHER_USER = "user-2"


async def count_click_events(link_id: str) -> int:
    async with db_session.async_session_maker() as s:
        statement = select(func.count()).select_from(ClickEvent).where(ClickEvent.link_id == link_id)
        return (await s.execute(statement)).scalar() or 0


async def wait_for_click_events(link_id: str, expected: int, timeout: float = 2.0) -> int:
    """Poll until background recording has written ``expected`` events."""
    deadline = time.monotonic() + timeout
    count = await count_click_events(link_id)
    while count < expected and time.monotonic() < deadline:
        await asyncio.sleep(0.02)
        count = await count_click_events(link_id)
    return count
