"""
Background Task Helpers

Provides helper functions for background tasks that create their own database sessions.
Background tasks cannot use the endpoint's session as it's closed after the endpoint returns.

Failures are logged and dropped: the HTTP response has already been sent,
and retrying a click could record it twice.
"""

import logging

from clicktrail.db import session as db_session
from clicktrail.services.click_recorder import ClickContext, ClickRecorderService

logger = logging.getLogger(__name__)


async def record_click_background(context: ClickContext) -> None:
    """
    Background task to record a click.

    Creates its own database session as endpoint session is closed.

    Args:
        context: Request metadata captured by the redirect handler
    """
    try:
        async with db_session.async_session_maker() as session:
            recorder = ClickRecorderService(session)
            await recorder.record(context)
    except Exception as e:
        logger.error(
            f"Failed to record click for {context.short_code}: {str(e)}",
            exc_info=True
        )
