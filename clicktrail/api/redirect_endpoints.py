"""
FastAPI Endpoints for the public redirect service

This is the latency-sensitive surface: one lookup, one decision, and the
click is recorded after the response has been sent.

Endpoints only handle:
- Rate limiting
- Turning a Resolution into an HTTP response
- Scheduling the click recording as a background task
"""

import asyncio
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clicktrail.api.schemas import HealthResponse
from clicktrail.core.exceptions import LinkExpiredError, LinkNotFoundError, ServiceUnavailableError
from clicktrail.core.rate_limit import RATE_LIMITS, limiter
from clicktrail.core.setting import settings
from clicktrail.core.timeutils import ms_to_iso, now_ms
from clicktrail.db.session import get_session
from clicktrail.services.background_tasks import record_click_background
from clicktrail.services.click_recorder import ClickContext
from clicktrail.services.redirect_service import RedirectService, Resolution, ResolutionState

logger = logging.getLogger(__name__)

router = APIRouter()

LINK_STORE = "link-store"


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Liveness probe for the redirect service."""
    return HealthResponse(status="ok", service="redirect", timestamp=ms_to_iso(now_ms()))


@router.get("/", status_code=status.HTTP_302_FOUND, include_in_schema=False)
async def root_redirect() -> RedirectResponse:
    """Bare requests go to the fallback destination."""
    return RedirectResponse(url=settings.archived_redirect_url, status_code=status.HTTP_302_FOUND)


async def _resolve(session: AsyncSession, short_code: str) -> Resolution:
    """
    Look the code up under the configured timeout.

    Raises:
        ServiceUnavailableError: On timeout or database failure; the
            service never guesses a destination
    """
    try:
        return await asyncio.wait_for(
            RedirectService(session).resolve(short_code),
            timeout=settings.REDIRECT_LOOKUP_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        logger.error(f"Lookup for '{short_code}' timed out after {settings.REDIRECT_LOOKUP_TIMEOUT_SECONDS}s")
        raise ServiceUnavailableError(LINK_STORE, "Short link lookup timed out")
    except SQLAlchemyError as e:
        logger.error(f"Lookup for '{short_code}' failed: {str(e)}", exc_info=True)
        raise ServiceUnavailableError(LINK_STORE, "Short link lookup is temporarily unavailable")


@router.get(
    "/{short_code}",
    status_code=status.HTTP_302_FOUND,
    summary="Redirect to destination URL",
    description="Resolves a short code and redirects to its destination"
)
@limiter.limit(RATE_LIMITS["redirect"])
async def redirect_short_code(
    short_code: str,
    request: Request,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session)
) -> RedirectResponse:
    """
    Resolve a short code.

    Returns:
        302 to the destination (click recorded after the response),
        302 to the fallback URL for archived links

    Raises:
        LinkNotFoundError: 404 for unknown codes
        LinkExpiredError: 410 for expired links
        ServiceUnavailableError: 503 when the lookup cannot complete
    """
    resolution = await _resolve(session, short_code)

    if resolution.state == ResolutionState.NOT_FOUND:
        raise LinkNotFoundError(short_code)

    if resolution.state == ResolutionState.FOUND_ARCHIVED:
        return RedirectResponse(url=settings.archived_redirect_url, status_code=status.HTTP_302_FOUND)

    if resolution.state == ResolutionState.FOUND_EXPIRED:
        raise LinkExpiredError(short_code)

    link = resolution.link
    background_tasks.add_task(
        record_click_background,
        ClickContext.from_request(request, short_code=link.short_code, link_id=link.id),
    )

    return RedirectResponse(url=link.destination_url, status_code=status.HTTP_302_FOUND)
