"""
FastAPI Endpoints for the admin (management) service

This module defines the link management, analytics and maintenance API.
Endpoints only handle:
- Request validation (Pydantic models)
- Rate limiting
- Principal extraction
- Delegating to service layer

Errors raised by services are rendered by the handlers in api.errors.
"""

import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from clicktrail.api.dependencies import get_optional_principal, require_principal
from clicktrail.api.schemas import (
    CleanupResponse,
    HealthResponse,
    LinkAnalyticsResponse,
    LinkListResponse,
    LinkResponse,
    OverallStatsResponse,
    Pagination,
    PublicAnalyticsResponse,
    ReconcileResponse,
    ShortenRequest,
    UpdateLinkRequest,
    UsageStatsResponse,
)
from clicktrail.core.exceptions import ConfigurationError, LinkNotFoundError, ValidationFailedError
from clicktrail.core.rate_limit import RATE_LIMITS, limiter
from clicktrail.core.timeutils import ms_to_iso, now_ms
from clicktrail.core.validators import parse_date_range
from clicktrail.db.session import get_session
from clicktrail.services.analytics_service import AnalyticsService
from clicktrail.services.link_service import LinkService
from clicktrail.services.retention_service import RetentionService, validate_retention_days

router = APIRouter()

DEFAULT_CLEANUP_DAYS = 365
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    return HealthResponse(status="ok", service="admin-api", timestamp=ms_to_iso(now_ms()))


@router.post(
    "/api/shorten",
    response_model=LinkResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Links"],
    summary="Create a short link",
)
@limiter.limit(RATE_LIMITS["shorten"])
async def create_link(
    request: Request,  # Required for rate limiting (slowapi expects parameter named 'request')
    body: ShortenRequest,
    principal: Optional[str] = Depends(get_optional_principal),
    session: AsyncSession = Depends(get_session)
) -> LinkResponse:
    """
    Create a link. Anonymous callers create unowned links.
    """
    link = await LinkService(session).create_link(
        destination_url=body.destination_url,
        short_code=body.short_code,
        owner_id=principal,
        title=body.title,
        description=body.description,
        expires_at=body.expires_at,
    )
    return LinkResponse.from_link(link)


@router.get("/api/urls", response_model=LinkListResponse, tags=["Links"])
@limiter.limit(RATE_LIMITS["manage"])
async def list_links(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    principal: str = Depends(require_principal),
    session: AsyncSession = Depends(get_session)
) -> LinkListResponse:
    """List the caller's links, newest first."""
    links, total = await LinkService(session).list_by_owner(principal, page=page, page_size=limit)
    return LinkListResponse(
        data=[LinkResponse.from_link(link) for link in links],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
        ),
    )


@router.get("/api/urls/{link_id}", response_model=LinkResponse, tags=["Links"])
@limiter.limit(RATE_LIMITS["manage"])
async def get_link(
    link_id: str,
    request: Request,
    principal: str = Depends(require_principal),
    session: AsyncSession = Depends(get_session)
) -> LinkResponse:
    link = await LinkService(session).get_by_id(link_id, principal_id=principal)
    return LinkResponse.from_link(link)


@router.put("/api/urls/{link_id}", response_model=LinkResponse, tags=["Links"])
@limiter.limit(RATE_LIMITS["manage"])
async def update_link(
    link_id: str,
    request: Request,
    body: UpdateLinkRequest,
    principal: str = Depends(require_principal),
    session: AsyncSession = Depends(get_session)
) -> LinkResponse:
    """
    Partially update a link. Setting is_active to false archives it.
    """
    link = await LinkService(session).update_link(link_id, body.changes(), principal_id=principal)
    return LinkResponse.from_link(link)


@router.delete("/api/urls/{link_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Links"])
@limiter.limit(RATE_LIMITS["manage"])
async def delete_link(
    link_id: str,
    request: Request,
    principal: str = Depends(require_principal),
    session: AsyncSession = Depends(get_session)
) -> Response:
    await LinkService(session).delete_link(link_id, principal_id=principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/api/urls/{link_id}/reconcile", response_model=ReconcileResponse, tags=["Links"])
@limiter.limit(RATE_LIMITS["manage"])
async def reconcile_link(
    link_id: str,
    request: Request,
    principal: str = Depends(require_principal),
    session: AsyncSession = Depends(get_session)
) -> ReconcileResponse:
    """Raise the advisory click counter to the number of recorded events."""
    service = LinkService(session)
    click_count = await service.reconcile_click_count(link_id, principal_id=principal)
    link = await service.get_by_id(link_id, principal_id=principal)
    return ReconcileResponse(id=link.id, short_code=link.short_code, click_count=click_count)


@router.get("/api/analytics/{short_code}", response_model=LinkAnalyticsResponse, tags=["Analytics"])
@limiter.limit(RATE_LIMITS["stats"])
async def get_link_analytics(
    short_code: str,
    request: Request,
    principal: str = Depends(require_principal),
    session: AsyncSession = Depends(get_session)
) -> LinkAnalyticsResponse:
    report = await AnalyticsService(session).get_link_analytics(short_code, principal_id=principal)
    if report is None:
        raise LinkNotFoundError(short_code)
    return LinkAnalyticsResponse.from_report(report)


@router.get("/api/public/analytics/{short_code}", response_model=PublicAnalyticsResponse, tags=["Analytics"])
@limiter.limit(RATE_LIMITS["stats"])
async def get_public_analytics(
    short_code: str,
    request: Request,
    session: AsyncSession = Depends(get_session)
) -> PublicAnalyticsResponse:
    """Redacted summary, no authentication required."""
    summary = await AnalyticsService(session).get_public_analytics(short_code)
    if summary is None:
        raise LinkNotFoundError(short_code)
    return PublicAnalyticsResponse(**summary)


@router.get("/api/stats/overall", response_model=OverallStatsResponse, tags=["Analytics"])
@limiter.limit(RATE_LIMITS["stats"])
async def get_overall_stats(
    request: Request,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    principal: str = Depends(require_principal),
    session: AsyncSession = Depends(get_session)
) -> OverallStatsResponse:
    """
    Statistics across the caller's links. startDate and endDate
    (YYYY-MM-DD) must be given together; the default is the current month.
    """
    start, end = parse_date_range(start_date, end_date)
    stats = await AnalyticsService(session).get_overall_stats(principal, start, end)
    return OverallStatsResponse(**stats)


@router.get("/api/stats/usage", response_model=UsageStatsResponse, tags=["Analytics"])
@limiter.limit(RATE_LIMITS["stats"])
async def get_usage_stats(
    request: Request,
    principal: str = Depends(require_principal),
    session: AsyncSession = Depends(get_session)
) -> UsageStatsResponse:
    stats = await AnalyticsService(session).get_usage_stats()
    return UsageStatsResponse(**stats)


@router.post("/api/admin/cleanup", response_model=CleanupResponse, tags=["Maintenance"])
async def trigger_cleanup(
    days: Optional[str] = Query(None),
    principal: str = Depends(require_principal),
    session: AsyncSession = Depends(get_session)
) -> CleanupResponse:
    """
    Delete click events older than ``days`` (default 365).

    An out-of-range value is the caller's mistake here, so it is reported
    as 400 rather than as a configuration error.
    """
    retention_days = _parse_retention_days(days)
    result = await RetentionService(session).cleanup(retention_days)
    return CleanupResponse(
        deleted=result.deleted_count,
        cutoff=result.cutoff,
        cutoff_date=ms_to_iso(result.cutoff),
        retention_days=retention_days,
    )


def _parse_retention_days(days: Optional[str]) -> int:
    if days is None or days.strip() == "":
        return DEFAULT_CLEANUP_DAYS
    try:
        return validate_retention_days(int(days))
    except ValueError:
        raise ValidationFailedError("Invalid days parameter. Must be between 1 and 3650.")
    except ConfigurationError as e:
        raise ValidationFailedError(f"Invalid days parameter: {e.message}")
