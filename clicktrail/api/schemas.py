"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.
Separated from endpoints to keep concerns separated and enable reuse.

Design Principles:
- Request models: Define input shape; URL and short code rules live in the
  service layer so the stored destination round-trips exactly
- Response models: Define output structure
- Timestamps are epoch milliseconds (UTC) throughout
"""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from clicktrail.core.setting import settings
from clicktrail.db.models import Link


class ShortenRequest(BaseModel):
    """Request model for link creation."""
    destination_url: str = Field(
        ...,
        validation_alias=AliasChoices("destination_url", "original_url"),
        description="The long URL to redirect to (http or https)"
    )
    short_code: Optional[str] = Field(None, description="Custom short code, generated when omitted")
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    expires_at: Optional[int] = Field(None, description="Expiry in epoch milliseconds")


class UpdateLinkRequest(BaseModel):
    """
    Partial update. Only fields present in the body are applied; unknown
    fields are passed through so the service can reject them.
    """
    model_config = ConfigDict(extra="allow")

    destination_url: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("destination_url", "original_url"),
    )
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    expires_at: Optional[int] = None
    is_active: Optional[bool] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class LinkResponse(BaseModel):
    """Response model for a single link."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    short_code: str
    short_url: str
    destination_url: str
    title: Optional[str] = None
    description: Optional[str] = None
    owner_id: Optional[str] = None
    created_at: int
    updated_at: int
    expires_at: Optional[int] = None
    is_active: bool
    click_count: int

    @classmethod
    def from_link(cls, link: Link) -> "LinkResponse":
        return cls(
            id=link.id,
            short_code=link.short_code,
            short_url=f"{settings.BASE_URL.rstrip('/')}/{link.short_code}",
            destination_url=link.destination_url,
            title=link.title,
            description=link.description,
            owner_id=link.owner_id,
            created_at=link.created_at,
            updated_at=link.updated_at,
            expires_at=link.expires_at,
            is_active=link.is_active,
            click_count=link.click_count,
        )


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class LinkListResponse(BaseModel):
    data: List[LinkResponse]
    pagination: Pagination


class ClickEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    short_code: str
    clicked_at: int
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    device_type: Optional[str] = None
    browser: Optional[str] = None
    os: Optional[str] = None


class LinkAnalyticsResponse(BaseModel):
    """Full analytics report for one link."""
    url: LinkResponse
    total_clicks: int
    clicks_by_date: Dict[str, int]
    clicks_by_country: Dict[str, int]
    clicks_by_device: Dict[str, int]
    clicks_by_browser: Dict[str, int]
    recent_clicks: List[ClickEventResponse]

    @classmethod
    def from_report(cls, report: Dict[str, Any]) -> "LinkAnalyticsResponse":
        return cls(
            url=LinkResponse.from_link(report["url"]),
            total_clicks=report["total_clicks"],
            clicks_by_date=report["clicks_by_date"],
            clicks_by_country=report["clicks_by_country"],
            clicks_by_device=report["clicks_by_device"],
            clicks_by_browser=report["clicks_by_browser"],
            recent_clicks=[ClickEventResponse.model_validate(event) for event in report["recent_clicks"]],
        )


class PublicAnalyticsResponse(BaseModel):
    """Redacted per-link summary."""
    short_code: str
    total_clicks: int
    created_at: int


class TopLink(BaseModel):
    short_code: str
    destination_url: str
    title: Optional[str] = None
    click_count: int


class DateRange(BaseModel):
    start: str
    end: str


class OverallStatsResponse(BaseModel):
    total_clicks: int
    active_links: int
    total_links: int
    click_trend: Dict[str, int]
    top_links: List[TopLink]
    country_distribution: Dict[str, int]
    device_distribution: Dict[str, int]
    date_range: DateRange


class UsageStatsResponse(BaseModel):
    total_clicks: int
    today_clicks: int
    month_clicks: int
    total_links: int
    oldest_click_at: Optional[int] = None
    timestamp: int


class CleanupResponse(BaseModel):
    success: bool = True
    deleted: int
    cutoff: int
    cutoff_date: str
    retention_days: int


class ReconcileResponse(BaseModel):
    id: str
    short_code: str
    click_count: int


class HealthResponse(BaseModel):
    status: str
    service: str
    timestamp: str


class ErrorResponse(BaseModel):
    """Error body. The redirect surface only fills error and message."""
    error: str
    message: str
    code: Optional[str] = None
    details: Optional[Any] = None
    stack: Optional[str] = None
