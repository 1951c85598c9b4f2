"""
Database Models for the Link Service

This module defines the SQLModel database schemas for:
- Link: Stores the mapping between short codes and destination URLs
- ClickEvent: Stores one immutable record per resolved click for analytics

Design Decisions:
- Separate ClickEvent table so the event log can grow and be pruned independently
- Unique index on short_code for fast lookups (most common operation),
  plus a unique index on lower(short_code) so case variants cannot coexist
- Indexes on link_id and clicked_at for per-link aggregates and retention range scans
- click_count denormalized in Link for display without scanning the event log;
  the event log stays authoritative for analytics
- All timestamps are epoch milliseconds (UTC)
"""

import uuid
from typing import Optional

from sqlalchemy import BigInteger, Boolean, Column, ForeignKey, Index, Integer, String, Text, func
from sqlmodel import Field, SQLModel

from clicktrail.core.timeutils import now_ms


# Column widths for header-derived click fields
IP_ADDRESS_MAX_LENGTH = 45  # IPv6 max length
USER_AGENT_MAX_LENGTH = 500
COUNTRY_MAX_LENGTH = 8
CITY_MAX_LENGTH = 128


def new_id() -> str:
    return uuid.uuid4().hex


class Link(SQLModel, table=True):
    """
    Main table storing short code mappings.

    Fields:
    - id: Opaque identifier used by the management API
    - short_code: Unique short code (3-20 characters)
    - destination_url: The long URL to redirect to
    - owner_id: Principal that owns the link, NULL for anonymous links
    - created_at / updated_at / expires_at: Epoch milliseconds
    - is_active: False means archived
    - click_count: Advisory counter, only ever incremented
    """
    __tablename__ = "links"

    id: str = Field(
        default_factory=new_id,
        sa_column=Column(String(32), primary_key=True)
    )
    short_code: str = Field(
        sa_column=Column(String(20), nullable=False, unique=True, index=True)
    )
    destination_url: str = Field(sa_column=Column(Text, nullable=False))
    owner_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True, index=True)
    )
    title: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))
    description: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: int = Field(
        default_factory=now_ms,
        sa_column=Column(BigInteger, nullable=False, index=True)
    )
    updated_at: int = Field(
        default_factory=now_ms,
        sa_column=Column(BigInteger, nullable=False)
    )
    expires_at: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger, nullable=True)
    )
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, default=True)
    )
    click_count: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0)
    )


# Short codes are unique regardless of case
Index("uq_links_short_code_lower", func.lower(Link.__table__.c.short_code), unique=True)


class ClickEvent(SQLModel, table=True):
    """
    Click event table for detailed analytics.

    One row per resolved click. Rows are never updated; they are removed by
    the retention cleanup or together with their link.
    """
    __tablename__ = "click_events"

    id: str = Field(
        default_factory=new_id,
        sa_column=Column(String(32), primary_key=True)
    )
    link_id: str = Field(
        sa_column=Column(
            String(32),
            ForeignKey("links.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    short_code: str = Field(sa_column=Column(String(20), nullable=False, index=True))
    clicked_at: int = Field(
        default_factory=now_ms,
        sa_column=Column(BigInteger, nullable=False, index=True)
    )
    ip_address: Optional[str] = Field(default=None, sa_column=Column(String(IP_ADDRESS_MAX_LENGTH), nullable=True))
    user_agent: Optional[str] = Field(default=None, sa_column=Column(String(USER_AGENT_MAX_LENGTH), nullable=True))
    referrer: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    country: Optional[str] = Field(default=None, sa_column=Column(String(COUNTRY_MAX_LENGTH), nullable=True))
    city: Optional[str] = Field(default=None, sa_column=Column(String(CITY_MAX_LENGTH), nullable=True))
    device_type: Optional[str] = Field(default=None, sa_column=Column(String(16), nullable=True))
    browser: Optional[str] = Field(default=None, sa_column=Column(String(16), nullable=True))
    os: Optional[str] = Field(default=None, sa_column=Column(String(16), nullable=True))
