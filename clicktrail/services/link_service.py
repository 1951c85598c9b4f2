"""
Link Directory Service

This service owns the mapping short_code -> destination record:
- Creating links with custom or generated short codes
- Looking links up for resolution and for the management API
- Updating, archiving and deleting links under the ownership rules
- Maintaining the advisory click counter

Design Decisions:
- Short codes are stored as given but checked for uniqueness case-insensitively
- Generated codes use an alphabet without look-alike characters (0/O, 1/l/I)
- Generation retries a few times on collision; running out of attempts is
  treated as a capacity/configuration problem, not a client error
- click_count is only ever changed with a database-level "+ 1"
"""

import logging
import secrets
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clicktrail.core.exceptions import (
    DatabaseError,
    InvalidShortCodeError,
    InvalidURLError,
    LinkNotFoundError,
    ShortCodeConflictError,
    ShortCodeExhaustedError,
    ValidationFailedError,
)
from clicktrail.core.setting import AnonymousLinkPolicy, settings
from clicktrail.core.timeutils import now_ms
from clicktrail.core.validators import (
    is_reserved_short_code,
    is_valid_short_code,
    is_valid_url,
)
from clicktrail.db.models import ClickEvent, Link
from clicktrail.services.ownership import ensure_allowed

logger = logging.getLogger(__name__)

SHORT_CODE_ALPHABET = "23456789abcdefghijkmnpqrstuvwxyzABCDEFGHJKLMNPQRSTUVWXYZ"

UPDATABLE_FIELDS = frozenset({"destination_url", "title", "description", "expires_at", "is_active"})


def generate_short_code(length: int = 6) -> str:
    """Random short code drawn from SHORT_CODE_ALPHABET."""
    return "".join(secrets.choice(SHORT_CODE_ALPHABET) for _ in range(length))


class LinkService:
    """
    Core business logic for links.

    Handles validation, code generation, ownership checks and database
    operations. Separated from the API layer for testability.
    """

    def __init__(
        self,
        session: AsyncSession,
        anonymous_policy: Optional[AnonymousLinkPolicy] = None,
        code_length: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ):
        """
        Initialize the link service.

        Args:
            session: Database session
            anonymous_policy: Rule for principals acting on unowned links
            code_length: Length of generated short codes
            max_attempts: Collision retries before giving up
        """
        self.session = session
        self.anonymous_policy = anonymous_policy or settings.ANONYMOUS_LINK_POLICY
        self.code_length = code_length or settings.SHORT_CODE_LENGTH
        self.max_attempts = max_attempts or settings.SHORT_CODE_MAX_ATTEMPTS

    async def short_code_exists(self, short_code: str) -> bool:
        """Case-insensitive existence check across active and archived links."""
        statement = (
            select(Link.id)
            .where(func.lower(Link.short_code) == short_code.lower())
            .limit(1)
        )
        result = await self.session.execute(statement)
        return result.first() is not None

    async def create_link(
        self,
        destination_url: str,
        short_code: Optional[str] = None,
        owner_id: Optional[str] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        expires_at: Optional[int] = None,
    ) -> Link:
        """
        Create a new link.

        Args:
            destination_url: Absolute http/https URL to redirect to
            short_code: Requested code, generated when None
            owner_id: Owning principal, None for anonymous links
            title: Optional display title
            description: Optional display description
            expires_at: Optional expiry in epoch milliseconds

        Returns:
            The stored Link

        Raises:
            InvalidURLError: If the destination is not an http/https URL
            InvalidShortCodeError: If the requested code has the wrong shape
            ShortCodeConflictError: If the requested code is taken
            ShortCodeExhaustedError: If generated codes kept colliding
            DatabaseError: If database operation fails
        """
        if not is_valid_url(destination_url):
            raise InvalidURLError(
                destination_url,
                reason="Invalid URL format. URL must be absolute and use http:// or https://"
            )

        now = now_ms()
        if expires_at is not None and expires_at <= now:
            raise ValidationFailedError("expires_at must be in the future")

        if short_code is not None:
            if not is_valid_short_code(short_code):
                raise InvalidShortCodeError(short_code)
            if is_reserved_short_code(short_code) or await self.short_code_exists(short_code):
                raise ShortCodeConflictError(short_code)
            link = self._build_link(short_code, destination_url, owner_id, title, description, expires_at, now)
            return await self._insert(link)

        for attempt in range(1, self.max_attempts + 1):
            candidate = generate_short_code(self.code_length)
            if is_reserved_short_code(candidate) or await self.short_code_exists(candidate):
                logger.warning(f"Generated short code collided (attempt {attempt}/{self.max_attempts})")
                continue
            link = self._build_link(candidate, destination_url, owner_id, title, description, expires_at, now)
            try:
                return await self._insert(link)
            except ShortCodeConflictError:
                logger.warning(f"Generated short code lost an insert race (attempt {attempt}/{self.max_attempts})")

        logger.error(f"Short code generation exhausted after {self.max_attempts} attempts")
        raise ShortCodeExhaustedError(self.max_attempts)

    @staticmethod
    def _build_link(
        short_code: str,
        destination_url: str,
        owner_id: Optional[str],
        title: Optional[str],
        description: Optional[str],
        expires_at: Optional[int],
        now: int,
    ) -> Link:
        return Link(
            short_code=short_code,
            destination_url=destination_url,
            owner_id=owner_id,
            title=title,
            description=description,
            created_at=now,
            updated_at=now,
            expires_at=expires_at,
            is_active=True,
            click_count=0,
        )

    async def _insert(self, link: Link) -> Link:
        try:
            self.session.add(link)
            await self.session.flush()
            await self.session.commit()
            return link
        except IntegrityError:
            # The unique index caught a concurrent insert of the same code
            await self.session.rollback()
            raise ShortCodeConflictError(link.short_code)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise DatabaseError(f"Failed to create link: {str(e)}", original_error=e)

    async def get_by_short_code(self, short_code: str) -> Optional[Link]:
        """
        Retrieve an active link by its exact short code.

        Archived links are invisible to this lookup.
        """
        statement = select(Link).where(
            Link.short_code == short_code,
            Link.is_active.is_(True),
        )
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def find_by_short_code(self, short_code: str) -> Optional[Link]:
        """Retrieve a link by its exact short code whether or not it is active."""
        statement = select(Link).where(Link.short_code == short_code)
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def get_by_id(self, link_id: str, principal_id: Optional[str] = None) -> Link:
        """
        Retrieve a link by id regardless of its active flag.

        Raises:
            LinkNotFoundError: If the id does not exist
            ForbiddenError: If the principal may not view the link
        """
        link = await self.session.get(Link, link_id)
        if link is None:
            raise LinkNotFoundError(link_id)
        ensure_allowed(link, principal_id, self.anonymous_policy)
        return link

    async def update_link(
        self,
        link_id: str,
        changes: Dict[str, Any],
        principal_id: Optional[str] = None,
    ) -> Link:
        """
        Apply a partial update.

        Only keys present in ``changes`` are touched; an explicit None for
        title, description or expires_at clears the field. The short code
        cannot be changed. updated_at is always bumped.

        Raises:
            LinkNotFoundError, ForbiddenError, InvalidURLError, ValidationFailedError
        """
        link = await self.get_by_id(link_id, principal_id)

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationFailedError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        if "destination_url" in changes:
            destination_url = changes["destination_url"]
            if not is_valid_url(destination_url):
                raise InvalidURLError(
                    destination_url,
                    reason="Invalid URL format. URL must be absolute and use http:// or https://"
                )
            link.destination_url = destination_url

        if "is_active" in changes:
            if changes["is_active"] is None:
                raise ValidationFailedError("is_active cannot be null")
            link.is_active = bool(changes["is_active"])

        for field in ("title", "description", "expires_at"):
            if field in changes:
                setattr(link, field, changes[field])

        link.updated_at = max(now_ms(), link.updated_at + 1)

        try:
            self.session.add(link)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise DatabaseError(f"Failed to update link: {str(e)}", original_error=e)
        return link

    async def delete_link(self, link_id: str, principal_id: Optional[str] = None) -> None:
        """
        Delete a link and its click events.

        Raises:
            LinkNotFoundError, ForbiddenError
        """
        link = await self.get_by_id(link_id, principal_id)
        try:
            await self.session.execute(delete(ClickEvent).where(ClickEvent.link_id == link.id))
            await self.session.delete(link)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise DatabaseError(f"Failed to delete link: {str(e)}", original_error=e)
        logger.info(f"Deleted link {link_id} ({link.short_code})")

    async def increment_click_count(self, link_id: str) -> None:
        """
        Increment the click counter atomically.

        Uses a database-level UPDATE so concurrent clicks never lose an
        increment. Commit is handled by the caller.
        """
        statement = (
            update(Link)
            .where(Link.id == link_id)
            .values(click_count=Link.click_count + 1)
        )
        await self.session.execute(statement)

    async def list_by_owner(
        self,
        owner_id: str,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Link], int]:
        """
        List an owner's links, newest first.

        Args:
            owner_id: Owning principal
            page: 1-indexed page number
            page_size: Links per page

        Returns:
            (links on the page, total number of links for the owner)
        """
        offset = (max(page, 1) - 1) * page_size
        statement = (
            select(Link)
            .where(Link.owner_id == owner_id)
            .order_by(Link.created_at.desc(), Link.id)
            .offset(offset)
            .limit(page_size)
        )
        result = await self.session.execute(statement)
        links = list(result.scalars().all())

        count_statement = select(func.count()).select_from(Link).where(Link.owner_id == owner_id)
        total = (await self.session.execute(count_statement)).scalar() or 0
        return links, total

    async def reconcile_click_count(self, link_id: str, principal_id: Optional[str] = None) -> int:
        """
        Repair the advisory counter from the click event log.

        The counter is raised to the number of recorded events when it has
        fallen behind; it is never lowered.

        Returns:
            The click_count after reconciliation
        """
        link = await self.get_by_id(link_id, principal_id)
        count_statement = select(func.count()).select_from(ClickEvent).where(ClickEvent.link_id == link.id)
        event_count = (await self.session.execute(count_statement)).scalar() or 0

        if event_count > link.click_count:
            await self.session.execute(
                update(Link)
                .where(Link.id == link.id, Link.click_count < event_count)
                .values(click_count=event_count)
            )
            await self.session.commit()
            logger.info(f"Reconciled click_count for {link.short_code}: {link.click_count} -> {event_count}")
            return event_count

        return link.click_count
