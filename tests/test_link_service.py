"""
Tests for the link directory service.
"""

import pytest
from sqlalchemy import select

from clicktrail.core.exceptions import (
    ForbiddenError,
    InvalidShortCodeError,
    InvalidURLError,
    LinkNotFoundError,
    ShortCodeConflictError,
    ShortCodeExhaustedError,
    ValidationFailedError,
)
from clicktrail.core.setting import AnonymousLinkPolicy
from clicktrail.core.timeutils import now_ms
from clicktrail.db.models import ClickEvent, Link
from clicktrail.services import link_service as link_service_module
from clicktrail.services.link_service import SHORT_CODE_ALPHABET, LinkService, generate_short_code

from tests.helpers import OTHER_USER, OWNER


class TestGenerateShortCode:
    def test_length_and_alphabet(self):
        code = generate_short_code(6)
        assert len(code) == 6
        assert set(code) <= set(SHORT_CODE_ALPHABET)

    def test_alphabet_has_no_look_alikes(self):
        for ch in "0O1lI":
            assert ch not in SHORT_CODE_ALPHABET


class TestCreateLink:
    async def test_create_with_custom_code(self, session):
        service = LinkService(session)
        link = await service.create_link("https://example.com/page", short_code="mycode", owner_id=OWNER)

        assert link.short_code == "mycode"
        assert link.destination_url == "https://example.com/page"
        assert link.owner_id == OWNER
        assert link.is_active is True
        assert link.click_count == 0
        assert link.created_at == link.updated_at

    async def test_destination_round_trips_exactly(self, session):
        url = "https://Example.com/Path/?q=1&x=%20y#frag"
        link = await LinkService(session).create_link(url)
        stored = await LinkService(session).find_by_short_code(link.short_code)
        assert stored.destination_url == url

    async def test_generated_codes_are_unique(self, session):
        service = LinkService(session)
        codes = set()
        for i in range(100):
            link = await service.create_link(f"https://example.com/{i}")
            assert len(link.short_code) == 6
            codes.add(link.short_code)
        assert len(codes) == 100

    @pytest.mark.parametrize("url", ["javascript:alert(1)", "ftp://example.com", "/relative", ""])
    async def test_rejects_invalid_destination(self, session, url):
        with pytest.raises(InvalidURLError):
            await LinkService(session).create_link(url)

    @pytest.mark.parametrize("code", ["", "ab", "has space", "x" * 21, "abc\n"])
    async def test_rejects_malformed_code(self, session, code):
        with pytest.raises(InvalidShortCodeError):
            await LinkService(session).create_link("https://example.com", short_code=code)

    async def test_conflict_is_case_insensitive(self, session):
        service = LinkService(session)
        await service.create_link("https://example.com", short_code="MyCode")
        with pytest.raises(ShortCodeConflictError):
            await service.create_link("https://example.org", short_code="mycode")

    async def test_case_variant_rejected_by_unique_index(self, session, monkeypatch):
        service = LinkService(session)
        await service.create_link("https://example.com", short_code="Race1")

        async def not_found(short_code):
            return False

        # Simulates a concurrent insert that passed the existence check
        monkeypatch.setattr(service, "short_code_exists", not_found)
        with pytest.raises(ShortCodeConflictError):
            await service.create_link("https://example.org", short_code="race1")

    async def test_conflict_with_archived_link(self, session):
        service = LinkService(session)
        link = await service.create_link("https://example.com", short_code="archived1")
        await service.update_link(link.id, {"is_active": False})
        with pytest.raises(ShortCodeConflictError):
            await service.create_link("https://example.org", short_code="archived1")

    async def test_reserved_code_conflicts(self, session):
        with pytest.raises(ShortCodeConflictError):
            await LinkService(session).create_link("https://example.com", short_code="health")

    async def test_past_expiry_rejected(self, session):
        with pytest.raises(ValidationFailedError):
            await LinkService(session).create_link("https://example.com", expires_at=now_ms() - 1000)

    async def test_generation_exhausted(self, session, monkeypatch):
        service = LinkService(session, max_attempts=3)
        await service.create_link("https://example.com", short_code="same00")
        monkeypatch.setattr(link_service_module, "generate_short_code", lambda length: "same00")

        with pytest.raises(ShortCodeExhaustedError) as exc_info:
            await service.create_link("https://example.org")
        assert exc_info.value.status_code == 500


class TestLookup:
    async def test_get_by_short_code_is_idempotent(self, session):
        service = LinkService(session)
        created = await service.create_link("https://example.com", short_code="stable")
        first = await service.get_by_short_code("stable")
        second = await service.get_by_short_code("stable")
        assert first.id == second.id == created.id

    async def test_archived_hidden_from_active_lookup(self, session):
        service = LinkService(session)
        link = await service.create_link("https://example.com", short_code="gone1")
        await service.update_link(link.id, {"is_active": False})

        assert await service.get_by_short_code("gone1") is None
        assert (await service.find_by_short_code("gone1")).id == link.id

    async def test_get_by_id_missing(self, session):
        with pytest.raises(LinkNotFoundError):
            await LinkService(session).get_by_id("does-not-exist")


class TestOwnership:
    async def test_other_principal_forbidden(self, session):
        service = LinkService(session)
        link = await service.create_link("https://example.com", owner_id=OWNER)

        with pytest.raises(ForbiddenError):
            await service.get_by_id(link.id, principal_id=OTHER_USER)
        with pytest.raises(ForbiddenError):
            await service.update_link(link.id, {"title": "x"}, principal_id=OTHER_USER)
        with pytest.raises(ForbiddenError):
            await service.delete_link(link.id, principal_id=OTHER_USER)

    async def test_unowned_link_policy(self, session):
        link = await LinkService(session).create_link("https://example.com")

        open_service = LinkService(session, anonymous_policy=AnonymousLinkPolicy.any_authenticated)
        assert (await open_service.get_by_id(link.id, principal_id=OTHER_USER)).id == link.id

        locked_service = LinkService(session, anonymous_policy=AnonymousLinkPolicy.locked)
        with pytest.raises(ForbiddenError):
            await locked_service.get_by_id(link.id, principal_id=OTHER_USER)


class TestUpdateAndDelete:
    async def test_partial_update_bumps_updated_at(self, session):
        service = LinkService(session)
        link = await service.create_link("https://example.com", short_code="upd1", title="Old", owner_id=OWNER)
        before = link.updated_at

        updated = await service.update_link(link.id, {"title": "New"}, principal_id=OWNER)

        assert updated.title == "New"
        assert updated.destination_url == "https://example.com"
        assert updated.updated_at > before

    async def test_update_validates_destination(self, session):
        service = LinkService(session)
        link = await service.create_link("https://example.com")
        with pytest.raises(InvalidURLError):
            await service.update_link(link.id, {"destination_url": "javascript:alert(1)"})

    async def test_short_code_cannot_be_changed(self, session):
        service = LinkService(session)
        link = await service.create_link("https://example.com")
        with pytest.raises(ValidationFailedError):
            await service.update_link(link.id, {"short_code": "newcode"})

    async def test_delete_removes_click_events(self, session):
        service = LinkService(session)
        link = await service.create_link("https://example.com", owner_id=OWNER)
        session.add(ClickEvent(link_id=link.id, short_code=link.short_code))
        await session.commit()

        await service.delete_link(link.id, principal_id=OWNER)

        assert (await session.execute(select(Link).where(Link.id == link.id))).first() is None
        assert (await session.execute(select(ClickEvent).where(ClickEvent.link_id == link.id))).first() is None


class TestCounters:
    async def test_increment_click_count(self, session):
        service = LinkService(session)
        link = await service.create_link("https://example.com")
        await service.increment_click_count(link.id)
        await service.increment_click_count(link.id)
        await session.commit()

        await session.refresh(link)
        assert link.click_count == 2

    async def test_reconcile_raises_counter_to_event_count(self, session):
        service = LinkService(session)
        link = await service.create_link("https://example.com")
        for _ in range(3):
            session.add(ClickEvent(link_id=link.id, short_code=link.short_code))
        await session.commit()

        assert await service.reconcile_click_count(link.id) == 3
        await session.refresh(link)
        assert link.click_count == 3

    async def test_reconcile_never_lowers_counter(self, session):
        service = LinkService(session)
        link = await service.create_link("https://example.com")
        await service.increment_click_count(link.id)
        await session.commit()
        await session.refresh(link)

        assert await service.reconcile_click_count(link.id) == 1


class TestListByOwner:
    async def test_pagination_newest_first(self, session):
        service = LinkService(session)
        created = []
        for i in range(5):
            link = await service.create_link(f"https://example.com/{i}", owner_id=OWNER)
            link.created_at = 1_700_000_000_000 + i
            session.add(link)
            created.append(link)
        await session.commit()
        await service.create_link("https://example.com/other", owner_id=OTHER_USER)

        page_one, total = await service.list_by_owner(OWNER, page=1, page_size=2)
        page_three, _ = await service.list_by_owner(OWNER, page=3, page_size=2)

        assert total == 5
        assert [link.id for link in page_one] == [created[4].id, created[3].id]
        assert [link.id for link in page_three] == [created[0].id]
