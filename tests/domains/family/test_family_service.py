"""
Tests for family creation and joining.
"""

from unittest.mock import patch

import pytest

from familysync.core.exceptions import (
    AlreadyMemberError,
    InvalidInviteCodeError,
    UnknownError,
    ValidationFailedError,
)
from familysync.domains.family.services.family_service import FamilyService
from familysync.domains.user.identity import derive_stable_user_id
from familysync.infra.backend import permission_delete, permission_read, permission_update

CREATOR_ID = derive_stable_user_id("creator")
JOINER_ID = derive_stable_user_id("joiner")


class TestCreateFamily:
    """Tests for FamilyService.create_family."""

    @pytest.mark.asyncio
    async def test_creates_family_with_creator(self, family_service, profiles, backend):
        """The creator is the first member and gets full permissions."""
        await profiles.ensure_user_exists(CREATOR_ID)

        family = await family_service.create_family("  The Smiths ", CREATOR_ID)

        assert family.name == "The Smiths"
        assert family.creator_id == CREATOR_ID[:32]
        assert family.members == [CREATOR_ID[:32]]
        assert family.creator_id in family.members
        assert family.id == family.families_id
        assert set(family.permissions) == {
            permission_read(CREATOR_ID),
            permission_update(CREATOR_ID),
            permission_delete(CREATOR_ID),
        }

        profile = await profiles.get_profile(CREATOR_ID)
        assert profile.family_id == family.id

    @pytest.mark.asyncio
    async def test_invalid_name_never_reaches_backend(self, family_service, backend):
        """Validation happens before any backend call."""
        with pytest.raises(ValidationFailedError):
            await family_service.create_family("A", CREATOR_ID)

        assert backend.families() == {}

    @pytest.mark.asyncio
    async def test_invite_code_collision_retries(self, family_service, profiles, backend):
        """A code already in use is regenerated."""
        await profiles.ensure_user_exists(CREATOR_ID)
        first = await family_service.create_family("First", CREATOR_ID)
        codes = iter([first.invite_code, "ZZZZZZZZZZZZZZZZ-ABC"])

        with patch(
            "familysync.domains.family.services.family_service.generate_invite_code",
            side_effect=lambda *args: next(codes),
        ):
            second = await family_service.create_family("Second", CREATOR_ID)

        assert second.invite_code == "ZZZZZZZZZZZZZZZZ-ABC"

    @pytest.mark.asyncio
    async def test_invite_code_attempts_are_bounded(self, family_service, profiles):
        """Generation gives up after the configured number of attempts."""
        await profiles.ensure_user_exists(CREATOR_ID)
        first = await family_service.create_family("First", CREATOR_ID)

        with patch(
            "familysync.domains.family.services.family_service.generate_invite_code",
            return_value=first.invite_code,
        ):
            with pytest.raises(UnknownError):
                await family_service.create_family("Second", CREATOR_ID)


class TestJoinFamily:
    """Tests for FamilyService.join_family."""

    @pytest.mark.asyncio
    async def test_join_appends_member(self, family_service, profiles):
        """The joiner is appended and can read the family."""
        await profiles.ensure_user_exists(CREATOR_ID)
        await profiles.ensure_user_exists(JOINER_ID)
        family = await family_service.create_family("Smiths", CREATOR_ID)

        joined = await family_service.join_family(family.invite_code.lower(), JOINER_ID)

        assert joined.members == [CREATOR_ID[:32], JOINER_ID[:32]]
        assert permission_read(JOINER_ID) in joined.permissions
        assert permission_update(CREATOR_ID) in joined.permissions

        profile = await profiles.get_profile(JOINER_ID)
        assert profile.family_id == family.id

    @pytest.mark.asyncio
    async def test_unknown_code(self, family_service, backend):
        """A lookup miss raises InvalidInviteCodeError."""
        with pytest.raises(InvalidInviteCodeError):
            await family_service.join_family("ABCD1234ABCD1234-S4X9K0", JOINER_ID)

    @pytest.mark.asyncio
    async def test_already_member(self, family_service, profiles):
        """Joining twice raises AlreadyMemberError."""
        await profiles.ensure_user_exists(CREATOR_ID)
        family = await family_service.create_family("Smiths", CREATOR_ID)

        with pytest.raises(AlreadyMemberError):
            await family_service.join_family(family.invite_code, CREATOR_ID)

    @pytest.mark.asyncio
    async def test_malformed_code(self, family_service, backend):
        """Malformed codes fail validation."""
        with pytest.raises(ValidationFailedError):
            await family_service.join_family("ABCD1234", JOINER_ID)


class TestGetFamily:
    """Tests for FamilyService.get_family."""

    @pytest.mark.asyncio
    async def test_missing_family(self, family_service):
        assert await family_service.get_family("nope") is None

    @pytest.mark.asyncio
    async def test_existing_family(self, family_service, profiles):
        await profiles.ensure_user_exists(CREATOR_ID)
        family = await family_service.create_family("Smiths", CREATOR_ID)

        fetched = await family_service.get_family(family.id)

        assert fetched == family

    def test_is_constructed_with_repositories(self, family_repository, profiles):
        service = FamilyService(family_repository, profiles)
        assert isinstance(service, FamilyService)
