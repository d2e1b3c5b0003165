"""Family service for creating and joining families.

This module provides business logic for family management including:
- Creating a family with a unique invite code
- Joining a family by invite code
- Attaching members' profiles to their family
"""

import logging

from familysync.core.config import Settings, settings as default_settings
from familysync.core.exceptions import AlreadyMemberError, InvalidInviteCodeError, UnknownError
from familysync.domains.family.models import Family, FamilyCreate, truncate_member_id
from familysync.domains.family.repository import FamilyRepository
from familysync.domains.family.validators import (
    generate_invite_code,
    validate_family_name,
    validate_invite_code,
)
from familysync.domains.user.repository import UserProfileRepository
from familysync.infra.backend import (
    permission_delete,
    permission_read,
    permission_update,
)

logger = logging.getLogger(__name__)


def creator_permissions(user_id: str) -> list[str]:
    return [
        permission_read(user_id),
        permission_update(user_id),
        permission_delete(user_id),
    ]


class FamilyService:
    """Service for family operations.

    Permissions are granted to full account ids while the member list
    stores truncated ids.
    """

    def __init__(
        self,
        families: FamilyRepository,
        profiles: UserProfileRepository,
        config: Settings = default_settings,
    ) -> None:
        """Initialize with repositories."""
        self._families = families
        self._profiles = profiles
        self._settings = config

    async def _unused_invite_code(self) -> str:
        for _ in range(self._settings.INVITE_CODE_MAX_ATTEMPTS):
            code = generate_invite_code(self._settings.INVITE_CODE_LENGTH)
            if not await self._families.invite_code_exists(code):
                return code
            logger.warning("Generated invite code already in use, retrying")
        raise UnknownError("Could not generate a unique invite code")

    async def create_family(self, name: str, creator_id: str) -> Family:
        """Create a family and attach its creator to it.

        Args:
            name: Family name, trimmed to 2..50 characters
            creator_id: Backend account id of the creator

        Returns:
            The created Family

        Raises:
            ValidationFailedError: If the name is out of bounds
        """
        family_name = validate_family_name(name)
        invite_code = await self._unused_invite_code()

        data = FamilyCreate.for_creator(
            family_name,
            creator_id,
            invite_code,
            self._settings.MEMBER_ID_MAX_LENGTH,
        )
        family = await self._families.create_family(data, creator_permissions(creator_id))
        await self._profiles.update_family(creator_id, family.id)

        logger.info(f"User {creator_id} created family {family.id}")
        return family

    async def join_family(self, invite_code: str, user_id: str) -> Family:
        """Join the family an invite code belongs to.

        Args:
            invite_code: Code shared by a member, any case
            user_id: Backend account id of the joining user

        Returns:
            The updated Family

        Raises:
            ValidationFailedError: If the code is malformed
            InvalidInviteCodeError: If no family uses the code
            AlreadyMemberError: If the user is already a member
        """
        code = validate_invite_code(invite_code)

        family = await self._families.find_by_invite_code(code)
        if family is None:
            raise InvalidInviteCodeError()

        max_length = self._settings.MEMBER_ID_MAX_LENGTH
        if family.is_member(user_id, max_length):
            raise AlreadyMemberError()

        members = [*family.members, truncate_member_id(user_id, max_length)]
        permissions = list(family.permissions)
        if permission_read(user_id) not in permissions:
            permissions.append(permission_read(user_id))

        updated = await self._families.update_members(family.id, members, permissions)
        await self._profiles.update_family(user_id, updated.id)

        logger.info(f"User {user_id} joined family {updated.id}")
        return updated

    async def get_family(self, family_id: str) -> Family | None:
        """Get a family by id, or None if it does not exist."""
        return await self._families.get_by_id(family_id)
