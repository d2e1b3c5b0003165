"""User profile repository.

Profile documents share their id with the backend account they describe.
"""

import logging

from familysync.core.config import settings
from familysync.core.exceptions import DuplicateAccountError
from familysync.domains.shared.repository import DocumentRepository
from familysync.domains.user.models import ProfileUpdate, UserProfile
from familysync.infra.backend import IdentityBackend, permission_read, permission_update

logger = logging.getLogger(__name__)


class UserProfileRepository(DocumentRepository[UserProfile]):
    """Repository for user profile documents."""

    def __init__(
        self,
        backend: IdentityBackend,
        database_id: str | None = None,
        collection_id: str | None = None,
    ) -> None:
        super().__init__(
            UserProfile,
            backend,
            database_id if database_id is not None else settings.DATABASE_ID,
            collection_id or settings.USERS_COLLECTION_ID,
        )

    async def get_profile(self, user_id: str) -> UserProfile | None:
        """Get the profile of a user, or None if it was never created."""
        return await self.get_by_id(user_id)

    async def create_profile(self, user_id: str) -> UserProfile:
        """Create an empty profile owned by the user."""
        return await self.create(
            user_id,
            {"user_id": user_id},
            permissions=[permission_read(user_id), permission_update(user_id)],
        )

    async def ensure_user_exists(self, user_id: str) -> UserProfile:
        """Get the profile of a user, creating it on first authentication.

        Args:
            user_id: Backend account id

        Returns:
            The existing or newly created profile
        """
        profile = await self.get_profile(user_id)
        if profile is not None:
            return profile

        try:
            profile = await self.create_profile(user_id)
        except DuplicateAccountError:
            # Created concurrently by another device
            return await self.get(user_id)

        logger.info(f"Created profile document for user {user_id}")
        return profile

    async def update_family(self, user_id: str, family_id: str) -> UserProfile:
        """Attach the user to a family."""
        return await self.update(user_id, {"family_id": family_id})

    async def update_profile(self, user_id: str, data: ProfileUpdate) -> UserProfile:
        """Write the profile setup fields."""
        return await self.update(user_id, data.to_fields())
