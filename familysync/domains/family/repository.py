"""Family repository."""

from familysync.core.config import settings
from familysync.domains.family.models import Family, FamilyCreate
from familysync.domains.shared.repository import DocumentRepository
from familysync.infra.backend import IdentityBackend


class FamilyRepository(DocumentRepository[Family]):
    """Repository for family documents."""

    def __init__(
        self,
        backend: IdentityBackend,
        database_id: str | None = None,
        collection_id: str | None = None,
    ) -> None:
        super().__init__(
            Family,
            backend,
            database_id if database_id is not None else settings.DATABASE_ID,
            collection_id or settings.FAMILIES_COLLECTION_ID,
        )

    async def create_family(self, data: FamilyCreate, permissions: list[str]) -> Family:
        """Create a family document whose id is its ``families_id``."""
        return await self.create(data.families_id, data.model_dump(), permissions)

    async def find_by_invite_code(self, invite_code: str) -> Family | None:
        return await self.find_one(invite_code=invite_code)

    async def invite_code_exists(self, invite_code: str) -> bool:
        return await self.find_by_invite_code(invite_code) is not None

    async def update_members(
        self,
        family_id: str,
        members: list[str],
        permissions: list[str],
    ) -> Family:
        return await self.update(family_id, {"members": members}, permissions)
