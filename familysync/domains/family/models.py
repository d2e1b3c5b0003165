"""Models for the Family domain."""

import uuid

from pydantic import BaseModel, Field


def truncate_member_id(user_id: str, max_length: int = 32) -> str:
    """Member ids are stored truncated to the collection attribute size."""
    return user_id[:max_length]


class Family(BaseModel):
    """Family document.

    Attributes:
        id: Document id, referenced by the members' profiles
        families_id: Secondary unique id stored in the document
        name: Display name
        creator_id: Truncated id of the creating user
        members: Truncated ids of all members, creator first
        invite_code: Code other users join with
        permissions: Access permissions of the document
    """

    id: str
    families_id: str
    name: str
    creator_id: str
    members: list[str] = Field(default_factory=list)
    invite_code: str
    created_at: str = ""
    updated_at: str = ""
    permissions: list[str] = Field(default_factory=list)

    def is_member(self, user_id: str, max_length: int = 32) -> bool:
        return truncate_member_id(user_id, max_length) in self.members


class FamilyCreate(BaseModel):
    """Stored attributes of a new family."""

    families_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str = Field(..., min_length=1)
    creator_id: str
    members: list[str]
    invite_code: str

    @classmethod
    def for_creator(
        cls,
        name: str,
        creator_id: str,
        invite_code: str,
        max_member_id_length: int = 32,
    ) -> "FamilyCreate":
        """Build a family whose only member is its creator."""
        member_id = truncate_member_id(creator_id, max_member_id_length)
        return cls(
            name=name,
            creator_id=member_id,
            members=[member_id],
            invite_code=invite_code,
        )
