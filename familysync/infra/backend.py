"""Identity & Data Backend contract.

The coordinator and the repositories only talk to this abstract interface.
Payloads crossing the boundary are decoded into typed pydantic models;
a payload that does not match raises ``DeserializationError`` instead of
silently defaulting missing fields.
"""

from abc import ABC, abstractmethod
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from familysync.core.exceptions import DeserializationError

ModelType = TypeVar("ModelType", bound=BaseModel)

CURRENT_SESSION = "current"


class Account(BaseModel):
    """Backend account (the authenticated principal)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="$id")
    email: str = ""
    name: str = ""
    registration: str | None = None


class Session(BaseModel):
    """Backend session created for an account."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="$id")
    user_id: str = Field(..., alias="userId")
    provider: str = "email"
    expire: str | None = None


class Document(BaseModel):
    """Generic stored document.

    System attributes are kept apart from the user-defined ``data``.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="$id")
    collection_id: str = Field("", alias="$collectionId")
    database_id: str = Field("", alias="$databaseId")
    created_at: str = Field("", alias="$createdAt")
    updated_at: str = Field("", alias="$updatedAt")
    permissions: list[str] = Field(default_factory=list, alias="$permissions")
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Document":
        """Split a raw document payload into system attributes and data."""
        system = {k: v for k, v in payload.items() if k.startswith("$")}
        data = {k: v for k, v in payload.items() if not k.startswith("$")}
        return decode(cls, {**system, "data": data})


def decode(model: type[ModelType], payload: Any) -> ModelType:
    """Validate a raw payload against a schema.

    Args:
        model: The pydantic model to decode into
        payload: The raw payload

    Returns:
        The decoded model

    Raises:
        DeserializationError: If the payload does not match the schema
    """
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise DeserializationError(
            f"Invalid {model.__name__} payload: {e.error_count()} error(s)"
        ) from e


def permission_read(user_id: str) -> str:
    return f'read("user:{user_id}")'


def permission_update(user_id: str) -> str:
    return f'update("user:{user_id}")'


def permission_delete(user_id: str) -> str:
    return f'delete("user:{user_id}")'


class IdentityBackend(ABC):
    """Minimal contract of an auth + document backend."""

    @abstractmethod
    async def create_account(
        self,
        account_id: str,
        email: str,
        secret: str,
        display_name: str | None = None,
    ) -> Account:
        """Create an account.

        Raises:
            DuplicateAccountError: If the id or email is taken
            InvalidArgumentError: If the backend rejects the payload
        """

    @abstractmethod
    async def create_session(self, email: str, secret: str) -> Session:
        """Create an email/secret session.

        Raises:
            InvalidCredentialsError: If the pair does not match an account
        """

    @abstractmethod
    async def delete_session(self, session_id: str = CURRENT_SESSION) -> None:
        """Delete a session (the current one by default)."""

    @abstractmethod
    async def get_current_account(self) -> Account:
        """Get the account of the current session.

        Raises:
            NoSessionError: If there is no current session
        """

    @abstractmethod
    async def get_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
    ) -> Document:
        """Get a document.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """

    @abstractmethod
    async def create_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        fields: dict[str, Any],
        permissions: list[str] | None = None,
    ) -> Document:
        """Create a document."""

    @abstractmethod
    async def update_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        fields: dict[str, Any],
        permissions: list[str] | None = None,
    ) -> Document:
        """Update fields (and optionally permissions) of a document."""

    @abstractmethod
    async def list_documents(
        self,
        database_id: str,
        collection_id: str,
        filters: dict[str, Any] | None = None,
    ) -> list[Document]:
        """List documents whose attributes equal the given filters."""

    async def close(self) -> None:
        """Release transport resources."""
