"""Generic async document repository.

This module provides a generic repository base class over one backend
collection, decoding stored documents into pydantic schemas.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from familysync.core.exceptions import DocumentNotFoundError
from familysync.infra.backend import Document, IdentityBackend, decode

# Type variable for the decoded document schema
SchemaType = TypeVar("SchemaType", bound=BaseModel)


class DocumentRepository(Generic[SchemaType]):
    """Generic async repository providing standard document operations.

    Type Parameters:
        SchemaType: The pydantic schema documents are decoded into

    Example:
        class FamilyRepository(DocumentRepository[Family]):
            def __init__(self, backend: IdentityBackend, database_id: str):
                super().__init__(Family, backend, database_id, "families")

            async def find_by_invite_code(self, code: str) -> Family | None:
                return await self.find_one(invite_code=code)
    """

    def __init__(
        self,
        schema: type[SchemaType],
        backend: IdentityBackend,
        database_id: str,
        collection_id: str,
    ) -> None:
        """Initialize the repository.

        Args:
            schema: The pydantic schema class
            backend: Identity & data backend
            database_id: Database holding the collection
            collection_id: Collection of this repository
        """
        self._schema = schema
        self._backend = backend
        self.database_id = database_id
        self.collection_id = collection_id

    @property
    def backend(self) -> IdentityBackend:
        """Get the backend."""
        return self._backend

    def _to_schema(self, document: Document) -> SchemaType:
        payload = {
            **document.data,
            "id": document.id,
            "created_at": document.created_at,
            "updated_at": document.updated_at,
            "permissions": document.permissions,
        }
        return decode(self._schema, payload)

    # ==================== CREATE Operations ====================

    async def create(
        self,
        document_id: str,
        fields: dict[str, Any],
        permissions: list[str] | None = None,
    ) -> SchemaType:
        """Create a new document.

        Args:
            document_id: Id of the new document
            fields: Stored attributes
            permissions: Optional access permissions

        Returns:
            The created document
        """
        document = await self._backend.create_document(
            self.database_id,
            self.collection_id,
            document_id,
            fields,
            permissions,
        )
        return self._to_schema(document)

    # ==================== READ Operations ====================

    async def get(self, document_id: str) -> SchemaType:
        """Get a document by id.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        document = await self._backend.get_document(
            self.database_id,
            self.collection_id,
            document_id,
        )
        return self._to_schema(document)

    async def get_by_id(self, document_id: str) -> SchemaType | None:
        """Get a document by id, or None if it does not exist."""
        try:
            return await self.get(document_id)
        except DocumentNotFoundError:
            return None

    async def find(self, **filters: Any) -> list[SchemaType]:
        """Find documents whose attributes equal the given values."""
        documents = await self._backend.list_documents(
            self.database_id,
            self.collection_id,
            filters,
        )
        return [self._to_schema(document) for document in documents]

    async def find_one(self, **filters: Any) -> SchemaType | None:
        """Find the first matching document."""
        results = await self.find(**filters)
        return results[0] if results else None

    # ==================== UPDATE Operations ====================

    async def update(
        self,
        document_id: str,
        fields: dict[str, Any],
        permissions: list[str] | None = None,
    ) -> SchemaType:
        """Update fields of a document.

        Args:
            document_id: Id of the document
            fields: Attributes to change
            permissions: Optional replacement permissions

        Returns:
            The updated document
        """
        document = await self._backend.update_document(
            self.database_id,
            self.collection_id,
            document_id,
            fields,
            permissions,
        )
        return self._to_schema(document)
