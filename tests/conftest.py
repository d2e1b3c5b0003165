"""Shared test fixtures.

Services are wired around an in-memory backend that behaves like the
identity & data backend: accounts keyed by email and secret, one current
session, and documents with permissions.
"""

import uuid
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock

import pytest

from familysync.core.config import settings
from familysync.core.container import ServiceContainer
from familysync.core.exceptions import (
    BackendRateLimitedError,
    DocumentNotFoundError,
    DuplicateAccountError,
    InvalidCredentialsError,
    NoSessionError,
)
from familysync.domains.family.repository import FamilyRepository
from familysync.domains.family.services.family_service import FamilyService
from familysync.domains.user.preferences import LocalPreferences
from familysync.domains.user.repository import UserProfileRepository
from familysync.domains.user.services.auth_service import IdentityCoordinator
from familysync.domains.user.services.onboarding_service import OnboardingStateMachine
from familysync.domains.user.social_auth import SocialCredentialResolver
from familysync.infra.backend import (
    CURRENT_SESSION,
    Account,
    Document,
    IdentityBackend,
    Session,
)
from familysync.infra.storage import JsonFileStore


class InMemoryBackend(IdentityBackend):
    """Identity & data backend kept in dictionaries."""

    def __init__(self) -> None:
        self.accounts: dict[str, dict[str, Any]] = {}
        self.current_account_id: str | None = None
        self.collections: dict[tuple[str, str], dict[str, dict[str, Any]]] = defaultdict(dict)
        self.calls: list[str] = []
        self.rate_limited = False

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def _check_rate_limit(self) -> None:
        if self.rate_limited:
            raise BackendRateLimitedError("Rate limit for the current endpoint has been exceeded", 429)

    async def create_account(
        self,
        account_id: str,
        email: str,
        secret: str,
        display_name: str | None = None,
    ) -> Account:
        self.calls.append("create_account")
        self._check_rate_limit()
        if account_id in self.accounts or any(a["email"] == email for a in self.accounts.values()):
            raise DuplicateAccountError("A user with the same id or email already exists", 409)
        self.accounts[account_id] = {
            "email": email,
            "secret": secret,
            "name": display_name or "",
        }
        return Account(id=account_id, email=email, name=display_name or "")

    async def create_session(self, email: str, secret: str) -> Session:
        self.calls.append("create_session")
        self._check_rate_limit()
        for account_id, account in self.accounts.items():
            if account["email"] == email and account["secret"] == secret:
                self.current_account_id = account_id
                return Session(id=uuid.uuid4().hex, user_id=account_id)
        raise InvalidCredentialsError("Invalid credentials", 401)

    async def delete_session(self, session_id: str = CURRENT_SESSION) -> None:
        self.calls.append("delete_session")
        if self.current_account_id is None:
            raise NoSessionError("No session", 401)
        self.current_account_id = None

    async def get_current_account(self) -> Account:
        self.calls.append("get_current_account")
        if self.current_account_id is None:
            raise NoSessionError("No session", 401)
        account = self.accounts[self.current_account_id]
        return Account(id=self.current_account_id, email=account["email"], name=account["name"])

    async def get_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
    ) -> Document:
        stored = self.collections[(database_id, collection_id)].get(document_id)
        if stored is None:
            raise DocumentNotFoundError("Document not found", 404)
        return Document.from_payload(dict(stored))

    async def create_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        fields: dict[str, Any],
        permissions: list[str] | None = None,
    ) -> Document:
        collection = self.collections[(database_id, collection_id)]
        if document_id in collection:
            raise DuplicateAccountError("Document already exists", 409)
        now = self._now()
        collection[document_id] = {
            "$id": document_id,
            "$collectionId": collection_id,
            "$databaseId": database_id,
            "$createdAt": now,
            "$updatedAt": now,
            "$permissions": list(permissions or []),
            **fields,
        }
        return Document.from_payload(dict(collection[document_id]))

    async def update_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        fields: dict[str, Any],
        permissions: list[str] | None = None,
    ) -> Document:
        collection = self.collections[(database_id, collection_id)]
        if document_id not in collection:
            raise DocumentNotFoundError("Document not found", 404)
        collection[document_id].update(fields)
        collection[document_id]["$updatedAt"] = self._now()
        if permissions is not None:
            collection[document_id]["$permissions"] = list(permissions)
        return Document.from_payload(dict(collection[document_id]))

    async def list_documents(
        self,
        database_id: str,
        collection_id: str,
        filters: dict[str, Any] | None = None,
    ) -> list[Document]:
        collection = self.collections[(database_id, collection_id)]
        return [
            Document.from_payload(dict(stored))
            for stored in collection.values()
            if all(stored.get(key) == value for key, value in (filters or {}).items())
        ]

    # ============ Test helpers ============

    def users(self) -> dict[str, dict[str, Any]]:
        return self.collections[(settings.DATABASE_ID, settings.USERS_COLLECTION_ID)]

    def families(self) -> dict[str, dict[str, Any]]:
        return self.collections[(settings.DATABASE_ID, settings.FAMILIES_COLLECTION_ID)]


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def store(tmp_path) -> JsonFileStore:
    return JsonFileStore(tmp_path / "preferences.json")


@pytest.fixture
def preferences(store) -> LocalPreferences:
    return LocalPreferences(store)


@pytest.fixture
def profiles(backend) -> UserProfileRepository:
    return UserProfileRepository(backend)


@pytest.fixture
def family_repository(backend) -> FamilyRepository:
    return FamilyRepository(backend)


@pytest.fixture
def family_service(family_repository, profiles) -> FamilyService:
    return FamilyService(family_repository, profiles)


@pytest.fixture
def coordinator(backend, profiles, preferences) -> IdentityCoordinator:
    return IdentityCoordinator(backend, profiles, preferences)


@pytest.fixture
def machine(coordinator, family_service, profiles, preferences) -> OnboardingStateMachine:
    return OnboardingStateMachine(coordinator, family_service, profiles, preferences)


@pytest.fixture
def resolver() -> AsyncMock:
    return AsyncMock(spec=SocialCredentialResolver)


@pytest.fixture
def container(backend, store, resolver) -> ServiceContainer:
    return ServiceContainer.build(backend=backend, store=store, resolver=resolver)
