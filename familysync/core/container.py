"""Service wiring.

One container is built per process (or per test) and holds the single
coordinator and state machine instances.
"""

import logging
from dataclasses import dataclass

from familysync.core.config import Settings, settings as default_settings
from familysync.domains.family.repository import FamilyRepository
from familysync.domains.family.services.family_service import FamilyService
from familysync.domains.user.preferences import LocalPreferences
from familysync.domains.user.repository import UserProfileRepository
from familysync.domains.user.services.auth_service import IdentityCoordinator
from familysync.domains.user.services.onboarding_service import OnboardingStateMachine
from familysync.domains.user.social_auth import SocialCredentialResolver
from familysync.infra.backend import IdentityBackend
from familysync.infra.storage import LocalStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Process-wide services."""

    backend: IdentityBackend
    store: LocalStore
    preferences: LocalPreferences
    profiles: UserProfileRepository
    families: FamilyRepository
    family_service: FamilyService
    coordinator: IdentityCoordinator
    onboarding: OnboardingStateMachine
    resolver: SocialCredentialResolver

    @classmethod
    def build(
        cls,
        backend: IdentityBackend,
        store: LocalStore,
        resolver: SocialCredentialResolver | None = None,
        config: Settings = default_settings,
    ) -> "ServiceContainer":
        """Wire every service around a backend and a local store."""
        preferences = LocalPreferences(store)
        profiles = UserProfileRepository(backend, config.DATABASE_ID, config.USERS_COLLECTION_ID)
        families = FamilyRepository(backend, config.DATABASE_ID, config.FAMILIES_COLLECTION_ID)
        family_service = FamilyService(families, profiles, config)
        coordinator = IdentityCoordinator(backend, profiles, preferences)
        onboarding = OnboardingStateMachine(coordinator, family_service, profiles, preferences)

        return cls(
            backend=backend,
            store=store,
            preferences=preferences,
            profiles=profiles,
            families=families,
            family_service=family_service,
            coordinator=coordinator,
            onboarding=onboarding,
            resolver=resolver or SocialCredentialResolver(config),
        )

    async def start(self) -> None:
        """Restore persisted onboarding progress, then the backend session."""
        await self.onboarding.load()
        await self.coordinator.check_existing_session()

    async def close(self) -> None:
        await self.resolver.close()
        await self.backend.close()
        await self.store.close()
        logger.info("Services closed")
