"""Device-scoped preferences.

Typed access to the small set of values the app keeps on the device:
the onboarding flag and step, the cached profile fields, and the provider
of the last successful sign-in. Keys are not scoped per user: the id of
the account the values belong to is stored alongside them, and signing
out or signing in as another account clears all of them.
"""

import logging
from datetime import date

from familysync.domains.user.models import AuthProvider
from familysync.infra.storage import LocalStore

logger = logging.getLogger(__name__)

HAS_SEEN_ONBOARDING = "hasSeenOnboarding"
USER_NAME = "userName"
USER_BIRTHDAY = "userBirthday"
ONBOARDING_STEP = "onboardingStep"
AUTH_PROVIDER = "authProvider"
USER_ID = "userId"

ALL_KEYS = (
    HAS_SEEN_ONBOARDING,
    USER_NAME,
    USER_BIRTHDAY,
    ONBOARDING_STEP,
    AUTH_PROVIDER,
    USER_ID,
)


class LocalPreferences:
    """Typed facade over a LocalStore."""

    def __init__(self, store: LocalStore) -> None:
        self._store = store

    @property
    def store(self) -> LocalStore:
        return self._store

    # ============ Onboarding ============

    async def get_has_seen_onboarding(self) -> bool:
        return bool(await self._store.get(HAS_SEEN_ONBOARDING))

    async def set_has_seen_onboarding(self, value: bool) -> None:
        await self._store.set(HAS_SEEN_ONBOARDING, bool(value))

    async def get_onboarding_step(self) -> int | None:
        value = await self._store.get(ONBOARDING_STEP)
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            logger.warning(f"Ignoring malformed stored onboarding step: {value!r}")
            return None

    async def set_onboarding_step(self, step: int) -> None:
        await self._store.set(ONBOARDING_STEP, int(step))

    # ============ Cached Profile ============

    async def get_user_name(self) -> str | None:
        value = await self._store.get(USER_NAME)
        return value if isinstance(value, str) and value else None

    async def set_user_name(self, name: str) -> None:
        await self._store.set(USER_NAME, name)

    async def get_user_birthday(self) -> date | None:
        value = await self._store.get(USER_BIRTHDAY)
        if not value:
            return None
        try:
            return date.fromisoformat(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring malformed stored birthday: {value!r}")
            return None

    async def set_user_birthday(self, birthday: date) -> None:
        await self._store.set(USER_BIRTHDAY, birthday.isoformat())

    # ============ Sign-in ============

    async def get_auth_provider(self) -> AuthProvider:
        return AuthProvider.parse(await self._store.get(AUTH_PROVIDER))

    async def set_auth_provider(self, provider: AuthProvider) -> None:
        await self._store.set(AUTH_PROVIDER, provider.value)

    async def get_user_id(self) -> str | None:
        """Id of the account the cached values belong to."""
        value = await self._store.get(USER_ID)
        return value if isinstance(value, str) and value else None

    async def set_user_id(self, user_id: str) -> None:
        await self._store.set(USER_ID, user_id)

    async def clear(self) -> None:
        """Remove every preference."""
        await self._store.delete(*ALL_KEYS)
        logger.info("Cleared local preferences")
