"""Identity coordinator for federated sign-in.

This module turns federated credentials into backend sessions and owns
the provider-agnostic authentication state:
- Deriving backend credentials from a provider handle
- Login-or-create against the backend
- Session check on process start
- Sign-out with local data clearing
- State fan-out to observers

All state mutation happens on the event loop driving the coordinator.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

from familysync.core.exceptions import (
    AuthenticationFailedError,
    BackendError,
    BackendRateLimitedError,
    DuplicateAccountError,
    FamilySyncError,
    NoSessionError,
    RateLimitedError,
    StorageError,
    ValidationFailedError,
)
from familysync.domains.user.identity import DerivedIdentity, FederatedCredential, derive_identity
from familysync.domains.user.models import AuthProvider, AuthState, UserRef
from familysync.domains.user.preferences import LocalPreferences
from familysync.domains.user.repository import UserProfileRepository
from familysync.infra.backend import Account, IdentityBackend

logger = logging.getLogger(__name__)

AuthListener = Callable[[AuthState], Awaitable[None] | None]


class IdentityCoordinator:
    """Coordinates federated sign-in against the identity backend.

    One coordinator exists per process; observers subscribe with
    ``add_listener`` and receive every new AuthState snapshot.

    Example:
        coordinator = IdentityCoordinator(backend, profiles, preferences)
        await coordinator.check_existing_session()
        state = await coordinator.sign_in(AuthProvider.APPLE, credential)
    """

    def __init__(
        self,
        backend: IdentityBackend,
        profiles: UserProfileRepository,
        preferences: LocalPreferences,
    ) -> None:
        """Initialize with backend and local storage."""
        self._backend = backend
        self._profiles = profiles
        self._preferences = preferences
        self._state = AuthState.signed_out()
        self._listeners: list[AuthListener] = []
        self._sign_in_lock = asyncio.Lock()
        # Bumped by every operation that invalidates an in-flight sign-in
        self._generation = 0

    # ============ State ============

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    @property
    def current_user_id(self) -> str | None:
        user = self._state.current_user
        return user.user_id if user else None

    @property
    def sign_in_in_progress(self) -> bool:
        return self._sign_in_lock.locked()

    def add_listener(self, listener: AuthListener) -> None:
        """Subscribe to AuthState changes (sync or async callables)."""
        self._listeners.append(listener)

    def remove_listener(self, listener: AuthListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _publish(self, state: AuthState) -> AuthState:
        self._state = state
        for listener in list(self._listeners):
            try:
                result = listener(state)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Auth state listener failed")
        return self._state

    async def _update(self, **changes: object) -> AuthState:
        return await self._publish(self._state.model_copy(update=changes))

    async def _sign_in_failed(self, provider: AuthProvider, error: FamilySyncError) -> None:
        logger.warning(f"Sign-in with {provider.value} failed: {error.detail}")
        await self._update(
            is_loading=False,
            last_error=error.kind,
            error_message=error.detail,
        )

    async def clear_error(self) -> AuthState:
        """Clear the last error."""
        return await self._update(last_error=None, error_message=None)

    # ============ Sign In ============

    async def sign_in(
        self,
        provider: AuthProvider,
        credential: FederatedCredential,
        stable_email: str | None = None,
    ) -> AuthState:
        """Sign in with a federated credential.

        Logs into the account derived from the credential handle and creates
        it on first sign-in. A request made while another sign-in is in
        flight is ignored and the current state is returned.

        Args:
            provider: Provider the credential comes from
            credential: Federated credential with a provider-unique handle
            stable_email: Email known to be stable for this user, used to
                derive the account id instead of the handle

        Returns:
            The authenticated AuthState

        Raises:
            ValidationFailedError: If the provider or handle is missing
            RateLimitedError: If the backend refused for too many attempts
            AuthenticationFailedError: If the backend rejected the sign-in
        """
        if provider == AuthProvider.NONE:
            raise ValidationFailedError("provider", "A sign-in provider is required")
        if not credential.handle or not credential.handle.strip():
            raise ValidationFailedError("handle", "The provider did not return a user identifier")

        if self._sign_in_lock.locked():
            logger.info("Sign-in already in progress, ignoring request")
            return self._state

        async with self._sign_in_lock:
            self._generation += 1
            generation = self._generation
            previous_user_id = self.current_user_id
            await self._update(is_loading=True, last_error=None, error_message=None)

            identity = derive_identity(credential, stable_email)
            logger.info(f"Signing in with {provider.value} as {identity.stable_user_id}")

            try:
                account = await self._authenticate(identity)
            except FamilySyncError as e:
                if generation != self._generation:
                    logger.info("Discarding stale sign-in failure")
                    return self._state
                if isinstance(e, (RateLimitedError, AuthenticationFailedError)):
                    await self._sign_in_failed(provider, e)
                    raise
                error = AuthenticationFailedError(e.detail)
                await self._sign_in_failed(provider, error)
                raise error from e

            if generation != self._generation:
                logger.info("Discarding stale sign-in completion")
                await self._delete_session_quietly()
                return self._state

            await self._forget_other_user(account.id, previous_user_id)
            await self._after_sign_in(account, provider)

            if generation != self._generation:
                logger.info("Discarding stale sign-in completion")
                return self._state

            logger.info(f"Signed in user {account.id} with {provider.value}")
            return await self._publish(
                AuthState(
                    is_authenticated=True,
                    current_user=UserRef(user_id=account.id, email=account.email, name=account.name),
                    current_provider=provider,
                )
            )

    async def _authenticate(self, identity: DerivedIdentity) -> Account:
        """Login with the derived identity, creating the account if needed."""
        await self._delete_session_quietly()

        try:
            await self._create_session(identity)
        except RateLimitedError:
            raise
        except BackendError as e:
            # A failed login means the account does not exist yet
            logger.info(f"Login failed ({e.detail}), creating account {identity.stable_user_id}")
            await self._create_account(identity)
            await self._create_session(identity)

        try:
            return await self._backend.get_current_account()
        except FamilySyncError:
            await self._delete_session_quietly()
            raise

    async def _create_session(self, identity: DerivedIdentity) -> None:
        try:
            await self._backend.create_session(identity.email, identity.secret)
        except BackendRateLimitedError as e:
            raise RateLimitedError() from e

    async def _create_account(self, identity: DerivedIdentity) -> None:
        try:
            await self._backend.create_account(
                identity.stable_user_id,
                identity.email,
                identity.secret,
                identity.display_name,
            )
        except BackendRateLimitedError as e:
            raise RateLimitedError() from e
        except DuplicateAccountError as e:
            raise AuthenticationFailedError(
                "An account already exists for this identity but could not be signed in"
            ) from e
        except BackendError as e:
            raise AuthenticationFailedError(e.detail) from e

    async def _forget_other_user(self, user_id: str, previous_user_id: str | None) -> None:
        """Clear data cached on the device for another account."""
        try:
            owner_id = await self._preferences.get_user_id()
        except StorageError as e:
            logger.warning(f"Could not read the cached data owner: {e.detail}")
            owner_id = None

        other = {previous_user_id, owner_id} - {None, user_id}
        if not other:
            return

        logger.info(f"Clearing local data cached for another user before signing in {user_id}")
        try:
            await self._preferences.clear()
        except StorageError as e:
            logger.warning(f"Could not clear local data: {e.detail}")

    async def _after_sign_in(self, account: Account, provider: AuthProvider) -> None:
        try:
            await self._profiles.ensure_user_exists(account.id)
        except FamilySyncError as e:
            logger.warning(f"Could not ensure profile for user {account.id}: {e.detail}")

        try:
            await self._preferences.set_user_id(account.id)
            await self._preferences.set_auth_provider(provider)
        except StorageError as e:
            logger.warning(f"Could not persist sign-in details: {e.detail}")

    async def _delete_session_quietly(self) -> None:
        try:
            await self._backend.delete_session()
        except FamilySyncError as e:
            logger.debug(f"No session to clear: {e.detail}")

    # ============ Sign Out ============

    async def sign_out(self) -> AuthState:
        """Sign out and clear all local data.

        The local data is cleared and the state reset even when the backend
        call fails; the failure is raised afterwards.

        Raises:
            BackendError: If the backend session could not be deleted
        """
        self._generation += 1
        await self._update(is_loading=True)

        error: FamilySyncError | None = None
        try:
            await self._backend.delete_session()
        except NoSessionError:
            logger.debug("Sign-out without a backend session")
        except FamilySyncError as e:
            logger.warning(f"Backend sign-out failed: {e.detail}")
            error = e

        try:
            await self._preferences.clear()
        finally:
            state = AuthState.signed_out()
            if error is not None:
                state = state.model_copy(
                    update={"last_error": error.kind, "error_message": error.detail}
                )
            await self._publish(state)

        if error is not None:
            raise error

        logger.info("Signed out")
        return self._state

    # ============ Session ============

    async def check_existing_session(self) -> AuthState:
        """Restore the authentication state from the backend session.

        Never raises: an absent or failed session check leaves the
        coordinator unauthenticated without an error.
        """
        await self._update(is_loading=True)

        try:
            account = await self._backend.get_current_account()
        except NoSessionError:
            logger.info("No existing session")
            return await self._publish(AuthState.signed_out())
        except FamilySyncError as e:
            logger.warning(f"Session check failed: {e.detail}")
            return await self._publish(AuthState.signed_out())

        try:
            provider = await self._preferences.get_auth_provider()
        except StorageError as e:
            logger.warning(f"Could not read sign-in provider: {e.detail}")
            provider = AuthProvider.NONE

        logger.info(f"Restored session for user {account.id}")
        return await self._publish(
            AuthState(
                is_authenticated=True,
                current_user=UserRef(user_id=account.id, email=account.email, name=account.name),
                current_provider=provider,
            )
        )

    async def handle_session_lost(self) -> AuthState:
        """Reset to unauthenticated after the backend reported the session gone."""
        if not self._state.is_authenticated:
            return self._state

        self._generation += 1
        logger.info("Session lost")
        return await self._publish(AuthState.signed_out())
