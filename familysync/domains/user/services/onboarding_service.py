"""Onboarding state machine.

This module drives the four-step onboarding flow:
1. Sign in
2. Create or join a family
3. Set up the profile (name and birthday)
4. Review, then complete

Steps 2 and 3 are skipped when the remote profile already satisfies them.
Progress is persisted locally so the flow resumes after a restart.
"""

import enum
import logging
from datetime import date

from pydantic import BaseModel, ConfigDict

from familysync.core.exceptions import FamilySyncError, NoSessionError, ValidationFailedError
from familysync.domains.family.models import Family
from familysync.domains.family.services.family_service import FamilyService
from familysync.domains.family.validators import validate_profile_name
from familysync.domains.user.models import AuthState, ProfileUpdate, UserProfile
from familysync.domains.user.preferences import LocalPreferences
from familysync.domains.user.repository import UserProfileRepository
from familysync.domains.user.services.auth_service import IdentityCoordinator

logger = logging.getLogger(__name__)


class OnboardingStep(enum.IntEnum):
    """Onboarding steps, in display order."""

    SIGN_IN = 1
    FAMILY_SETUP = 2
    PROFILE_SETUP = 3
    REVIEW = 4


# Names providers or older clients stored before the user picked one
PLACEHOLDER_NAMES = frozenset(
    {
        "user",
        "new user",
        "unknown",
        "apple user",
        "familysync user",
    }
)


def is_placeholder_name(name: str | None) -> bool:
    if name is None or not name.strip():
        return True
    return name.strip().lower() in PLACEHOLDER_NAMES


class OnboardingState(BaseModel):
    """Persisted onboarding progress."""

    model_config = ConfigDict(frozen=True)

    current_step: OnboardingStep = OnboardingStep.SIGN_IN
    has_completed_before: bool = False
    cached_name: str | None = None
    cached_birthday: date | None = None


class OnboardingStateMachine:
    """State machine for the onboarding flow.

    The machine observes the identity coordinator: gaining authentication
    moves it past the sign-in step, losing it resets it to the sign-in step
    whatever the completion flag says. Failed operations leave the state
    unchanged and keep the error in ``error``.

    Example:
        machine = OnboardingStateMachine(coordinator, family_service, profiles, preferences)
        await machine.load()
        await machine.create_family("The Smiths")
    """

    def __init__(
        self,
        coordinator: IdentityCoordinator,
        family_service: FamilyService,
        profiles: UserProfileRepository,
        preferences: LocalPreferences,
    ) -> None:
        """Initialize and subscribe to authentication changes."""
        self._coordinator = coordinator
        self._family_service = family_service
        self._profiles = profiles
        self._preferences = preferences

        self._state = OnboardingState()
        self.profile: UserProfile | None = None
        self.family: Family | None = None
        self.error: FamilySyncError | None = None
        self._user_id = coordinator.current_user_id

        coordinator.add_listener(self._on_auth_state_changed)

    # ============ State ============

    @property
    def state(self) -> OnboardingState:
        return self._state

    @property
    def current_step(self) -> OnboardingStep:
        return self._state.current_step

    @property
    def error_message(self) -> str | None:
        return self.error.detail if self.error else None

    @property
    def should_show_onboarding(self) -> bool:
        """Authentication loss always brings onboarding back."""
        return not self._state.has_completed_before or not self._coordinator.is_authenticated

    def clear_error(self) -> None:
        self.error = None

    async def _set_step(self, step: OnboardingStep) -> None:
        if step == self._state.current_step:
            return
        logger.info(f"Onboarding step {self._state.current_step.name} -> {step.name}")
        self._state = self._state.model_copy(update={"current_step": step})
        await self._preferences.set_onboarding_step(step)

    def _require_user(self) -> str:
        user_id = self._coordinator.current_user_id
        if user_id is None:
            raise NoSessionError("Sign in to continue")
        return user_id

    async def load(self) -> OnboardingState:
        """Restore the persisted onboarding state.

        Returns:
            The restored state; the step is SIGN_IN while unauthenticated
        """
        stored_step = await self._preferences.get_onboarding_step()

        if not self._coordinator.is_authenticated:
            step = OnboardingStep.SIGN_IN
        else:
            value = stored_step or OnboardingStep.FAMILY_SETUP
            step = OnboardingStep(min(max(value, OnboardingStep.FAMILY_SETUP), OnboardingStep.REVIEW))
            if stored_step != step:
                await self._preferences.set_onboarding_step(step)

        self._state = OnboardingState(
            current_step=step,
            has_completed_before=await self._preferences.get_has_seen_onboarding(),
            cached_name=await self._preferences.get_user_name(),
            cached_birthday=await self._preferences.get_user_birthday(),
        )
        return self._state

    async def _on_auth_state_changed(self, auth_state: AuthState) -> None:
        user = auth_state.current_user if auth_state.is_authenticated else None
        user_id = user.user_id if user else None
        if user_id == self._user_id:
            return

        self._user_id = user_id
        self.profile = None
        self.family = None
        self.error = None

        if user_id is None:
            self._state = self._state.model_copy(update={"current_step": OnboardingStep.SIGN_IN})
            await self.load()
            return

        await self.load()
        try:
            await self.check_and_skip_steps()
        except FamilySyncError as e:
            logger.warning(f"Skip evaluation after sign-in failed: {e.detail}")

    async def _failed(self, error: FamilySyncError) -> None:
        """Record a failed action; a lost backend session signs the user out."""
        if isinstance(error, NoSessionError) and self._coordinator.is_authenticated:
            logger.warning(f"Backend session lost during onboarding: {error.detail}")
            await self._coordinator.handle_session_lost()
        self.error = error

    # ============ Skip Evaluation ============

    async def _reload_remote(self, user_id: str) -> None:
        self.profile = await self._profiles.get_profile(user_id)
        if self.profile is not None and self.profile.has_family:
            self.family = await self._family_service.get_family(self.profile.family_id)
        else:
            self.family = None

    async def check_and_skip_steps(self) -> OnboardingState:
        """Skip the steps the remote profile already satisfies.

        Reloads the profile and family first. Each skip check is idempotent
        and the step never decreases nor goes past REVIEW.

        Raises:
            FamilySyncError: If the remote data could not be loaded
        """
        user_id = self._coordinator.current_user_id
        if user_id is None or self._state.current_step == OnboardingStep.SIGN_IN:
            return self._state

        try:
            await self._reload_remote(user_id)
        except FamilySyncError as e:
            await self._failed(e)
            raise

        profile = self.profile
        step = self._state.current_step

        if step == OnboardingStep.FAMILY_SETUP and profile is not None and profile.has_family:
            logger.info(f"User {user_id} already has a family, skipping family setup")
            step = OnboardingStep.PROFILE_SETUP

        if (
            step == OnboardingStep.PROFILE_SETUP
            and profile is not None
            and not is_placeholder_name(profile.display_name)
            and profile.birthday is not None
        ):
            logger.info(f"User {user_id} already has a profile, skipping profile setup")
            await self._cache_profile(profile.display_name, profile.birthday)
            step = OnboardingStep.REVIEW

        await self._set_step(step)
        return self._state

    async def _cache_profile(self, name: str, birthday: date) -> None:
        await self._preferences.set_user_name(name)
        await self._preferences.set_user_birthday(birthday)
        self._state = self._state.model_copy(
            update={"cached_name": name, "cached_birthday": birthday}
        )

    # ============ Step Actions ============

    async def create_family(self, name: str) -> Family:
        """Create a family and move on to profile setup.

        Raises:
            ValidationFailedError: If the name is out of bounds
        """
        user_id = self._require_user()
        self.error = None
        try:
            family = await self._family_service.create_family(name, user_id)
        except FamilySyncError as e:
            await self._failed(e)
            raise

        await self._family_attached(family)
        return family

    async def join_family(self, invite_code: str) -> Family:
        """Join a family by invite code and move on to profile setup.

        Raises:
            ValidationFailedError: If the code is malformed
            InvalidInviteCodeError: If no family uses the code
            AlreadyMemberError: If the user already belongs to the family
        """
        user_id = self._require_user()
        self.error = None
        try:
            family = await self._family_service.join_family(invite_code, user_id)
        except FamilySyncError as e:
            await self._failed(e)
            raise

        await self._family_attached(family)
        return family

    async def _family_attached(self, family: Family) -> None:
        self.family = family
        if self.profile is not None:
            self.profile = self.profile.model_copy(update={"family_id": family.id})
        if self._state.current_step == OnboardingStep.FAMILY_SETUP:
            await self._set_step(OnboardingStep.PROFILE_SETUP)

    async def submit_profile(self, name: str, birthday: date) -> UserProfile:
        """Save the profile remotely, cache it locally and move on to review.

        Raises:
            ValidationFailedError: If the name is empty
        """
        user_id = self._require_user()
        self.error = None
        try:
            display_name = validate_profile_name(name)
            profile = await self._profiles.update_profile(
                user_id,
                ProfileUpdate(display_name=display_name, birthday=birthday),
            )
        except FamilySyncError as e:
            await self._failed(e)
            raise

        self.profile = profile
        await self._cache_profile(display_name, birthday)
        if self._state.current_step == OnboardingStep.PROFILE_SETUP:
            await self._set_step(OnboardingStep.REVIEW)
        return profile

    # ============ Navigation ============

    async def next_step(self) -> OnboardingState:
        """Move forward one step; SIGN_IN cannot be left while unauthenticated."""
        step = self._state.current_step
        if step == OnboardingStep.SIGN_IN and not self._coordinator.is_authenticated:
            raise ValidationFailedError("step", "Sign in to continue")
        if step < OnboardingStep.REVIEW:
            await self._set_step(OnboardingStep(step + 1))
        return self._state

    async def previous_step(self) -> OnboardingState:
        """Move back one step, never below SIGN_IN."""
        step = self._state.current_step
        if step > OnboardingStep.SIGN_IN:
            await self._set_step(OnboardingStep(step - 1))
        return self._state

    async def complete(self) -> OnboardingState:
        """Finish onboarding from the review step.

        Raises:
            NoSessionError: If the user is not signed in
            ValidationFailedError: If the review step is not reached yet
        """
        self._require_user()
        if self._state.current_step != OnboardingStep.REVIEW:
            raise ValidationFailedError("step", "Finish the previous steps first")

        await self._preferences.set_has_seen_onboarding(True)
        self._state = self._state.model_copy(update={"has_completed_before": True})
        logger.info("Onboarding completed")
        return self._state
