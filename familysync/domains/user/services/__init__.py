"""User domain services."""

from familysync.domains.user.services.auth_service import IdentityCoordinator
from familysync.domains.user.services.onboarding_service import (
    OnboardingState,
    OnboardingStateMachine,
    OnboardingStep,
)

__all__ = [
    "IdentityCoordinator",
    "OnboardingState",
    "OnboardingStateMachine",
    "OnboardingStep",
]
