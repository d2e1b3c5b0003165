"""User domain module.

This module contains all user-related functionality including:
- Federated providers and the authentication state
- Identity derivation from provider handles
- User profile documents
- Device-scoped preferences
- The identity coordinator and the onboarding state machine

Note: Use direct imports to avoid circular dependencies:

    from familysync.domains.user.models import AuthProvider, AuthState
    from familysync.domains.user.identity import FederatedCredential, derive_identity
    from familysync.domains.user.repository import UserProfileRepository
    from familysync.domains.user.preferences import LocalPreferences
    from familysync.domains.user.services import IdentityCoordinator, OnboardingStateMachine
"""

__all__ = [
    "AuthProvider",
    "AuthState",
    "FederatedCredential",
    "derive_identity",
    "UserProfileRepository",
    "LocalPreferences",
    "IdentityCoordinator",
    "OnboardingStateMachine",
]
