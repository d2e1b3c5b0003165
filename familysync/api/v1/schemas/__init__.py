"""API v1 schemas package."""

from familysync.api.v1.schemas.auth import (
    AuthStateResponse,
    SignInRequest,
    TokenSignInRequest,
    UserInResponse,
)
from familysync.api.v1.schemas.onboarding import (
    CreateFamilyRequest,
    FamilyResponse,
    JoinFamilyRequest,
    OnboardingStateResponse,
    ProfileRequest,
)

__all__ = [
    "AuthStateResponse",
    "SignInRequest",
    "TokenSignInRequest",
    "UserInResponse",
    "CreateFamilyRequest",
    "FamilyResponse",
    "JoinFamilyRequest",
    "OnboardingStateResponse",
    "ProfileRequest",
]
