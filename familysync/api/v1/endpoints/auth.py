"""Authentication API endpoints.

This module provides REST API endpoints for:
- Reading the authentication state
- Federated sign-in with a resolved credential
- Federated sign-in with a raw provider token
- Sign-out
"""

import logging

from fastapi import APIRouter

from familysync.api.v1.schemas.auth import (
    AuthStateResponse,
    SignInRequest,
    TokenSignInRequest,
)
from familysync.core.deps import CoordinatorDep, ResolverDep
from familysync.core.exceptions import AuthenticationFailedError
from familysync.domains.user.social_auth import SocialAuthError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get(
    "/state",
    response_model=AuthStateResponse,
    summary="Get authentication state",
)
async def get_state(coordinator: CoordinatorDep) -> AuthStateResponse:
    return AuthStateResponse.from_state(coordinator.state)


@router.post(
    "/sign-in",
    response_model=AuthStateResponse,
    summary="Sign in with a federated credential",
    description="Log into the account derived from the provider handle, creating it on first sign-in.",
)
async def sign_in(
    data: SignInRequest,
    coordinator: CoordinatorDep,
) -> AuthStateResponse:
    """Sign in with a credential the client already resolved.

    Raises:
        401 Unauthorized: If the backend rejected the sign-in
        422 Unprocessable Entity: If the provider or handle is missing
        429 Too Many Requests: If the backend is rate limiting
    """
    state = await coordinator.sign_in(
        data.provider,
        data.to_credential(),
        stable_email=data.stable_email,
    )
    return AuthStateResponse.from_state(state)


@router.post(
    "/sign-in/token",
    response_model=AuthStateResponse,
    summary="Sign in with a provider token",
    description="Resolve an Apple identity token or a Google/GitHub access token, then sign in.",
)
async def sign_in_with_token(
    data: TokenSignInRequest,
    coordinator: CoordinatorDep,
    resolver: ResolverDep,
) -> AuthStateResponse:
    """Sign in with a raw provider token.

    Raises:
        401 Unauthorized: If the token is invalid or the backend rejected the sign-in
    """
    try:
        credential = await resolver.resolve(
            data.provider,
            data.token,
            given_name=data.given_name,
            family_name=data.family_name,
        )
    except SocialAuthError as e:
        logger.warning(f"Token resolution failed for {e.provider.value}: {e.message}")
        raise AuthenticationFailedError(e.message) from e

    state = await coordinator.sign_in(data.provider, credential)
    return AuthStateResponse.from_state(state)


@router.post(
    "/sign-out",
    response_model=AuthStateResponse,
    summary="Sign out",
    description="Delete the backend session and clear all local onboarding and profile data.",
)
async def sign_out(coordinator: CoordinatorDep) -> AuthStateResponse:
    state = await coordinator.sign_out()
    return AuthStateResponse.from_state(state)
