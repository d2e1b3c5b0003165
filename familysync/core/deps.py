"""FastAPI dependencies.

This module provides injectable dependencies for:
- The process-wide service container
- The identity coordinator and onboarding state machine
- The provider token resolver
"""

from typing import Annotated

from fastapi import Depends, Request

from familysync.core.container import ServiceContainer
from familysync.domains.user.services.auth_service import IdentityCoordinator
from familysync.domains.user.services.onboarding_service import OnboardingStateMachine
from familysync.domains.user.social_auth import SocialCredentialResolver


def get_container(request: Request) -> ServiceContainer:
    """Get the container built during application startup."""
    return request.app.state.container


def get_coordinator(
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> IdentityCoordinator:
    return container.coordinator


def get_onboarding(
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> OnboardingStateMachine:
    return container.onboarding


def get_resolver(
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> SocialCredentialResolver:
    return container.resolver


# Type aliases for cleaner endpoint signatures
ContainerDep = Annotated[ServiceContainer, Depends(get_container)]
CoordinatorDep = Annotated[IdentityCoordinator, Depends(get_coordinator)]
OnboardingDep = Annotated[OnboardingStateMachine, Depends(get_onboarding)]
ResolverDep = Annotated[SocialCredentialResolver, Depends(get_resolver)]
