"""Onboarding API endpoints.

This module provides REST API endpoints for:
- Reading the onboarding state
- Skip evaluation against the remote profile
- Creating or joining a family
- Submitting the profile
- Step navigation and completion
"""

from fastapi import APIRouter

from familysync.api.v1.schemas.onboarding import (
    CreateFamilyRequest,
    JoinFamilyRequest,
    OnboardingStateResponse,
    ProfileRequest,
)
from familysync.core.deps import OnboardingDep

router = APIRouter(prefix="/onboarding", tags=["Onboarding"])


@router.get(
    "/state",
    response_model=OnboardingStateResponse,
    summary="Get onboarding state",
)
async def get_state(machine: OnboardingDep) -> OnboardingStateResponse:
    return OnboardingStateResponse.from_machine(machine)


@router.post(
    "/check",
    response_model=OnboardingStateResponse,
    summary="Skip satisfied steps",
    description="Reload the remote profile and family, then skip the steps they already satisfy.",
)
async def check_and_skip_steps(machine: OnboardingDep) -> OnboardingStateResponse:
    await machine.check_and_skip_steps()
    return OnboardingStateResponse.from_machine(machine)


@router.post(
    "/family",
    response_model=OnboardingStateResponse,
    summary="Create a family",
)
async def create_family(
    data: CreateFamilyRequest,
    machine: OnboardingDep,
) -> OnboardingStateResponse:
    """Create a family and move on to profile setup.

    Raises:
        401 Unauthorized: If not signed in
        422 Unprocessable Entity: If the name is not 2 to 50 characters long
    """
    await machine.create_family(data.name)
    return OnboardingStateResponse.from_machine(machine)


@router.post(
    "/family/join",
    response_model=OnboardingStateResponse,
    summary="Join a family",
)
async def join_family(
    data: JoinFamilyRequest,
    machine: OnboardingDep,
) -> OnboardingStateResponse:
    """Join a family by invite code.

    Raises:
        404 Not Found: If no family uses the invite code
        409 Conflict: If already a member
        422 Unprocessable Entity: If the invite code is malformed
    """
    await machine.join_family(data.invite_code)
    return OnboardingStateResponse.from_machine(machine)


@router.post(
    "/profile",
    response_model=OnboardingStateResponse,
    summary="Submit the profile",
)
async def submit_profile(
    data: ProfileRequest,
    machine: OnboardingDep,
) -> OnboardingStateResponse:
    await machine.submit_profile(data.name, data.birthday)
    return OnboardingStateResponse.from_machine(machine)


@router.post("/next", response_model=OnboardingStateResponse, summary="Next step")
async def next_step(machine: OnboardingDep) -> OnboardingStateResponse:
    await machine.next_step()
    return OnboardingStateResponse.from_machine(machine)


@router.post("/previous", response_model=OnboardingStateResponse, summary="Previous step")
async def previous_step(machine: OnboardingDep) -> OnboardingStateResponse:
    await machine.previous_step()
    return OnboardingStateResponse.from_machine(machine)


@router.post(
    "/complete",
    response_model=OnboardingStateResponse,
    summary="Complete onboarding",
)
async def complete(machine: OnboardingDep) -> OnboardingStateResponse:
    await machine.complete()
    return OnboardingStateResponse.from_machine(machine)
