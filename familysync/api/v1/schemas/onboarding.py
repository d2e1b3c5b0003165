"""Onboarding schemas for API requests and responses.

This module defines request/response schemas for onboarding endpoints
including step state, family setup and profile setup.
"""

from datetime import date

from pydantic import BaseModel, Field

from familysync.domains.family.models import Family
from familysync.domains.user.services.onboarding_service import (
    OnboardingStateMachine,
    OnboardingStep,
)


# ============ Request Schemas ============


class CreateFamilyRequest(BaseModel):
    """Length bounds are enforced by the family validator."""

    name: str = Field(..., description="Family name")


class JoinFamilyRequest(BaseModel):
    invite_code: str = Field(..., description="Invite code shared by a member")


class ProfileRequest(BaseModel):
    name: str = Field(..., description="Display name")
    birthday: date


# ============ Response Schemas ============


class FamilyResponse(BaseModel):
    """Family as shown to its members."""

    id: str
    name: str
    creator_id: str
    members: list[str]
    invite_code: str

    @classmethod
    def from_family(cls, family: Family) -> "FamilyResponse":
        return cls(
            id=family.id,
            name=family.name,
            creator_id=family.creator_id,
            members=family.members,
            invite_code=family.invite_code,
        )


class OnboardingStateResponse(BaseModel):
    """Onboarding progress exposed to the UI."""

    current_step: OnboardingStep
    step_name: str
    total_steps: int = len(OnboardingStep)
    has_completed_before: bool
    should_show_onboarding: bool
    cached_name: str | None = None
    cached_birthday: date | None = None
    family: FamilyResponse | None = None
    error_message: str | None = None

    @classmethod
    def from_machine(cls, machine: OnboardingStateMachine) -> "OnboardingStateResponse":
        state = machine.state
        return cls(
            current_step=state.current_step,
            step_name=state.current_step.name.lower(),
            has_completed_before=state.has_completed_before,
            should_show_onboarding=machine.should_show_onboarding,
            cached_name=state.cached_name,
            cached_birthday=state.cached_birthday,
            family=FamilyResponse.from_family(machine.family) if machine.family else None,
            error_message=machine.error_message,
        )
