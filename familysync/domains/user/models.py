"""Models for the User domain.

This module defines:
- The federated authentication providers
- The observable authentication state
- The remote user profile document
"""

import enum
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator

from familysync.core.exceptions import ErrorKind


class AuthProvider(str, enum.Enum):
    """Enum for federated authentication providers.

    NONE is only ever the provider of an unauthenticated state.
    """

    NONE = "none"
    APPLE = "apple"
    GITHUB = "github"
    GOOGLE = "google"

    @classmethod
    def parse(cls, value: str | None) -> "AuthProvider":
        """Parse a stored provider tag; unknown tags become NONE."""
        try:
            return cls(value)
        except ValueError:
            return cls.NONE


class UserRef(BaseModel):
    """Reference to the signed-in backend account."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str = ""
    name: str = ""


class AuthState(BaseModel):
    """Snapshot of the authentication state.

    Snapshots are immutable; the coordinator replaces its state instead of
    mutating it so observers never see a half-applied transition.
    """

    model_config = ConfigDict(frozen=True)

    is_authenticated: bool = False
    current_user: UserRef | None = None
    current_provider: AuthProvider = AuthProvider.NONE
    is_loading: bool = False
    last_error: ErrorKind | None = None
    error_message: str | None = None

    @classmethod
    def signed_out(cls) -> "AuthState":
        """Initial, unauthenticated state."""
        return cls()


class UserProfile(BaseModel):
    """User profile document, keyed by the backend account id."""

    id: str
    user_id: str
    family_id: str | None = None
    display_name: str | None = None
    birthday: date | None = None
    created_at: str = ""
    updated_at: str = ""

    @field_validator("family_id", "display_name", "birthday", mode="before")
    @classmethod
    def empty_as_none(cls, v: object) -> object:
        """Treat empty stored strings as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def has_family(self) -> bool:
        return bool(self.family_id)


class ProfileUpdate(BaseModel):
    """Fields written during the profile setup step."""

    display_name: str = Field(..., min_length=1)
    birthday: date

    def to_fields(self) -> dict[str, str]:
        return {
            "display_name": self.display_name,
            "birthday": self.birthday.isoformat(),
        }
