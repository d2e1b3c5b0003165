"""Authentication schemas for API requests and responses."""

from pydantic import BaseModel, Field

from familysync.core.exceptions import ErrorKind
from familysync.domains.user.identity import FederatedCredential
from familysync.domains.user.models import AuthProvider, AuthState


# ============ Request Schemas ============


class SignInRequest(BaseModel):
    """Sign in with a credential the client already resolved.

    The handle is the provider-unique user identifier (Apple ``user``,
    ``github:<id>``, ``google:<sub>``).
    """

    provider: AuthProvider = Field(..., description="Federated provider")
    handle: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(None, max_length=320)
    given_name: str | None = Field(None, max_length=128)
    family_name: str | None = Field(None, max_length=128)
    stable_email: str | None = Field(
        None,
        max_length=320,
        description="Email known to be stable, used to derive the account id",
    )

    def to_credential(self) -> FederatedCredential:
        return FederatedCredential(
            provider=self.provider,
            handle=self.handle,
            email=self.email,
            given_name=self.given_name,
            family_name=self.family_name,
        )


class TokenSignInRequest(BaseModel):
    """Sign in with a raw provider token resolved on the server side."""

    provider: AuthProvider = Field(..., description="Federated provider")
    token: str = Field(..., min_length=1, description="Identity or access token")
    given_name: str | None = Field(None, max_length=128)
    family_name: str | None = Field(None, max_length=128)


# ============ Response Schemas ============


class UserInResponse(BaseModel):
    user_id: str
    email: str
    name: str


class AuthStateResponse(BaseModel):
    """Authentication state exposed to the UI."""

    is_authenticated: bool
    current_user: UserInResponse | None = None
    current_provider: AuthProvider
    is_loading: bool
    last_error: ErrorKind | None = None
    error_message: str | None = None

    @classmethod
    def from_state(cls, state: AuthState) -> "AuthStateResponse":
        user = state.current_user
        return cls(
            is_authenticated=state.is_authenticated,
            current_user=UserInResponse(**user.model_dump()) if user else None,
            current_provider=state.current_provider,
            is_loading=state.is_loading,
            last_error=state.last_error,
            error_message=state.error_message,
        )
