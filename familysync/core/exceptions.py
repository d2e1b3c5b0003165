"""Custom exceptions for authentication, onboarding and backend access.

This module defines the error taxonomy shared by the coordinator, the
onboarding state machine and the HTTP layer. Every error carries a
machine-readable kind, a user-facing detail and the HTTP status it maps to.
"""

import enum


class ErrorKind(str, enum.Enum):
    """Kinds of failure surfaced to the UI layer."""

    AUTHENTICATION_FAILED = "authentication_failed"
    RATE_LIMITED = "rate_limited"
    INVALID_INVITE_CODE = "invalid_invite_code"
    ALREADY_MEMBER = "already_member"
    VALIDATION_FAILED = "validation_failed"
    NO_SESSION = "no_session"
    DESERIALIZATION_FAILED = "deserialization_failed"
    UNKNOWN = "unknown"


class FamilySyncError(Exception):
    """Base exception for all FamilySync errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN
    status_code: int = 500

    def __init__(self, detail: str = "An unexpected error occurred") -> None:
        self.detail = detail
        super().__init__(detail)

    def to_dict(self) -> dict[str, str | None]:
        """Convert the error to a response payload."""
        return {
            "error": self.kind.value,
            "detail": self.detail,
        }


# ============ Domain Errors ============


class AuthenticationFailedError(FamilySyncError):
    """Raised when the backend rejects a sign-in for good."""

    kind = ErrorKind.AUTHENTICATION_FAILED
    status_code = 401

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(detail=detail)


class RateLimitedError(FamilySyncError):
    """Raised when the backend refuses a request for too many attempts."""

    kind = ErrorKind.RATE_LIMITED
    status_code = 429

    def __init__(
        self,
        detail: str = "Too many attempts. Please wait a moment and try again.",
    ) -> None:
        super().__init__(detail=detail)


class InvalidInviteCodeError(FamilySyncError):
    """Raised when no family matches an invite code."""

    kind = ErrorKind.INVALID_INVITE_CODE
    status_code = 404

    def __init__(self, detail: str = "This invite code is not valid") -> None:
        super().__init__(detail=detail)


class AlreadyMemberError(FamilySyncError):
    """Raised when the user already belongs to the family being joined."""

    kind = ErrorKind.ALREADY_MEMBER
    status_code = 409

    def __init__(self, detail: str = "You are already a member of this family") -> None:
        super().__init__(detail=detail)


class ValidationFailedError(FamilySyncError):
    """Raised for local input validation failures.

    Validation never reaches the backend; the failing field is reported
    so the UI can show the message inline.
    """

    kind = ErrorKind.VALIDATION_FAILED
    status_code = 422

    def __init__(self, field: str, detail: str) -> None:
        self.field = field
        super().__init__(detail=detail)

    def to_dict(self) -> dict[str, str | None]:
        payload = super().to_dict()
        payload["field"] = self.field
        return payload


class DeserializationError(FamilySyncError):
    """Raised when a backend payload does not match its schema."""

    kind = ErrorKind.DESERIALIZATION_FAILED
    status_code = 502

    def __init__(self, detail: str = "Unexpected payload from backend") -> None:
        super().__init__(detail=detail)


class UnknownError(FamilySyncError):
    """Raised for failures that fit no other kind."""


class StorageError(FamilySyncError):
    """Raised when the device-scoped store cannot be read or written."""

    def __init__(self, detail: str = "Local storage is unavailable") -> None:
        super().__init__(detail=detail)


# ============ Backend Errors ============


class BackendError(FamilySyncError):
    """Base exception for failed backend round trips."""

    status_code = 502

    def __init__(
        self,
        detail: str = "Backend request failed",
        backend_status: int | None = None,
    ) -> None:
        self.backend_status = backend_status
        super().__init__(detail=detail)


class BackendUnavailableError(BackendError):
    """Raised when the backend cannot be reached."""

    status_code = 503


class BackendRateLimitedError(BackendError):
    """Raised when the backend answers with a rate-limit response."""

    kind = ErrorKind.RATE_LIMITED
    status_code = 429


class InvalidCredentialsError(BackendError):
    """Raised when a session cannot be created with the given credentials."""

    kind = ErrorKind.AUTHENTICATION_FAILED
    status_code = 401


class NoSessionError(BackendError):
    """Raised when the backend has no current session.

    This is the expected answer on a fresh device and is never shown
    to the user.
    """

    kind = ErrorKind.NO_SESSION
    status_code = 401


class DuplicateAccountError(BackendError):
    """Raised when an account with the same id or email already exists."""

    status_code = 409


class InvalidArgumentError(BackendError):
    """Raised when the backend rejects a request payload."""

    status_code = 400


class DocumentNotFoundError(BackendError):
    """Raised when a document does not exist."""

    status_code = 404
