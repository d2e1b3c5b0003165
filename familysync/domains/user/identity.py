"""Federated identity derivation.

A federated provider hands back a stable handle for the user. These
functions turn it into the account id, email and secret used against the
backend's email/secret session API. All of them are pure: the same handle
always yields the same identity, so a returning user logs into the account
created on their first sign-in.
"""

import hashlib
import re
from dataclasses import dataclass

from familysync.core.config import settings
from familysync.domains.user.models import AuthProvider

MAX_EMAIL_LOCAL_PART = 64

_UNSAFE_LOCAL_CHARS = re.compile(r"[^a-z0-9._-]+")
_REPEATED_DOTS = re.compile(r"\.{2,}")


@dataclass(frozen=True)
class FederatedCredential:
    """Credential returned by a federated identity provider."""

    provider: AuthProvider
    handle: str
    email: str | None = None
    given_name: str | None = None
    family_name: str | None = None

    @property
    def display_name(self) -> str | None:
        parts = [p.strip() for p in (self.given_name, self.family_name) if p and p.strip()]
        return " ".join(parts) if parts else None


@dataclass(frozen=True)
class DerivedIdentity:
    """Backend credentials derived from a federated credential."""

    stable_user_id: str
    email: str
    secret: str
    display_name: str | None = None

    def __repr__(self) -> str:
        # Never render the secret
        return (
            f"DerivedIdentity(stable_user_id={self.stable_user_id!r}, "
            f"email={self.email!r}, display_name={self.display_name!r})"
        )


def _sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def derive_stable_user_id(
    handle: str,
    stable_email: str | None = None,
    max_length: int | None = None,
) -> str:
    """Derive the backend account id.

    Args:
        handle: Provider-unique user handle
        stable_email: Email the caller knows to be stable for this user;
            when given, the id is derived from it instead of the handle
        max_length: Backend limit on id length

    Returns:
        Lowercase hex digest truncated to the backend limit
    """
    limit = max_length or settings.STABLE_USER_ID_MAX_LENGTH
    source = normalize_email(stable_email) if stable_email else handle
    return _sha256_hex(source)[:limit]


def derive_credential_secret(handle: str, salt: str | None = None) -> str:
    """Derive the session secret. It is never chosen by the user."""
    return _sha256_hex(f"{handle}:{salt or settings.CREDENTIAL_SALT}")


def derive_synthetic_email(handle: str, domain: str | None = None) -> str:
    """Derive the account email from the handle alone.

    Providers hand the email over inconsistently (Apple only on the first
    authorization), so it never takes part in the login identity. A hashed
    local part is used when the handle sanitizes to nothing or is too long
    for an address.
    """
    local = _UNSAFE_LOCAL_CHARS.sub("-", handle.lower())
    local = _REPEATED_DOTS.sub(".", local).strip(".-_")
    if not local or len(local) > MAX_EMAIL_LOCAL_PART:
        local = f"u{_sha256_hex(handle)[:32]}"

    return f"{local}@{domain or settings.SYNTHETIC_EMAIL_DOMAIN}"


def derive_identity(
    credential: FederatedCredential,
    stable_email: str | None = None,
) -> DerivedIdentity:
    """Derive the full backend identity of a federated credential."""
    return DerivedIdentity(
        stable_user_id=derive_stable_user_id(credential.handle, stable_email),
        email=derive_synthetic_email(credential.handle),
        secret=derive_credential_secret(credential.handle),
        display_name=credential.display_name,
    )
