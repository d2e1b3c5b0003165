"""Federated provider token resolution.

This module turns the token a provider hands to the client into a
FederatedCredential:
- Apple: the identity token is a JWT signed with Apple's published keys,
  whose ``sub`` is the user handle
- Google: the access token is exchanged for the userinfo ``sub``
- GitHub: the access token is exchanged for the ``/user`` id

GitHub and Google handles are namespaced so a numeric GitHub id can never
collide with another provider's handle.
"""

import logging

import httpx
from jose import ExpiredSignatureError, JWTError, jwt

from familysync.core.config import Settings, settings as default_settings
from familysync.domains.user.identity import FederatedCredential
from familysync.domains.user.models import AuthProvider

logger = logging.getLogger(__name__)


class SocialAuthError(Exception):
    """Exception raised when provider token resolution fails."""

    def __init__(self, message: str, provider: AuthProvider) -> None:
        self.message = message
        self.provider = provider
        super().__init__(message)


class SocialCredentialResolver:
    """Resolves provider tokens into federated credentials.

    Supports Apple, Google, and GitHub authentication.
    """

    APPLE_ISSUER = "https://appleid.apple.com"
    APPLE_KEYS_URL = "https://appleid.apple.com/auth/keys"
    GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"

    def __init__(
        self,
        config: Settings = default_settings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the resolver with HTTP client."""
        self._settings = config
        self._client = client or httpx.AsyncClient(timeout=30.0)
        self._apple_keys: dict[str, dict] = {}

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def resolve(
        self,
        provider: AuthProvider,
        token: str,
        given_name: str | None = None,
        family_name: str | None = None,
    ) -> FederatedCredential:
        """Resolve a provider token into a federated credential.

        Args:
            provider: The federated provider
            token: Identity token (Apple) or access token (Google, GitHub)
            given_name: Name the provider handed to the client, if any
            family_name: Family name the provider handed to the client, if any

        Returns:
            FederatedCredential with the provider-unique handle

        Raises:
            SocialAuthError: If the token cannot be resolved
        """
        if not token or not token.strip():
            raise SocialAuthError("Missing provider token", provider)

        if provider == AuthProvider.APPLE:
            credential = await self._resolve_apple_token(token)
        elif provider == AuthProvider.GOOGLE:
            credential = await self._resolve_google_token(token)
        elif provider == AuthProvider.GITHUB:
            credential = await self._resolve_github_token(token)
        else:
            raise SocialAuthError(f"Unsupported provider: {provider.value}", provider)

        if given_name or family_name:
            credential = FederatedCredential(
                provider=credential.provider,
                handle=credential.handle,
                email=credential.email,
                given_name=given_name or credential.given_name,
                family_name=family_name or credential.family_name,
            )
        return credential

    async def _resolve_apple_token(self, token: str) -> FederatedCredential:
        """Verify an Apple identity token and read the handle from it.

        The signature is checked against Apple's published keys. Apple only
        shares the user's name with the client on the first authorization;
        the token carries the email but never the name.
        """
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise SocialAuthError(f"Invalid Apple identity token: {e}", AuthProvider.APPLE) from e

        key = await self._apple_signing_key(header.get("kid"))
        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=["RS256"],
                options={"verify_aud": False, "verify_at_hash": False},
            )
        except ExpiredSignatureError as e:
            raise SocialAuthError("Apple identity token has expired", AuthProvider.APPLE) from e
        except JWTError as e:
            raise SocialAuthError(f"Invalid Apple identity token: {e}", AuthProvider.APPLE) from e

        if claims.get("iss") != self.APPLE_ISSUER:
            raise SocialAuthError("Invalid token issuer", AuthProvider.APPLE)

        if self._settings.APPLE_CLIENT_ID:
            aud = claims.get("aud")
            audiences = aud if isinstance(aud, list) else [aud]
            if self._settings.APPLE_CLIENT_ID not in audiences:
                raise SocialAuthError(
                    "Token not issued for this application",
                    AuthProvider.APPLE,
                )

        sub = claims.get("sub")
        if not sub:
            raise SocialAuthError("Missing user ID in Apple token", AuthProvider.APPLE)

        return FederatedCredential(
            provider=AuthProvider.APPLE,
            handle=sub,
            email=claims.get("email"),
        )

    async def _apple_signing_key(self, kid: str | None) -> dict:
        """Return the Apple public key for ``kid``, refetching once on a miss."""
        if not kid:
            raise SocialAuthError("Apple identity token has no key id", AuthProvider.APPLE)

        if kid not in self._apple_keys:
            await self._refresh_apple_keys()
        key = self._apple_keys.get(kid)
        if key is None:
            raise SocialAuthError("Unknown Apple signing key", AuthProvider.APPLE)
        return key

    async def _refresh_apple_keys(self) -> None:
        try:
            response = await self._client.get(self.APPLE_KEYS_URL)
        except httpx.RequestError as e:
            raise SocialAuthError(
                f"Failed to fetch Apple signing keys: {e}",
                AuthProvider.APPLE,
            ) from e

        if response.status_code != 200:
            raise SocialAuthError("Failed to fetch Apple signing keys", AuthProvider.APPLE)

        keys = response.json().get("keys", [])
        self._apple_keys = {key["kid"]: key for key in keys if key.get("kid")}
        logger.info(f"Loaded {len(self._apple_keys)} Apple signing keys")

    async def _resolve_google_token(self, token: str) -> FederatedCredential:
        try:
            response = await self._client.get(
                self.GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.RequestError as e:
            raise SocialAuthError(
                f"Failed to validate Google token: {e}",
                AuthProvider.GOOGLE,
            ) from e

        if response.status_code != 200:
            raise SocialAuthError("Invalid Google token", AuthProvider.GOOGLE)

        data = response.json()
        if self._settings.GOOGLE_CLIENT_ID and data.get("aud") not in (
            None,
            self._settings.GOOGLE_CLIENT_ID,
        ):
            raise SocialAuthError(
                "Token not issued for this application",
                AuthProvider.GOOGLE,
            )

        sub = data.get("sub")
        if not sub:
            raise SocialAuthError("Missing user ID in Google profile", AuthProvider.GOOGLE)

        return FederatedCredential(
            provider=AuthProvider.GOOGLE,
            handle=f"google:{sub}",
            email=data.get("email"),
            given_name=data.get("given_name"),
            family_name=data.get("family_name"),
        )

    async def _resolve_github_token(self, token: str) -> FederatedCredential:
        try:
            response = await self._client.get(
                f"{self._settings.GITHUB_API_URL.rstrip('/')}/user",
                headers={
                    "Authorization": f"Bearer {token}",
                    "Accept": "application/vnd.github+json",
                },
            )
        except httpx.RequestError as e:
            raise SocialAuthError(
                f"Failed to validate GitHub token: {e}",
                AuthProvider.GITHUB,
            ) from e

        if response.status_code != 200:
            raise SocialAuthError("Invalid GitHub token", AuthProvider.GITHUB)

        data = response.json()
        user_id = data.get("id")
        if user_id is None:
            raise SocialAuthError("Missing user ID in GitHub profile", AuthProvider.GITHUB)

        # GitHub exposes a single display name, or only the login
        return FederatedCredential(
            provider=AuthProvider.GITHUB,
            handle=f"github:{user_id}",
            email=data.get("email"),
            given_name=data.get("name") or data.get("login"),
        )
