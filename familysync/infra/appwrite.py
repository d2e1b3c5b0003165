"""Appwrite REST client implementing the backend contract.

This module talks to the Appwrite client API over httpx. The session is
carried by the cookie Appwrite sets on session creation (or by the
``X-Fallback-Cookies`` header when cookies are unavailable).
"""

import json
import logging
from typing import Any

import httpx

from familysync.core.config import Settings, settings as default_settings
from familysync.core.exceptions import (
    BackendError,
    BackendRateLimitedError,
    BackendUnavailableError,
    DocumentNotFoundError,
    DuplicateAccountError,
    InvalidArgumentError,
    InvalidCredentialsError,
    NoSessionError,
)
from familysync.infra.backend import (
    CURRENT_SESSION,
    Account,
    Document,
    IdentityBackend,
    Session,
    decode,
)

logger = logging.getLogger(__name__)

RESPONSE_FORMAT = "1.5.0"


class AppwriteBackend(IdentityBackend):
    """Identity & Data Backend over the Appwrite REST API.

    Example:
        backend = AppwriteBackend()
        await backend.create_session("user@example.com", secret)
        account = await backend.get_current_account()
    """

    def __init__(
        self,
        config: Settings = default_settings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the backend with an HTTP client.

        Args:
            config: Settings holding endpoint and project id
            client: Optional preconfigured client (tests inject a mock transport)
        """
        self._client = client or httpx.AsyncClient(
            base_url=config.BACKEND_ENDPOINT,
            timeout=config.BACKEND_TIMEOUT,
        )
        self._client.headers.update(
            {
                "X-Appwrite-Project": config.BACKEND_PROJECT_ID,
                "X-Appwrite-Response-Format": RESPONSE_FORMAT,
            }
        )
        self._fallback_cookies: str | None = None

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    # ==================== Transport ====================

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        params: list[tuple[str, str]] | None = None,
        unauthorized: type[BackendError] = NoSessionError,
    ) -> Any:
        """Send a request and map failures onto the error taxonomy.

        Args:
            method: HTTP method
            path: Path relative to the endpoint
            json_body: Optional JSON payload
            params: Optional query parameters
            unauthorized: Error raised on a 401 answer

        Returns:
            The decoded JSON body, or None for empty responses
        """
        headers = {}
        if self._fallback_cookies:
            headers["X-Fallback-Cookies"] = self._fallback_cookies

        try:
            response = await self._client.request(
                method,
                path,
                json=json_body,
                params=params,
                headers=headers,
            )
        except httpx.RequestError as e:
            logger.warning(f"Backend unreachable on {method} {path}: {e}")
            raise BackendUnavailableError(f"Backend unreachable: {e}") from e

        fallback = response.headers.get("X-Fallback-Cookies")
        if fallback:
            self._fallback_cookies = fallback

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            return response.json()

        message = self._error_message(response)
        status_code = response.status_code
        logger.debug(f"Backend answered {status_code} on {method} {path}: {message}")

        if status_code == 429:
            raise BackendRateLimitedError(message, backend_status=status_code)
        if status_code == 401:
            raise unauthorized(message, backend_status=status_code)
        if status_code == 404:
            raise DocumentNotFoundError(message, backend_status=status_code)
        if status_code == 409:
            raise DuplicateAccountError(message, backend_status=status_code)
        if status_code == 400:
            raise InvalidArgumentError(message, backend_status=status_code)
        raise BackendError(message, backend_status=status_code)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return response.json().get("message") or response.reason_phrase
        except (ValueError, AttributeError):
            return response.reason_phrase or f"HTTP {response.status_code}"

    @staticmethod
    def _documents_path(database_id: str, collection_id: str) -> str:
        return f"/databases/{database_id}/collections/{collection_id}/documents"

    # ==================== Account & Sessions ====================

    async def create_account(
        self,
        account_id: str,
        email: str,
        secret: str,
        display_name: str | None = None,
    ) -> Account:
        body: dict[str, Any] = {
            "userId": account_id,
            "email": email,
            "password": secret,
        }
        if display_name:
            body["name"] = display_name

        payload = await self._request("POST", "/account", json_body=body)
        return decode(Account, payload)

    async def create_session(self, email: str, secret: str) -> Session:
        payload = await self._request(
            "POST",
            "/account/sessions/email",
            json_body={"email": email, "password": secret},
            unauthorized=InvalidCredentialsError,
        )
        return decode(Session, payload)

    async def delete_session(self, session_id: str = CURRENT_SESSION) -> None:
        await self._request("DELETE", f"/account/sessions/{session_id}")
        self._client.cookies.clear()
        self._fallback_cookies = None

    async def get_current_account(self) -> Account:
        payload = await self._request("GET", "/account")
        return decode(Account, payload)

    # ==================== Documents ====================

    async def get_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
    ) -> Document:
        payload = await self._request(
            "GET",
            f"{self._documents_path(database_id, collection_id)}/{document_id}",
        )
        return Document.from_payload(payload)

    async def create_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        fields: dict[str, Any],
        permissions: list[str] | None = None,
    ) -> Document:
        body: dict[str, Any] = {"documentId": document_id, "data": fields}
        if permissions is not None:
            body["permissions"] = permissions

        payload = await self._request(
            "POST",
            self._documents_path(database_id, collection_id),
            json_body=body,
        )
        return Document.from_payload(payload)

    async def update_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        fields: dict[str, Any],
        permissions: list[str] | None = None,
    ) -> Document:
        body: dict[str, Any] = {"data": fields}
        if permissions is not None:
            body["permissions"] = permissions

        payload = await self._request(
            "PATCH",
            f"{self._documents_path(database_id, collection_id)}/{document_id}",
            json_body=body,
        )
        return Document.from_payload(payload)

    async def list_documents(
        self,
        database_id: str,
        collection_id: str,
        filters: dict[str, Any] | None = None,
    ) -> list[Document]:
        params = [
            (
                "queries[]",
                json.dumps({"method": "equal", "attribute": attribute, "values": [value]}),
            )
            for attribute, value in (filters or {}).items()
        ]
        payload = await self._request(
            "GET",
            self._documents_path(database_id, collection_id),
            params=params,
        )
        if not isinstance(payload, dict):
            return []
        return [Document.from_payload(item) for item in payload.get("documents", [])]
