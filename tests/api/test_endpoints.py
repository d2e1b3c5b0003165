"""
Tests for the HTTP API.

The application runs with an in-memory backend container; the lifespan
restores the session and onboarding state like a real process start.
"""

import pytest
from fastapi.testclient import TestClient

from familysync.core.container import ServiceContainer
from familysync.domains.user.identity import FederatedCredential, derive_stable_user_id
from familysync.domains.user.models import AuthProvider
from familysync.domains.user.social_auth import SocialAuthError
from familysync.main import create_application

SIGN_IN_BODY = {
    "provider": "apple",
    "handle": "001234.abcdef.0042",
    "given_name": "Jane",
    "family_name": "Doe",
}


@pytest.fixture
def client(container):
    with TestClient(create_application(container)) as test_client:
        yield test_client


@pytest.fixture
def signed_in(client):
    response = client.post("/api/v1/auth/sign-in", json=SIGN_IN_BODY)
    assert response.status_code == 200
    return response.json()


class TestHealth:
    """Tests for health endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health_is_served_once(self, client):
        """Only the application-level health route exists."""
        assert client.get("/api/v1/health").status_code == 404
        assert client.get("/api/v1/").status_code == 404


class TestAuthEndpoints:
    """Tests for /api/v1/auth."""

    def test_initial_state(self, client):
        """A fresh process is signed out."""
        response = client.get("/api/v1/auth/state")

        assert response.status_code == 200
        body = response.json()
        assert body["is_authenticated"] is False
        assert body["current_provider"] == "none"
        assert body["current_user"] is None

    def test_sign_in(self, signed_in):
        assert signed_in["is_authenticated"] is True
        assert signed_in["current_provider"] == "apple"
        assert signed_in["current_user"]["user_id"] == derive_stable_user_id("001234.abcdef.0042")
        assert signed_in["current_user"]["name"] == "Jane Doe"

    def test_state_after_sign_in(self, client, signed_in):
        body = client.get("/api/v1/auth/state").json()

        assert body["is_authenticated"] is True

    def test_blank_handle(self, client):
        """A blank handle is a validation failure naming the field."""
        response = client.post("/api/v1/auth/sign-in", json={**SIGN_IN_BODY, "handle": "   "})

        assert response.status_code == 422
        assert response.json()["error"] == "validation_failed"
        assert response.json()["field"] == "handle"

    def test_rate_limited(self, client, backend):
        backend.rate_limited = True

        response = client.post("/api/v1/auth/sign-in", json=SIGN_IN_BODY)

        assert response.status_code == 429
        assert response.json()["error"] == "rate_limited"
        state = client.get("/api/v1/auth/state").json()
        assert state["last_error"] == "rate_limited"
        assert state["is_authenticated"] is False

    def test_sign_out(self, client, signed_in):
        response = client.post("/api/v1/auth/sign-out")

        assert response.status_code == 200
        assert response.json()["is_authenticated"] is False

    def test_token_sign_in(self, client, resolver):
        """Provider tokens are resolved before signing in."""
        resolver.resolve.return_value = FederatedCredential(
            provider=AuthProvider.GITHUB,
            handle="github:583231",
            given_name="octocat",
        )

        response = client.post(
            "/api/v1/auth/sign-in/token",
            json={"provider": "github", "token": "gh-token"},
        )

        assert response.status_code == 200
        assert response.json()["current_user"]["user_id"] == derive_stable_user_id("github:583231")
        resolver.resolve.assert_awaited_once_with(
            AuthProvider.GITHUB,
            "gh-token",
            given_name=None,
            family_name=None,
        )

    def test_token_rejected(self, client, resolver):
        resolver.resolve.side_effect = SocialAuthError("Invalid GitHub token", AuthProvider.GITHUB)

        response = client.post(
            "/api/v1/auth/sign-in/token",
            json={"provider": "github", "token": "bad"},
        )

        assert response.status_code == 401
        assert response.json() == {
            "error": "authentication_failed",
            "detail": "Invalid GitHub token",
        }


class TestOnboardingEndpoints:
    """Tests for /api/v1/onboarding."""

    def test_initial_state(self, client):
        body = client.get("/api/v1/onboarding/state").json()

        assert body["current_step"] == 1
        assert body["step_name"] == "sign_in"
        assert body["total_steps"] == 4
        assert body["should_show_onboarding"] is True

    def test_full_flow(self, client, signed_in):
        """Sign in, create a family, set up the profile and complete."""
        state = client.get("/api/v1/onboarding/state").json()
        assert state["current_step"] == 2

        response = client.post("/api/v1/onboarding/family", json={"name": "The Smiths"})
        assert response.status_code == 200
        state = response.json()
        assert state["current_step"] == 3
        assert state["family"]["name"] == "The Smiths"
        assert state["family"]["invite_code"]

        response = client.post(
            "/api/v1/onboarding/profile",
            json={"name": "Jane", "birthday": "1990-05-17"},
        )
        assert response.status_code == 200
        state = response.json()
        assert state["current_step"] == 4
        assert state["cached_name"] == "Jane"
        assert state["cached_birthday"] == "1990-05-17"

        response = client.post("/api/v1/onboarding/complete")
        assert response.status_code == 200
        assert response.json()["has_completed_before"] is True
        assert response.json()["should_show_onboarding"] is False

    def test_invalid_invite_code(self, client, signed_in):
        response = client.post(
            "/api/v1/onboarding/family/join",
            json={"invite_code": "ABCD1234ABCD1234-S4X9K0"},
        )

        assert response.status_code == 404
        assert response.json()["error"] == "invalid_invite_code"
        assert client.get("/api/v1/onboarding/state").json()["current_step"] == 2

    def test_family_name_too_short(self, client, signed_in):
        response = client.post("/api/v1/onboarding/family", json={"name": "A"})

        assert response.status_code == 422
        assert response.json()["field"] == "family_name"

    def test_requires_sign_in(self, client):
        response = client.post("/api/v1/onboarding/family", json={"name": "The Smiths"})

        assert response.status_code == 401
        assert response.json()["error"] == "no_session"

    def test_navigation(self, client, signed_in):
        assert client.post("/api/v1/onboarding/next").json()["current_step"] == 3
        assert client.post("/api/v1/onboarding/previous").json()["current_step"] == 2

    def test_cannot_complete_early(self, client, signed_in):
        response = client.post("/api/v1/onboarding/complete")

        assert response.status_code == 422
        assert response.json()["field"] == "step"

    def test_session_restored_on_start(self, container, backend, store, resolver):
        """A backend session survives an application restart."""
        with TestClient(create_application(container)) as first:
            first.post("/api/v1/auth/sign-in", json=SIGN_IN_BODY)
            first.post("/api/v1/onboarding/family", json={"name": "The Smiths"})

        restarted = ServiceContainer.build(backend=backend, store=store, resolver=resolver)
        with TestClient(create_application(restarted)) as second:
            auth = second.get("/api/v1/auth/state").json()
            onboarding = second.get("/api/v1/onboarding/state").json()

        assert auth["is_authenticated"] is True
        assert onboarding["current_step"] == 3
