"""API v1 endpoints."""

from familysync.api.v1.endpoints import auth, onboarding

__all__ = ["auth", "onboarding"]
