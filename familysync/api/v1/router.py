"""API v1 main router - aggregates all domain routers."""

from fastapi import APIRouter

from familysync.api.v1.endpoints import auth, onboarding

api_router = APIRouter()

# Include authentication endpoints
api_router.include_router(
    auth.router,
    tags=["Authentication"],
)

# Include onboarding endpoints
api_router.include_router(
    onboarding.router,
    tags=["Onboarding"],
)
