"""FastAPI main application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from familysync.api.v1.router import api_router
from familysync.core.config import settings
from familysync.core.container import ServiceContainer
from familysync.core.exceptions import FamilySyncError
from familysync.core.logger import setup_logging
from familysync.infra.appwrite import AppwriteBackend
from familysync.infra.storage import create_local_store

logger = logging.getLogger(__name__)


def build_container() -> ServiceContainer:
    """Wire the services for the configured deployment."""
    return ServiceContainer.build(
        backend=AppwriteBackend(settings),
        store=create_local_store(settings),
        config=settings,
    )


async def familysync_error_handler(request: Request, exc: FamilySyncError) -> JSONResponse:
    """Render domain errors as JSON with their status code."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_application(container: ServiceContainer | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        container: Prebuilt services; built from settings at startup if omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application lifespan manager for startup and shutdown events."""
        setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Environment: {settings.ENVIRONMENT}")

        services = container or build_container()
        app.state.container = services
        await services.start()

        state = services.coordinator.state
        logger.info(
            f"Session restored: {state.is_authenticated}, "
            f"onboarding step: {services.onboarding.current_step.name}"
        )

        yield

        logger.info("Shutting down...")
        await services.close()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="FamilySync authentication and onboarding API",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(FamilySyncError, familysync_error_handler)

    # Include API routers
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
        }

    return app


# Create application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "familysync.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
