"""Application configuration using Pydantic Settings.

Loads configuration from environment variables and .env file.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, RedisDsn, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ============ Application Settings ============
    APP_NAME: str = "FamilySync"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = "development"

    # ============ Local Server Settings ============
    HOST: str = "127.0.0.1"
    PORT: int = 8765
    CORS_ORIGINS: list[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Origins of the UI allowed to call the local API",
    )

    # ============ Backend (BaaS) Settings ============
    BACKEND_ENDPOINT: str = Field(
        default="https://fra.cloud.appwrite.io/v1",
        description="Base URL of the identity & data backend",
    )
    BACKEND_PROJECT_ID: str = Field(
        default="",
        description="Backend project identifier",
    )
    BACKEND_TIMEOUT: float = Field(
        default=30.0,
        description="Timeout in seconds for backend round trips",
    )
    DATABASE_ID: str = Field(
        default="",
        description="Database holding the users and families collections",
    )
    USERS_COLLECTION_ID: str = "users"
    FAMILIES_COLLECTION_ID: str = "families"

    # ============ Federated Identity Settings ============
    STABLE_USER_ID_MAX_LENGTH: int = Field(
        default=36,
        description="Backend-imposed maximum length of account ids",
    )
    MEMBER_ID_MAX_LENGTH: int = Field(
        default=32,
        description="Maximum length of user ids stored in family documents",
    )
    SYNTHETIC_EMAIL_DOMAIN: str = Field(
        default="users.familysync.app",
        description="Domain of placeholder emails for providers without email",
    )
    CREDENTIAL_SALT: str = Field(
        default="familysync-federated-v1",
        description="Static salt of the derived credential secret",
    )

    # ============ Onboarding Settings ============
    FAMILY_NAME_MIN_LENGTH: int = 2
    FAMILY_NAME_MAX_LENGTH: int = 50
    INVITE_CODE_LENGTH: int = 16
    INVITE_CODE_MAX_ATTEMPTS: int = 5

    # ============ Local Storage Settings ============
    STORAGE_BACKEND: Literal["file", "redis"] = "file"
    LOCAL_STORE_PATH: Path = Field(
        default=Path.home() / ".familysync" / "preferences.json",
        description="JSON file holding device-scoped preferences",
    )

    # ============ Redis Settings ============
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str | None = None
    REDIS_DB: int = 0
    REDIS_KEY_PREFIX: str = "familysync"

    @computed_field  # type: ignore[misc]
    @property
    def REDIS_URL(self) -> RedisDsn:
        """Construct Redis connection URL."""
        if self.REDIS_PASSWORD:
            return RedisDsn.build(
                scheme="redis",
                password=self.REDIS_PASSWORD,
                host=self.REDIS_HOST,
                port=self.REDIS_PORT,
                path=str(self.REDIS_DB),
            )
        return RedisDsn.build(
            scheme="redis",
            host=self.REDIS_HOST,
            port=self.REDIS_PORT,
            path=str(self.REDIS_DB),
        )

    # ============ Logging Settings ============
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    # ============ OAuth Provider Settings ============
    GOOGLE_CLIENT_ID: str = Field(
        default="",
        description="Google OAuth Client ID",
    )
    APPLE_CLIENT_ID: str = Field(
        default="",
        description="Apple Client ID (bundle or Service ID)",
    )
    GITHUB_API_URL: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
