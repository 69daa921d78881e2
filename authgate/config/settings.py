"""Application configuration using Pydantic settings."""

from typing import Any

from pydantic import Field, validator
from pydantic_settings import BaseSettings

from authgate.schemas.auth import AuthConfig


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # API Configuration
    API_TITLE: str = "authgate"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Ability gate, guard manager and authorization middleware"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    TESTING: bool = False

    # Database used by the model/database user providers
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./authgate.db", description="Async SQLAlchemy database URL"
    )

    # Monitoring
    LOG_LEVEL: str = "INFO"

    # Credential hashing (passlib scheme names)
    PASSWORD_HASH_SCHEMES: list[str] = ["bcrypt"]

    # Guards and user providers
    AUTH_DEFAULT_GUARD: str = "web"
    AUTH_GUARDS: dict[str, dict[str, Any]] = {
        "web": {"driver": "session", "provider": "users"},
        "api": {
            "driver": "token",
            "provider": "users",
            "input_key": "api_token",
            "storage_key": "api_token",
            "hash": False,
        },
    }
    AUTH_PROVIDERS: dict[str, dict[str, Any]] = {
        "users": {"driver": "model", "model": "authgate.models.user:User"},
    }

    @validator("ENVIRONMENT")
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed = ["development", "testing", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @validator("LOG_LEVEL")
    def validate_log_level(cls, v):
        """Normalise and validate the log level name."""
        level = v.upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    def auth_config(self) -> AuthConfig:
        """Build the guard/provider configuration consumed by the GuardManager."""
        return AuthConfig(
            default_guard=self.AUTH_DEFAULT_GUARD,
            guards=self.AUTH_GUARDS,
            providers=self.AUTH_PROVIDERS,
        )

    class Config:
        """Pydantic config."""

        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Global settings instance
settings = Settings()
