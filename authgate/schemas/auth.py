"""Guard and user provider configuration schemas."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class GuardConfig(BaseModel):
    """Configuration of a single named guard.

    Driver specific fields (``input_key``, ``storage_key``, ``hash``...) are
    kept as extra attributes and handed to the driver factory untouched.
    """

    model_config = ConfigDict(extra="allow")

    driver: str = Field(..., description="Name of the guard driver, e.g. 'session' or 'token'")
    provider: Optional[str] = Field(None, description="Name of the user provider to use")

    def option(self, key: str, default: Any = None) -> Any:
        """Read a driver specific option."""
        extra = self.model_extra or {}
        return extra.get(key, default)


class ProviderConfig(BaseModel):
    """Configuration of a single named user provider."""

    model_config = ConfigDict(extra="allow")

    driver: str = Field(..., description="Name of the provider driver, e.g. 'model' or 'database'")
    model: Optional[str] = Field(None, description="Import path of the ORM model ('module:Class')")
    table: Optional[str] = Field(None, description="Table name for the database driver")

    def option(self, key: str, default: Any = None) -> Any:
        """Read a driver specific option."""
        extra = self.model_extra or {}
        return extra.get(key, default)


class AuthConfig(BaseModel):
    """Guards, user providers and the default guard name."""

    default_guard: str = "web"
    guards: dict[str, GuardConfig] = Field(default_factory=dict)
    providers: dict[str, ProviderConfig] = Field(default_factory=dict)
