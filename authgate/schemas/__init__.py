"""Pydantic schemas."""

from .auth import AuthConfig, GuardConfig, ProviderConfig

__all__ = [
    "AuthConfig",
    "GuardConfig",
    "ProviderConfig",
]
