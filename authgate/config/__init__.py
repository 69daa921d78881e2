"""Configuration module."""

from .database import get_async_session_local
from .settings import Settings, settings

__all__ = ["Settings", "settings", "get_async_session_local"]
