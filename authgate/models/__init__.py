"""Database models."""

from .base import Authenticatable, Base, TimestampMixin
from .user import User

__all__ = [
    "Authenticatable",
    "Base",
    "TimestampMixin",
    "User",
]
