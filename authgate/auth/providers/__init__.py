"""User providers."""

from .base import UserProvider
from .database_provider import DatabaseUserProvider
from .generic_user import GenericUser
from .model_provider import ModelUserProvider

__all__ = [
    "UserProvider",
    "DatabaseUserProvider",
    "ModelUserProvider",
    "GenericUser",
]
