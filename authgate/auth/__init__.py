"""Authentication: guard manager, guards and user providers."""

from .guards import Guard, SessionGuard, StatefulGuard, TokenGuard
from .manager import GuardManager
from .providers import DatabaseUserProvider, GenericUser, ModelUserProvider, UserProvider

__all__ = [
    "GuardManager",
    "Guard",
    "StatefulGuard",
    "SessionGuard",
    "TokenGuard",
    "UserProvider",
    "ModelUserProvider",
    "DatabaseUserProvider",
    "GenericUser",
]
