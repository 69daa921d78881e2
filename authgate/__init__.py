"""Ability gate, guard manager and authorization middleware."""

from .auth import GuardManager
from .middleware.authorize import authorize, require_permission, require_role
from .policies import BasePolicy, Gate
from .utils.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ForbiddenError,
)

__version__ = "1.0.0"

__all__ = [
    "Gate",
    "BasePolicy",
    "GuardManager",
    "authorize",
    "require_role",
    "require_permission",
    "AuthenticationError",
    "AuthorizationError",
    "ForbiddenError",
    "ConfigurationError",
]
