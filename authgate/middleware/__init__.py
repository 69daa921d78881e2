"""Middleware package."""

from .auth_middleware import AuthMiddleware
from .authorize import authorize, require_permission, require_role
from .exception_handler import ExceptionHandlers, register_exception_handlers

__all__ = [
    "AuthMiddleware",
    "ExceptionHandlers",
    "register_exception_handlers",
    "authorize",
    "require_role",
    "require_permission",
]
