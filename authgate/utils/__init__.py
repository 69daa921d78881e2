"""Utility functions and classes."""

from .callbacks import import_string, resolve_result, snake_case
from .exceptions import *
from .security import *

__all__ = [
    # Callbacks
    "resolve_result",
    "import_string",
    "snake_case",
    # Security
    "Hasher",
    "generate_random_string",
    "generate_remember_token",
    "constant_time_compare",
    "hash_token",
    # Exceptions
    "BaseAuthException",
    "AuthenticationError",
    "AuthorizationError",
    "ForbiddenError",
    "ConfigurationError",
    "GuardNotDefinedError",
    "DriverNotDefinedError",
    "ProviderNotDefinedError",
    "GateNotAvailableError",
    "UnsupportedGuardOperationError",
]
