"""FastAPI dependencies."""

from .auth import *

__all__ = [
    "authenticate",
    "optional_auth",
    "get_auth_manager",
    "get_current_user",
    "get_gate",
]
