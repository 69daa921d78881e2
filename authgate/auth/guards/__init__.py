"""Authentication guards."""

from .base import Guard, StatefulGuard, auth_identifier
from .session_guard import SessionGuard
from .token_guard import TokenGuard

__all__ = [
    "Guard",
    "StatefulGuard",
    "SessionGuard",
    "TokenGuard",
    "auth_identifier",
]
