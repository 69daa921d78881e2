"""Guard contracts."""

import copy
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Optional

from authgate.auth.providers.base import UserProvider


def auth_identifier(user: Any) -> Any:
    """Identifier of an authenticatable principal."""
    getter = getattr(user, "get_auth_identifier", None)
    if callable(getter):
        return getter()
    return getattr(user, "id", None)


class Guard(ABC):
    """
    Authentication strategy resolving the current principal.

    Guards memoized by the GuardManager are templates: ``for_request``
    returns a copy bound to one request, with its own principal state.
    """

    name: str = ""

    def __init__(self, provider: Optional[UserProvider]):
        self.provider = provider
        self.request: Any = None
        self._user: Any = None

    @abstractmethod
    async def user(self) -> Optional[Any]:
        """Get the authenticated user, if any."""

    @abstractmethod
    async def validate(self, credentials: Optional[Mapping[str, Any]] = None) -> bool:
        """Check credentials without logging anybody in."""

    async def check(self) -> bool:
        """Check if a user is authenticated."""
        return await self.user() is not None

    async def guest(self) -> bool:
        """Check if the current request is a guest."""
        return not await self.check()

    async def id(self) -> Optional[Any]:
        """Get the authenticated user's identifier."""
        user = await self.user()
        return auth_identifier(user) if user is not None else None

    def has_user(self) -> bool:
        return self._user is not None

    def set_user(self, user: Any) -> "Guard":
        self._user = user
        return self

    def set_request(self, request: Any) -> "Guard":
        self.request = request
        return self

    def get_provider(self) -> Optional[UserProvider]:
        return self.provider

    def for_request(self, request: Any) -> "Guard":
        """Return a fresh copy of this guard bound to ``request``."""
        guard = copy.copy(self)
        guard._reset_state()
        guard.set_request(request)
        return guard

    def _reset_state(self) -> None:
        self._user = None


class StatefulGuard(Guard):
    """Guard able to log principals in and out."""

    @abstractmethod
    async def attempt(self, credentials: Optional[Mapping[str, Any]] = None, remember: bool = False) -> bool:
        """Validate credentials and log the user in on success."""

    @abstractmethod
    async def login(self, user: Any, remember: bool = False) -> None:
        """Log a user in."""

    @abstractmethod
    async def login_using_id(self, identifier: Any, remember: bool = False) -> Any:
        """Log a user in by identifier; returns the user or False."""

    @abstractmethod
    async def logout(self) -> None:
        """Log the current user out."""
