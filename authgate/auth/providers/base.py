"""User provider contract."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Optional

from authgate.utils.security import Hasher, constant_time_compare


class UserProvider(ABC):
    """Looks principals up in storage on behalf of a guard."""

    def __init__(self, hasher: Hasher):
        self.hasher = hasher

    @abstractmethod
    async def retrieve_by_id(self, identifier: Any) -> Optional[Any]:
        """Retrieve a user by their unique identifier."""

    @abstractmethod
    async def retrieve_by_token(self, identifier: Any, token: str) -> Optional[Any]:
        """Retrieve a user by identifier and remember-me token."""

    @abstractmethod
    async def update_remember_token(self, user: Any, token: str) -> None:
        """Persist a new remember-me token for ``user``."""

    @abstractmethod
    async def retrieve_by_credentials(self, credentials: Mapping[str, Any]) -> Optional[Any]:
        """Retrieve a user by credentials, ignoring any password field."""

    async def validate_credentials(self, user: Any, credentials: Mapping[str, Any]) -> bool:
        """Check the plain password in ``credentials`` against the user's hash."""
        return self.hasher.check(credentials.get("password"), user.get_auth_password())

    @staticmethod
    def _lookup_conditions(credentials: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        """Credential fields usable as query conditions."""
        if not credentials:
            return {}
        return {key: value for key, value in credentials.items() if "password" not in key}

    @staticmethod
    def _token_matches(stored: Optional[str], token: Optional[str]) -> bool:
        return bool(stored) and bool(token) and constant_time_compare(stored, token)
