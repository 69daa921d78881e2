"""Session based authentication guard."""

import hashlib
import logging
from collections.abc import Mapping, MutableMapping
from typing import Any, Optional

from authgate.auth.providers.base import UserProvider
from authgate.utils.exceptions import ConfigurationError
from authgate.utils.security import generate_remember_token

from .base import StatefulGuard, auth_identifier

logger = logging.getLogger(__name__)


class SessionGuard(StatefulGuard):
    """
    Keep the authenticated user's identifier in a session mapping.

    The session is any mutable mapping; when bound to a Starlette request
    that went through ``SessionMiddleware`` the guard uses
    ``request.session``. Remember-me cookies are read from the request and
    queued in ``queued_cookies`` (a ``None`` value means "forget").
    """

    def __init__(
        self,
        name: str,
        provider: UserProvider,
        session: Optional[MutableMapping[str, Any]] = None,
        request: Any = None,
    ):
        super().__init__(provider)
        self.name = name
        self.session = session
        self.last_attempted: Any = None
        self.via_remember = False
        self.logged_out = False
        self.recall_attempted = False
        self.queued_cookies: dict[str, Optional[str]] = {}
        if request is not None:
            self.set_request(request)

    def _reset_state(self) -> None:
        super()._reset_state()
        self.last_attempted = None
        self.via_remember = False
        self.logged_out = False
        self.recall_attempted = False
        self.queued_cookies = {}

    def set_request(self, request: Any) -> "SessionGuard":
        self.request = request
        scope = getattr(request, "scope", None)
        if isinstance(scope, Mapping) and "session" in scope:
            self.session = request.session
        return self

    def set_session(self, session: MutableMapping[str, Any]) -> "SessionGuard":
        self.session = session
        return self

    # Principal

    async def user(self) -> Optional[Any]:
        if self.logged_out:
            return None

        if self._user is not None:
            return self._user

        identifier = self.session.get(self.get_name()) if self.session is not None else None
        if identifier is not None:
            self._user = await self.provider.retrieve_by_id(identifier)
            if self._user is not None:
                logger.info("auth.authenticated", extra={"guard": self.name, "user_id": identifier})

        if self._user is None and not self.recall_attempted:
            recaller = self.recaller()
            if recaller is not None:
                self._user = await self.user_from_recaller(recaller)
                if self._user is not None:
                    self.update_session(auth_identifier(self._user))
                    logger.info(
                        "auth.login",
                        extra={"guard": self.name, "user_id": auth_identifier(self._user), "remember": True},
                    )

        return self._user

    async def id(self) -> Optional[Any]:
        if self.logged_out:
            return None
        user = await self.user()
        if user is not None:
            return auth_identifier(user)
        return self.session.get(self.get_name()) if self.session is not None else None

    # Remember me

    def recaller(self) -> Optional[tuple[str, str]]:
        """Parse the ``<id>|<token>`` remember cookie from the request."""
        cookies = getattr(self.request, "cookies", None) or {}
        value = cookies.get(self.get_recaller_name())
        if not value:
            return None

        segments = value.split("|")
        if len(segments) != 2 or not all(segments):
            return None
        return segments[0], segments[1]

    async def user_from_recaller(self, recaller: tuple[str, str]) -> Optional[Any]:
        if self.recall_attempted:
            return None
        self.recall_attempted = True

        identifier, token = recaller
        user = await self.provider.retrieve_by_token(identifier, token)
        self.via_remember = user is not None
        return user

    async def ensure_remember_token_is_set(self, user: Any) -> None:
        if not user.get_remember_token():
            await self.cycle_remember_token(user)

    async def cycle_remember_token(self, user: Any) -> None:
        token = generate_remember_token()
        user.set_remember_token(token)
        await self.provider.update_remember_token(user, token)

    def queue_recaller_cookie(self, user: Any) -> None:
        self.queued_cookies[self.get_recaller_name()] = f"{auth_identifier(user)}|{user.get_remember_token()}"

    # Credentials

    async def validate(self, credentials: Optional[Mapping[str, Any]] = None) -> bool:
        credentials = credentials or {}
        self.last_attempted = await self.provider.retrieve_by_credentials(credentials)
        return await self.has_valid_credentials(self.last_attempted, credentials)

    async def has_valid_credentials(self, user: Any, credentials: Mapping[str, Any]) -> bool:
        return user is not None and await self.provider.validate_credentials(user, credentials)

    async def attempt(self, credentials: Optional[Mapping[str, Any]] = None, remember: bool = False) -> bool:
        credentials = credentials or {}
        logger.info("auth.attempting", extra={"guard": self.name})

        self.last_attempted = await self.provider.retrieve_by_credentials(credentials)
        if await self.has_valid_credentials(self.last_attempted, credentials):
            await self.login(self.last_attempted, remember)
            return True

        logger.warning("auth.failed", extra={"guard": self.name})
        return False

    async def once(self, credentials: Optional[Mapping[str, Any]] = None) -> bool:
        """Authenticate for this request only, without touching the session."""
        if await self.validate(credentials):
            self.set_user(self.last_attempted)
            return True
        return False

    async def once_using_id(self, identifier: Any) -> Any:
        user = await self.provider.retrieve_by_id(identifier)
        if user is None:
            return False
        self.set_user(user)
        return user

    # Login / logout

    async def login(self, user: Any, remember: bool = False) -> None:
        self.update_session(auth_identifier(user))

        if remember:
            await self.ensure_remember_token_is_set(user)
            self.queue_recaller_cookie(user)

        logger.info("auth.login", extra={"guard": self.name, "user_id": auth_identifier(user), "remember": remember})
        self.set_user(user)

    async def login_using_id(self, identifier: Any, remember: bool = False) -> Any:
        user = await self.provider.retrieve_by_id(identifier)
        if user is None:
            return False
        await self.login(user, remember)
        return user

    async def logout(self) -> None:
        user = self._user
        self.clear_user_data_from_storage()

        if user is not None:
            logger.info("auth.logout", extra={"guard": self.name, "user_id": auth_identifier(user)})

        self._user = None
        self.logged_out = True

    def clear_user_data_from_storage(self) -> None:
        if self.session is not None:
            self.session.pop(self.get_name(), None)
        self.queued_cookies[self.get_recaller_name()] = None

    def update_session(self, identifier: Any) -> None:
        if self.session is None:
            raise ConfigurationError(f"Session guard [{self.name}] has no session store")
        self.session[self.get_name()] = identifier

    def set_user(self, user: Any) -> "SessionGuard":
        self._user = user
        self.logged_out = False
        return self

    # Naming

    def _name_hash(self) -> str:
        return hashlib.sha256(self.name.encode()).hexdigest()[:8]

    def get_name(self) -> str:
        """Session key holding the user identifier."""
        return f"auth_{self.name}_{self._name_hash()}"

    def get_recaller_name(self) -> str:
        """Cookie name of the remember-me token."""
        return f"remember_{self.name}_{self._name_hash()}"
