"""Guard manager: named guard resolution and identity proxies."""

import asyncio
import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authgate.config.settings import settings
from authgate.schemas.auth import AuthConfig, GuardConfig, ProviderConfig
from authgate.utils.exceptions import (
    ConfigurationError,
    DriverNotDefinedError,
    GuardNotDefinedError,
    ProviderNotDefinedError,
    UnsupportedGuardOperationError,
)
from authgate.utils.security import Hasher

from .guards import Guard, SessionGuard, StatefulGuard, TokenGuard
from .providers import DatabaseUserProvider, ModelUserProvider, UserProvider

logger = logging.getLogger(__name__)

# (manager, guard name, guard config) -> guard, or an awaitable of one
DriverFactory = Callable[["GuardManager", str, GuardConfig], Any]
# (manager, provider config) -> user provider
ProviderFactory = Callable[["GuardManager", ProviderConfig], UserProvider]


class GuardManager:
    """
    Resolve and memoize named guards.

    Drivers and user providers are looked up in explicit registries keyed by
    the ``driver`` field of their configuration. ``extend`` and
    ``extend_provider`` add custom factories which take precedence over the
    built-in ones.

    Usage:
        auth = GuardManager(settings.auth_config())
        auth.extend("header", lambda manager, name, config: HeaderGuard(...))

        guard = auth.guard("api").for_request(request)
        user = await guard.user()
    """

    def __init__(
        self,
        config: Optional[AuthConfig] = None,
        *,
        hasher: Optional[Hasher] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    ):
        self.config = config if config is not None else settings.auth_config()
        self.hasher = hasher or Hasher(settings.PASSWORD_HASH_SCHEMES)
        self._session_factory = session_factory

        self._guards: dict[str, Guard] = {}
        self._resolving: dict[str, asyncio.Task] = {}
        self._default_guard: Optional[str] = None

        self._drivers: dict[str, Callable[[str, GuardConfig], Guard]] = {
            "session": self.create_session_driver,
            "token": self.create_token_driver,
        }
        self._providers: dict[str, Callable[[ProviderConfig], UserProvider]] = {
            "model": self.create_model_provider,
            "database": self.create_database_provider,
        }
        self._custom_creators: dict[str, DriverFactory] = {}
        self._custom_provider_creators: dict[str, ProviderFactory] = {}

        self.user_resolver: Callable[..., Any] = self._resolve_default_user

    # Guards

    def guard(self, name: Optional[str] = None) -> Guard:
        """Get a guard instance by name, building it on first use."""
        name = name or self.get_default_driver()

        if name not in self._guards:
            guard = self.resolve(name)
            if inspect.isawaitable(guard):
                if inspect.iscoroutine(guard):
                    guard.close()
                raise ConfigurationError(
                    f"Auth driver for guard [{name}] is asynchronous; resolve it with guard_async().",
                    details={"guard": name},
                )
            self._remember(name, guard)

        return self._guards[name]

    async def guard_async(self, name: Optional[str] = None) -> Guard:
        """
        Get a guard instance, awaiting asynchronous driver factories.

        Concurrent first resolutions of the same name share one in-flight
        construction.
        """
        name = name or self.get_default_driver()

        if name in self._guards:
            return self._guards[name]

        task = self._resolving.get(name)
        if task is None:
            task = asyncio.ensure_future(self._resolve_async(name))
            self._resolving[name] = task

        return await asyncio.shield(task)

    async def _resolve_async(self, name: str) -> Guard:
        try:
            guard = self.resolve(name)
            if inspect.isawaitable(guard):
                guard = await guard
            return self._remember(name, guard)
        finally:
            self._resolving.pop(name, None)

    def _remember(self, name: str, guard: Guard) -> Guard:
        cached = self._guards.setdefault(name, guard)
        if cached is guard:
            logger.info(f"Resolved auth guard [{name}]", extra={"guard": name, "guard_class": type(guard).__name__})
        return cached

    def resolve(self, name: str) -> Any:
        """Build the guard ``name`` from its configuration."""
        config = self.get_config(name)
        if config is None:
            raise GuardNotDefinedError(name)

        custom = self._custom_creators.get(config.driver)
        if custom is not None:
            return custom(self, name, config)

        factory = self._drivers.get(config.driver)
        if factory is None:
            raise DriverNotDefinedError(config.driver, name)

        return factory(name, config)

    def create_session_driver(self, name: str, config: GuardConfig) -> SessionGuard:
        provider = self._require_provider(name, config)
        return SessionGuard(name, provider)

    def create_token_driver(self, name: str, config: GuardConfig) -> TokenGuard:
        provider = self._require_provider(name, config)
        return TokenGuard(
            provider,
            input_key=config.option("input_key", "api_token"),
            storage_key=config.option("storage_key", "api_token"),
            hash=bool(config.option("hash", False)),
            name=name,
        )

    def _require_provider(self, name: str, config: GuardConfig) -> UserProvider:
        provider = self.create_user_provider(config.provider)
        if provider is None:
            raise ConfigurationError(f"Auth guard [{name}] requires a user provider.", details={"guard": name})
        return provider

    def extend(self, driver: str, factory: DriverFactory) -> "GuardManager":
        """Register a custom guard driver."""
        self._custom_creators[driver] = factory
        return self

    def forget_guards(self) -> "GuardManager":
        """Drop every memoized guard."""
        self._guards.clear()
        return self

    # User providers

    def create_user_provider(self, provider: Optional[str] = None) -> Optional[UserProvider]:
        """Build the named user provider; ``None`` when no provider is named."""
        if not provider:
            return None

        config = self.get_provider_config(provider)
        if config is None:
            raise ProviderNotDefinedError(f"User provider [{provider}] is not defined.", provider=provider)

        custom = self._custom_provider_creators.get(config.driver)
        if custom is not None:
            return custom(self, config)

        factory = self._providers.get(config.driver)
        if factory is None:
            raise ProviderNotDefinedError(
                f"User provider driver [{config.driver}] is not defined.",
                provider=provider,
            )

        return factory(config)

    def create_model_provider(self, config: ProviderConfig) -> ModelUserProvider:
        if not config.model:
            raise ConfigurationError("The model user provider requires a 'model' setting.")
        return ModelUserProvider(self.hasher, config.model, self.session_factory)

    def create_database_provider(self, config: ProviderConfig) -> DatabaseUserProvider:
        if not config.table:
            raise ConfigurationError("The database user provider requires a 'table' setting.")
        return DatabaseUserProvider(
            self.hasher,
            config.table,
            self.session_factory,
            identifier_name=config.option("identifier", "id"),
        )

    def extend_provider(self, driver: str, factory: ProviderFactory) -> "GuardManager":
        """Register a custom user provider driver."""
        self._custom_provider_creators[driver] = factory
        return self

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            from authgate.config.database import get_async_session_local

            self._session_factory = get_async_session_local()
        return self._session_factory

    # Configuration

    def get_config(self, name: str) -> Optional[GuardConfig]:
        return self.config.guards.get(name)

    def get_provider_config(self, provider: str) -> Optional[ProviderConfig]:
        return self.config.providers.get(provider)

    def get_default_driver(self) -> str:
        """Name of the default guard."""
        return self._default_guard or self.config.default_guard

    def set_default_driver(self, name: str) -> None:
        self._default_guard = name

    def should_use(self, name: Optional[str]) -> Guard:
        """Make ``name`` the default guard and return it."""
        name = name or self.get_default_driver()
        self.set_default_driver(name)
        self.user_resolver = self._resolve_default_user
        return self.guard(name)

    def resolve_users_using(self, callback: Callable[..., Any]) -> "GuardManager":
        """Replace the callable used to resolve the current user."""
        self.user_resolver = callback
        return self

    async def _resolve_default_user(self, guard: Optional[str] = None) -> Optional[Any]:
        return await self.guard(guard).user()

    # Proxies to the default guard
    #
    # Proxies act on the memoized guard shared by the whole process. Code
    # handling a request should call ``guard(name).for_request(request)``
    # instead, so identity state stays with that request.

    def _stateful(self, operation: str, guard: Optional[str] = None) -> StatefulGuard:
        instance = self.guard(guard)
        if not isinstance(instance, StatefulGuard):
            raise UnsupportedGuardOperationError(guard or self.get_default_driver(), operation)
        return instance

    async def user(self, guard: Optional[str] = None) -> Optional[Any]:
        return await self.guard(guard).user()

    async def id(self, guard: Optional[str] = None) -> Optional[Any]:
        return await self.guard(guard).id()

    async def check(self, guard: Optional[str] = None) -> bool:
        return await self.guard(guard).check()

    async def guest(self, guard: Optional[str] = None) -> bool:
        return await self.guard(guard).guest()

    async def validate(self, credentials: Optional[Mapping[str, Any]] = None, guard: Optional[str] = None) -> bool:
        return await self.guard(guard).validate(credentials)

    async def attempt(
        self,
        credentials: Optional[Mapping[str, Any]] = None,
        remember: bool = False,
        guard: Optional[str] = None,
    ) -> bool:
        return await self._stateful("attempt", guard).attempt(credentials, remember)

    async def login(self, user: Any, remember: bool = False, guard: Optional[str] = None) -> None:
        return await self._stateful("login", guard).login(user, remember)

    async def login_using_id(self, identifier: Any, remember: bool = False, guard: Optional[str] = None) -> Any:
        return await self._stateful("login_using_id", guard).login_using_id(identifier, remember)

    async def logout(self, guard: Optional[str] = None) -> None:
        return await self._stateful("logout", guard).logout()
