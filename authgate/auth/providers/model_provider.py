"""User provider backed by a SQLAlchemy ORM model."""

from collections.abc import Mapping
from typing import Any, Optional, Union

from sqlalchemy import inspect as sa_inspect
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authgate.utils.callbacks import import_string
from authgate.utils.security import Hasher

from .base import UserProvider


class ModelUserProvider(UserProvider):
    """
    Resolve principals through an ORM model.

    ``model`` is the mapped class or a ``"package.module:Class"`` reference,
    imported on first use.
    """

    def __init__(
        self,
        hasher: Hasher,
        model: Union[str, type],
        session_factory: async_sessionmaker[AsyncSession],
    ):
        super().__init__(hasher)
        self.model = model
        self.session_factory = session_factory
        self._model_class: Optional[type] = None

    def create_model(self) -> type:
        """Return the mapped model class, importing it if needed."""
        if self._model_class is None:
            self._model_class = import_string(self.model) if isinstance(self.model, str) else self.model
        return self._model_class

    def get_model(self) -> Union[str, type]:
        return self.model

    def set_model(self, model: Union[str, type]) -> "ModelUserProvider":
        self.model = model
        self._model_class = None
        return self

    def _identifier_column(self, model: type) -> Any:
        name_getter = getattr(model, "get_auth_identifier_name", None)
        name = name_getter() if callable(name_getter) else "id"
        return getattr(model, name)

    async def retrieve_by_id(self, identifier: Any) -> Optional[Any]:
        model = self.create_model()
        async with self.session_factory() as session:
            result = await session.execute(select(model).where(self._identifier_column(model) == identifier))
            return result.scalar_one_or_none()

    async def retrieve_by_token(self, identifier: Any, token: str) -> Optional[Any]:
        user = await self.retrieve_by_id(identifier)
        if user is None:
            return None

        getter = getattr(user, "get_remember_token", None)
        remember_token = getter() if callable(getter) else getattr(user, "remember_token", None)

        return user if self._token_matches(remember_token, token) else None

    async def update_remember_token(self, user: Any, token: str) -> None:
        setter = getattr(user, "set_remember_token", None)
        if callable(setter):
            setter(token)
        else:
            user.remember_token = token

        async with self.session_factory() as session:
            await session.merge(user)
            await session.commit()

    async def retrieve_by_credentials(self, credentials: Mapping[str, Any]) -> Optional[Any]:
        conditions = self._lookup_conditions(credentials)
        if not conditions:
            return None

        model = self.create_model()
        columns = sa_inspect(model).columns
        query = select(model)
        for key, value in conditions.items():
            # Unknown fields match nobody
            if key not in columns:
                return None
            column = getattr(model, key)
            if isinstance(value, (list, tuple, set)):
                query = query.where(column.in_(list(value)))
            else:
                query = query.where(column == value)

        async with self.session_factory() as session:
            result = await session.execute(query.limit(1))
            return result.scalars().first()

    async def validate_credentials(self, user: Any, credentials: Mapping[str, Any]) -> bool:
        getter = getattr(user, "get_auth_password", None)
        hashed = getter() if callable(getter) else getattr(user, "password_hash", None)
        return self.hasher.check(credentials.get("password"), hashed)
