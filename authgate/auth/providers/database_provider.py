"""User provider issuing plain table queries, without an ORM model."""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, column, literal_column, select, table, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authgate.utils.security import Hasher

from .base import UserProvider
from .generic_user import GenericUser


class DatabaseUserProvider(UserProvider):
    """Resolve principals from a table; rows come back as ``GenericUser``."""

    def __init__(
        self,
        hasher: Hasher,
        table_name: str,
        session_factory: async_sessionmaker[AsyncSession],
        identifier_name: str = "id",
    ):
        super().__init__(hasher)
        self.table = table_name
        self.session_factory = session_factory
        self.identifier_name = identifier_name

    def _select(self):
        return select(literal_column("*")).select_from(table(self.table))

    async def _first(self, query) -> Optional[GenericUser]:
        async with self.session_factory() as session:
            result = await session.execute(query.limit(1))
            row = result.mappings().first()
        return self.get_generic_user(row) if row is not None else None

    async def retrieve_by_id(self, identifier: Any) -> Optional[GenericUser]:
        return await self._first(self._select().where(column(self.identifier_name) == identifier))

    async def retrieve_by_token(self, identifier: Any, token: str) -> Optional[GenericUser]:
        user = await self.retrieve_by_id(identifier)
        if user is None:
            return None
        return user if self._token_matches(user.get_remember_token(), token) else None

    async def update_remember_token(self, user: GenericUser, token: str) -> None:
        users = table(
            self.table,
            column(self.identifier_name),
            column("remember_token"),
            column("updated_at", DateTime(timezone=True)),
        )
        statement = (
            update(users)
            .where(users.c[self.identifier_name] == user.get_auth_identifier())
            .values(remember_token=token, updated_at=datetime.now(timezone.utc))
        )
        async with self.session_factory() as session:
            await session.execute(statement)
            await session.commit()
        user.set_remember_token(token)

    async def retrieve_by_credentials(self, credentials: Mapping[str, Any]) -> Optional[GenericUser]:
        conditions = self._lookup_conditions(credentials)
        if not conditions:
            return None

        query = self._select()
        for key, value in conditions.items():
            if isinstance(value, (list, tuple, set)):
                query = query.where(column(key).in_(list(value)))
            else:
                query = query.where(column(key) == value)
        return await self._first(query)

    def get_generic_user(self, row: Mapping[str, Any]) -> GenericUser:
        return GenericUser(row, identifier_name=self.identifier_name)
