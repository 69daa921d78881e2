"""Base model classes and mixins."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, func
from sqlalchemy.orm import Mapped, as_declarative, declared_attr, mapped_column


@as_declarative()
class Base:
    """Base model class."""

    id: Any
    __name__: str

    # Generate __tablename__ automatically
    @declared_attr
    def __tablename__(cls) -> str:
        return cls.__name__.lower()


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class Authenticatable:
    """Mixin giving a model the accessors guards and providers rely on."""

    __auth_identifier__ = "id"
    __auth_password__ = "password_hash"

    @classmethod
    def get_auth_identifier_name(cls) -> str:
        return cls.__auth_identifier__

    def get_auth_identifier(self) -> Any:
        return getattr(self, self.get_auth_identifier_name())

    def get_auth_password(self) -> str | None:
        return getattr(self, self.__auth_password__, None)

    def get_remember_token(self) -> str | None:
        return getattr(self, "remember_token", None)

    def set_remember_token(self, token: str) -> None:
        self.remember_token = token
