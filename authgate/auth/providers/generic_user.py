"""Plain principal wrapping a database row."""

from collections.abc import Mapping
from typing import Any


class GenericUser:
    """Attribute access over a row mapping, plus the authenticatable accessors."""

    def __init__(self, attributes: Mapping[str, Any], identifier_name: str = "id"):
        self.__dict__["_attributes"] = dict(attributes)
        self.__dict__["_identifier_name"] = identifier_name

    def __getattr__(self, key: str) -> Any:
        try:
            return self._attributes[key]
        except KeyError:
            raise AttributeError(key) from None

    def __setattr__(self, key: str, value: Any) -> None:
        self._attributes[key] = value

    def __getitem__(self, key: str) -> Any:
        return self._attributes[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self._attributes.get(key, default)

    def get_auth_identifier_name(self) -> str:
        return self._identifier_name

    def get_auth_identifier(self) -> Any:
        return self._attributes.get(self._identifier_name)

    def get_auth_password(self) -> str | None:
        return self._attributes.get("password_hash", self._attributes.get("password"))

    def get_remember_token(self) -> str | None:
        return self._attributes.get("remember_token")

    def set_remember_token(self, token: str) -> None:
        self._attributes["remember_token"] = token

    def to_dict(self) -> dict[str, Any]:
        return dict(self._attributes)

    def __repr__(self) -> str:
        return f"<GenericUser(id={self.get_auth_identifier()!r})>"
