"""API token authentication guard."""

import base64
import binascii
from collections.abc import Mapping
from typing import Any, Optional

from authgate.auth.providers.base import UserProvider
from authgate.utils.security import hash_token

from .base import Guard


class TokenGuard(Guard):
    """
    Authenticate a request by an API token stored on the user record.

    The token is read from the ``input_key`` query parameter, then the
    ``Authorization: Bearer`` header, then the password half of
    ``Authorization: Basic``. It is matched against the ``storage_key``
    column, sha256-hashed first when ``hash`` is set.
    """

    def __init__(
        self,
        provider: UserProvider,
        input_key: str = "api_token",
        storage_key: str = "api_token",
        hash: bool = False,
        name: str = "",
    ):
        super().__init__(provider)
        self.name = name
        self.input_key = input_key
        self.storage_key = storage_key
        self.hash = hash

    async def user(self) -> Optional[Any]:
        if self._user is not None:
            return self._user

        token = self.get_token_for_request()
        if not token:
            return None

        self._user = await self.provider.retrieve_by_credentials({self.storage_key: self._stored_value(token)})
        return self._user

    def get_token_for_request(self) -> Optional[str]:
        """Extract the API token from the bound request."""
        if self.request is None:
            return None

        query_params = getattr(self.request, "query_params", None) or {}
        token = query_params.get(self.input_key)
        if token:
            return token

        header = self._authorization_header()
        if header.startswith("Bearer "):
            token = header[len("Bearer "):].strip()
            if token:
                return token

        if header.startswith("Basic "):
            try:
                decoded = base64.b64decode(header[len("Basic "):]).decode()
            except (binascii.Error, UnicodeDecodeError):
                return None
            _, _, password = decoded.partition(":")
            return password or None

        return None

    def _authorization_header(self) -> str:
        headers = getattr(self.request, "headers", None) or {}
        return headers.get("authorization", "")

    def _stored_value(self, token: str) -> str:
        return hash_token(token) if self.hash else token

    async def validate(self, credentials: Optional[Mapping[str, Any]] = None) -> bool:
        credentials = credentials or {}
        token = credentials.get(self.input_key)
        if not token:
            return False

        user = await self.provider.retrieve_by_credentials({self.storage_key: self._stored_value(token)})
        return user is not None
