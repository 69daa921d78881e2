"""Security utilities for credential checks and remember tokens."""

import hashlib
import secrets
import string
from collections.abc import Sequence

from passlib.context import CryptContext


class Hasher:
    """Password hasher backed by a passlib ``CryptContext``."""

    def __init__(self, schemes: Sequence[str] = ("bcrypt",)):
        self.context = CryptContext(schemes=list(schemes), deprecated="auto")

    def make(self, value: str) -> str:
        """Hash a plain value."""
        return self.context.hash(value)

    def check(self, plain: str | None, hashed: str | None) -> bool:
        """Verify a plain value against its hash."""
        if not plain or not hashed:
            return False
        try:
            return self.context.verify(plain, hashed)
        except ValueError:
            # Hash string not recognised by any configured scheme
            return False

    def needs_rehash(self, hashed: str) -> bool:
        return self.context.needs_update(hashed)


def generate_random_string(length: int = 32) -> str:
    """Generate a random string of specified length."""
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_remember_token() -> str:
    """Generate a remember-me token."""
    return generate_random_string(60)


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings in constant time to prevent timing attacks."""
    return secrets.compare_digest(a.encode(), b.encode())


def hash_token(token: str) -> str:
    """Hash an API token for storage lookups."""
    return hashlib.sha256(token.encode()).hexdigest()
