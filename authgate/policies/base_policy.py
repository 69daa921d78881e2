"""Base policy classes and types."""

from enum import Enum
from typing import Any, Optional


class Action(str, Enum):
    """Standard resource abilities registered by ``Gate.resource``."""

    VIEW_ANY = "viewAny"
    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    @property
    def method(self) -> str:
        """Name of the policy method backing this ability."""
        return RESOURCE_METHODS[self.value]


# Ability suffix -> policy method name
RESOURCE_METHODS: dict[str, str] = {
    "viewAny": "view_any",
    "view": "view",
    "create": "create",
    "update": "update",
    "delete": "delete",
}


class BasePolicy:
    """
    Base class for resource policies.

    Subclasses add one method per ability, called as
    ``method(user, resource, *extra)`` and returning a bool (or an awaitable
    bool). Subclassing is optional: any object exposing such methods can be
    bound to a resource.

    Usage:
        class PostPolicy(BasePolicy):
            def before(self, user, ability, *args):
                if user and user.role == "admin":
                    return True
                return None

            def update(self, user, post):
                return user.id == post.user_id
    """

    def before(self, user: Any, ability: str, *args: Any) -> Optional[bool]:
        """Return True/False to decide every ability up front, None to continue."""
        return None

    @staticmethod
    def _is_owner(user: Any, resource: Any, owner_field: str = "user_id") -> bool:
        """Check if user owns the resource."""
        if user is None or resource is None:
            return False
        return getattr(resource, owner_field, None) == getattr(user, "id", None)
