"""
Authorization dependencies for FastAPI routes.

Each factory returns an ``async (request) -> None`` callable meant for
``Depends``; it passes through when the principal on ``request.state.user``
is allowed and raises ``ForbiddenError`` otherwise.

Usage:
    router = APIRouter(dependencies=[Depends(authenticate("api"))])

    @router.delete("/posts/{post_id}", dependencies=[Depends(authorize("post.delete", resource=load_post))])
    async def delete_post(post_id: int):
        ...

    @router.get("/moderation", dependencies=[Depends(require_role(["admin", "moderator"], require_all=False))])
    async def moderation_queue():
        ...
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Optional, Union

from fastapi import Request

from authgate.dependencies.auth import get_current_user, get_gate
from authgate.utils.callbacks import resolve_result
from authgate.utils.exceptions import ForbiddenError

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = "User not authenticated"


def _as_list(values: Union[str, Iterable[str]]) -> list[str]:
    if isinstance(values, str):
        return [values]
    return list(values)


def _field(principal: Any, name: str) -> Any:
    """Read a principal field from an attribute or a mapping key."""
    if isinstance(principal, Mapping):
        return principal.get(name)
    return getattr(principal, name, None)


def _require_principal(request: Request) -> Any:
    user = get_current_user(request)
    if user is None:
        raise ForbiddenError(NOT_AUTHENTICATED)
    return user


def _matches(required: list[str], granted: set, require_all: bool) -> bool:
    if require_all:
        return all(item in granted for item in required)
    return any(item in granted for item in required)


def _deny(request: Request, message: str, **context: Any) -> ForbiddenError:
    logger.warning(
        f"Authorization denied for {request.method} {request.url.path}: {message}",
        extra={"path": str(request.url.path), "method": request.method, **context},
    )
    return ForbiddenError(message, details=context)


def authorize(
    abilities: Union[str, Iterable[str]],
    *,
    require_all: bool = True,
    message: Optional[str] = None,
    resource: Any = None,
) -> Callable:
    """
    Require gate abilities for the request principal.

    ``resource`` is passed to the gate as the first ability argument. A
    callable resource is called with the request (and awaited if needed) to
    load the resource per request.
    """
    ability_list = _as_list(abilities)

    async def dependency(request: Request) -> None:
        _require_principal(request)
        gate = get_gate(request)
        args = await _resource_args(resource, request)

        if require_all:
            for ability in ability_list:
                if not await gate.allows(ability, args):
                    raise _deny(
                        request,
                        message or f"You do not have permission to {ability}",
                        abilities=ability_list,
                        ability=ability,
                    )
            return

        for ability in ability_list:
            if await gate.allows(ability, args):
                return

        raise _deny(
            request,
            message or "You do not have the required permissions",
            abilities=ability_list,
        )

    return dependency


async def _resource_args(resource: Any, request: Request) -> list:
    if resource is None:
        return []
    if callable(resource) and not isinstance(resource, type):
        resource = await resolve_result(resource(request))
    return [resource]


def require_role(
    roles: Union[str, Iterable[str]],
    *,
    require_all: bool = True,
    message: Optional[str] = None,
) -> Callable:
    """Require roles found on ``principal.role`` or ``principal.roles``."""
    role_list = _as_list(roles)

    async def dependency(request: Request) -> None:
        user = _require_principal(request)

        granted = set(_as_list(_field(user, "roles") or []))
        role = _field(user, "role")
        if role:
            granted.update(_as_list(role))

        if not _matches(role_list, granted, require_all):
            raise _deny(request, message or "You do not have the required role(s)", roles=role_list)

    return dependency


def require_permission(
    permissions: Union[str, Iterable[str]],
    *,
    require_all: bool = True,
    message: Optional[str] = None,
) -> Callable:
    """Require permissions found on ``principal.permissions``."""
    permission_list = _as_list(permissions)

    async def dependency(request: Request) -> None:
        user = _require_principal(request)

        granted = set(_as_list(_field(user, "permissions") or []))

        if not _matches(permission_list, granted, require_all):
            raise _deny(request, message or "You do not have the required permission(s)", permissions=permission_list)

    return dependency
