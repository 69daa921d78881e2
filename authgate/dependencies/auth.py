"""Authentication dependencies for FastAPI."""

import logging
from collections.abc import Callable
from typing import Any, Optional

from fastapi import Request

from authgate.auth.manager import GuardManager
from authgate.policies.gate import Gate
from authgate.utils.exceptions import AuthenticationError, ConfigurationError, GateNotAvailableError

logger = logging.getLogger(__name__)


def _bound(request: Request, attribute: str) -> Optional[Any]:
    """Look a service up on the request first, then on the application."""
    value = getattr(request.state, attribute, None)
    if value is None:
        value = getattr(request.app.state, attribute, None)
    return value


def get_gate(request: Request) -> Gate:
    """
    Get the Gate bound to this request or, failing that, to the app.

    Once a principal slot exists on the request (set by ``AuthMiddleware``,
    ``authenticate()`` or the host app), the gate is forked for that
    principal, so checks see this request's identity and nothing else.
    """
    gate = _bound(request, "gate")
    if gate is None:
        raise GateNotAvailableError()
    if hasattr(request.state, "user"):
        return gate.for_user(request.state.user)
    return gate


def get_auth_manager(request: Request) -> GuardManager:
    """Get the GuardManager bound to this request or to the app."""
    auth = _bound(request, "auth")
    if auth is None:
        raise ConfigurationError("Auth service not available", error_code="AUTH_NOT_AVAILABLE")
    return auth


def get_current_user(request: Request) -> Optional[Any]:
    """Get the principal attached to the request, if any."""
    return getattr(request.state, "user", None)


async def _authenticate_request(request: Request, guard: Optional[str]) -> Optional[Any]:
    auth = get_auth_manager(request)
    bound_guard = auth.guard(guard).for_request(request)
    user = await bound_guard.user()

    request.state.guard = bound_guard
    if user is not None:
        request.state.user = user
    return user


def authenticate(guard: Optional[str] = None, message: Optional[str] = None) -> Callable:
    """
    Dependency requiring an authenticated principal from ``guard``.

    Usage:
        @router.get("/profile")
        async def profile(user=Depends(authenticate("api"))):
            return {"id": user.id}
    """

    async def dependency(request: Request) -> Any:
        user = await _authenticate_request(request, guard)
        if user is None:
            logger.warning(
                f"Unauthenticated request to {request.method} {request.url.path}",
                extra={"guard": guard, "path": str(request.url.path)},
            )
            raise AuthenticationError(message or "Unauthenticated")
        return user

    return dependency


def optional_auth(guard: Optional[str] = None) -> Callable:
    """
    Dependency resolving the principal when one is present.

    Requests without credentials, or apps without a GuardManager, pass
    through with ``None``.
    """

    async def dependency(request: Request) -> Optional[Any]:
        if _bound(request, "auth") is None:
            return None
        return await _authenticate_request(request, guard)

    return dependency
