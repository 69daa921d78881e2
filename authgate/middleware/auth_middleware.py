"""Authentication middleware for FastAPI."""

import time
from collections.abc import Callable
from typing import Any, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from authgate.auth.manager import GuardManager
from authgate.middleware.exception_handler import auth_exception_response
from authgate.policies.gate import Gate
from authgate.utils.exceptions import BaseAuthException


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Bind the GuardManager and Gate to every request.

    Every request starts as a guest (``request.state.user = None``). With
    ``guard`` set, the principal of that guard is resolved up front and
    cookies queued by the guard are written to the response.
    """

    def __init__(
        self,
        app: Any,
        auth: GuardManager,
        gate: Optional[Gate] = None,
        guard: Optional[str] = None,
    ):
        super().__init__(app)
        self.auth = auth
        self.gate = gate
        self.guard = guard

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request through authentication middleware."""

        request.state.start_time = time.time()
        request.state.auth = self.auth
        if self.gate is not None:
            request.state.gate = self.gate
        request.state.user = None

        try:
            bound_guard = None
            if self.guard is not None:
                bound_guard = self.auth.guard(self.guard).for_request(request)
                request.state.guard = bound_guard
                request.state.user = await bound_guard.user()

            response = await call_next(request)

            # Guards bound later by a dependency replace the one bound here
            bound_guard = getattr(request.state, "guard", bound_guard)
            self._write_queued_cookies(bound_guard, response)

            process_time = time.time() - request.state.start_time
            response.headers["X-Process-Time"] = str(process_time)

            return response

        except BaseAuthException as e:
            return auth_exception_response(request, e)

    @staticmethod
    def _write_queued_cookies(guard: Any, response: Response) -> None:
        for key, value in (getattr(guard, "queued_cookies", None) or {}).items():
            if value is None:
                response.delete_cookie(key)
            else:
                response.set_cookie(key, value, httponly=True, samesite="lax", max_age=60 * 60 * 24 * 365 * 5)
