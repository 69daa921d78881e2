"""Global exception handlers."""

import logging
from typing import Any, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from authgate.utils.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BaseAuthException,
    ConfigurationError,
)

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
}


def error_response(
    status_code: int,
    message: Any,
    error_code: Optional[str],
    details: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """Render the JSON error envelope shared by every handler."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": message,
            "error_code": error_code,
            "details": details or {},
        },
        headers=headers,
    )


def status_code_for(exc: BaseAuthException) -> int:
    """Map an auth exception to an HTTP status code."""
    if isinstance(exc, AuthenticationError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, AuthorizationError):
        return status.HTTP_403_FORBIDDEN
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def auth_exception_response(request: Request, exc: BaseAuthException) -> JSONResponse:
    """Log an auth exception and render it as a JSON response."""
    status_code = status_code_for(exc)
    log_extra = {
        "error_code": exc.error_code,
        "details": exc.details,
        "path": str(request.url.path),
        "method": request.method,
    }

    if isinstance(exc, ConfigurationError):
        logger.error(f"Auth configuration error in {request.method} {request.url}: {exc.message}", extra=log_extra)
    else:
        logger.warning(f"Auth exception in {request.method} {request.url}: {exc.message}", extra=log_extra)

    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return error_response(status_code, exc.message, exc.error_code, exc.details, headers)


class ExceptionHandlers:
    """Centralized exception handlers for the application."""

    @staticmethod
    async def base_auth_exception_handler(request: Request, exc: BaseAuthException) -> JSONResponse:
        """Handle authentication, authorization and configuration errors."""
        return auth_exception_response(request, exc)

    @staticmethod
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle FastAPI HTTP exceptions with the same envelope."""
        logger.warning(
            f"HTTP exception in {request.method} {request.url}: {exc.detail}",
            extra={"status_code": exc.status_code, "path": str(request.url.path), "method": request.method},
        )
        return error_response(
            exc.status_code,
            exc.detail,
            HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
            headers=getattr(exc, "headers", None),
        )

    @staticmethod
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions, including failing ability callbacks."""
        logger.error(
            f"Unexpected error in {request.method} {request.url}: {exc}",
            extra={"path": str(request.url.path), "method": request.method, "exception_type": type(exc).__name__},
            exc_info=True,
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "INTERNAL_ERROR")


def register_exception_handlers(app: Any) -> None:
    """Register all exception handlers with the FastAPI app."""
    handlers = ExceptionHandlers()

    # Authentication, authorization and configuration errors
    app.add_exception_handler(BaseAuthException, handlers.base_auth_exception_handler)

    # Starlette's base class covers FastAPI's HTTPException and routing 404/405s
    app.add_exception_handler(StarletteHTTPException, handlers.http_exception_handler)

    # Catch-all for unexpected errors
    app.add_exception_handler(Exception, handlers.general_exception_handler)
