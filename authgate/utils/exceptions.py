"""Custom exceptions for authentication, authorization and configuration."""

from typing import Any, Dict, Optional


class BaseAuthException(Exception):
    """Base exception for authentication/authorization errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class AuthenticationError(BaseAuthException):
    """Raised when no principal could be authenticated."""

    def __init__(self, message: str = "Unauthenticated", **kwargs):
        kwargs.setdefault("error_code", "AUTHENTICATION_FAILED")
        super().__init__(message, **kwargs)


class AuthorizationError(BaseAuthException):
    """Raised when an ability check denies access."""

    def __init__(self, message: str = "This action is unauthorized.", **kwargs):
        kwargs.setdefault("error_code", "ACCESS_DENIED")
        super().__init__(message, **kwargs)


class ForbiddenError(AuthorizationError):
    """Raised by the authorization middleware when a request is refused."""

    def __init__(self, message: str = "Forbidden", **kwargs):
        kwargs.setdefault("error_code", "FORBIDDEN")
        super().__init__(message, **kwargs)


class ConfigurationError(BaseAuthException):
    """Raised when guards, drivers, providers or the gate are misconfigured.

    These are startup-class failures and are never translated into a
    per-request allow or deny.
    """

    def __init__(self, message: str = "Authentication is misconfigured", **kwargs):
        kwargs.setdefault("error_code", "CONFIGURATION_ERROR")
        super().__init__(message, **kwargs)


class GuardNotDefinedError(ConfigurationError):
    """Raised when a guard name has no configuration."""

    def __init__(self, guard: str, **kwargs):
        self.guard = guard
        kwargs.setdefault("details", {"guard": guard})
        super().__init__(f"Auth guard [{guard}] is not defined.", error_code="GUARD_NOT_DEFINED", **kwargs)


class DriverNotDefinedError(ConfigurationError):
    """Raised when a guard's driver has no registered factory."""

    def __init__(self, driver: str, guard: str, **kwargs):
        self.driver = driver
        self.guard = guard
        kwargs.setdefault("details", {"driver": driver, "guard": guard})
        super().__init__(
            f"Auth driver [{driver}] for guard [{guard}] is not defined.",
            error_code="DRIVER_NOT_DEFINED",
            **kwargs,
        )


class ProviderNotDefinedError(ConfigurationError):
    """Raised when a user provider, or its driver, cannot be resolved."""

    def __init__(self, message: str, provider: Optional[str] = None, **kwargs):
        self.provider = provider
        kwargs.setdefault("details", {"provider": provider})
        super().__init__(message, error_code="PROVIDER_NOT_DEFINED", **kwargs)


class GateNotAvailableError(ConfigurationError):
    """Raised when no Gate is bound to the request or the application."""

    def __init__(self, message: str = "Gate service not available", **kwargs):
        super().__init__(message, error_code="GATE_NOT_AVAILABLE", **kwargs)


class UnsupportedGuardOperationError(ConfigurationError):
    """Raised when a stateful operation is routed to a stateless guard."""

    def __init__(self, guard: str, operation: str, **kwargs):
        self.guard = guard
        self.operation = operation
        kwargs.setdefault("details", {"guard": guard, "operation": operation})
        super().__init__(
            f"Auth guard [{guard}] does not support [{operation}].",
            error_code="UNSUPPORTED_GUARD_OPERATION",
            **kwargs,
        )
