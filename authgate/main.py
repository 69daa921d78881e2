"""FastAPI application factory."""

import logging
from typing import Optional

from fastapi import FastAPI

from authgate.auth.manager import GuardManager
from authgate.config.settings import Settings, settings
from authgate.middleware.auth_middleware import AuthMiddleware
from authgate.middleware.exception_handler import register_exception_handlers
from authgate.policies.gate import Gate


def create_app(
    gate: Optional[Gate] = None,
    auth: Optional[GuardManager] = None,
    *,
    guard: Optional[str] = None,
    app_settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build a FastAPI app with the gate and guard manager wired in.

    Both services live on ``app.state`` and are bound to each request by
    ``AuthMiddleware``; routes protect themselves with the dependencies in
    ``authgate.middleware.authorize`` and ``authgate.dependencies``. When
    ``guard`` is given every request resolves its principal up front.
    """
    app_settings = app_settings or settings
    logging.getLogger("authgate").setLevel(app_settings.LOG_LEVEL)

    auth = auth or GuardManager(app_settings.auth_config())
    gate = gate or Gate(user_resolver=auth.user_resolver)

    app = FastAPI(
        title=app_settings.API_TITLE,
        version=app_settings.API_VERSION,
        description=app_settings.API_DESCRIPTION,
        debug=app_settings.DEBUG,
    )
    app.state.auth = auth
    app.state.gate = gate

    register_exception_handlers(app)
    app.add_middleware(AuthMiddleware, auth=auth, gate=gate, guard=guard)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": app_settings.API_VERSION,
            "environment": app_settings.ENVIRONMENT,
            "default_guard": auth.get_default_driver(),
        }

    return app


# Default application (uvicorn authgate.main:app)
app = create_app()
