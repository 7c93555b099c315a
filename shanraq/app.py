"""Application factory.

Builds one ProviderRegistry and one SessionManager per application and
passes them explicitly to the middleware and routes that need them.
"""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import logging

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from .auth.middleware import SessionMiddleware
from .auth.providers import DemoOAuthProvider, create_provider
from .auth.registry import ProviderRegistry
from .auth.routes import create_auth_router
from .auth.session import SessionManager
from .auth.state import PendingStateStore
from .config import get_settings
from .http_logging import RequestLoggingMiddleware
from .log import configure_from_settings


if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from .config import AuthSettings, SessionSettings, ShanraqSettings


logger = logging.getLogger("shanraq")


def build_registry(settings: AuthSettings) -> ProviderRegistry:
    """Create the provider registry described by ``settings``.

    Every configured name is first reserved with a placeholder. Names
    with OAuth2 credentials get a real provider; the remaining names get
    the demo provider when ``demo_providers`` is enabled.
    """
    names = settings.provider_names()
    registry = ProviderRegistry.with_placeholders(*names)

    configured = {n.strip().lower(): s for n, s in settings.oauth2.items()}
    for name in names:
        if name in configured:
            registry.register(name, create_provider(name, configured[name]))
        elif settings.demo_providers:
            registry.register(name, DemoOAuthProvider(name))

    return registry


def build_session_manager(settings: SessionSettings) -> SessionManager:
    """Create the session manager described by ``settings``."""
    return SessionManager(
        ttl=settings.ttl_seconds,
        cookie_name=settings.cookie_name,
        cookie_secure=settings.cookie_secure,
        cookie_samesite=settings.cookie_samesite,
    )


def create_app(
    settings: ShanraqSettings | None = None,
    registry: ProviderRegistry | None = None,
    session_manager: SessionManager | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Parameters
    ----------
    settings : ShanraqSettings, optional
        Configuration; loaded from the environment if omitted.
    registry : ProviderRegistry, optional
        Pre-built registry; built from ``settings.auth`` if omitted.
    session_manager : SessionManager, optional
        Pre-built session manager; built from ``settings.session`` if omitted.

    Returns
    -------
    FastAPI
        The application with session middleware and ``/auth`` routes.
    """
    settings = settings or get_settings()
    configure_from_settings(settings.log)

    if registry is None:
        registry = build_registry(settings.auth)
    if session_manager is None:
        session_manager = build_session_manager(settings.session)
    state_store = PendingStateStore(
        max_pending=settings.auth.max_pending_states,
        max_age=settings.auth.state_ttl_seconds,
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        session_manager.start_sweeper(settings.session.sweep_interval_seconds)
        logger.info("Auth providers: %s", ", ".join(registry.names()) or "(none)")
        try:
            yield
        finally:
            session_manager.stop_sweeper()
            for provider in registry.providers():
                await provider.close()

    app = FastAPI(title="shanraq", lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry
    app.state.session_manager = session_manager

    app.add_middleware(SessionMiddleware, session_manager=session_manager)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(
        create_auth_router(
            registry=registry,
            session_manager=session_manager,
            auth_settings=settings.auth,
            state_store=state_store,
        )
    )
    return app
