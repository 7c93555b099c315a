"""Identity and session management for Shanraq.

Provides the provider abstraction and registry, the session store with
its cookie wire form, the session middleware, and the login/callback/
logout routes.
"""

from __future__ import annotations

from .middleware import SessionMiddleware, current_identity, get_identity
from .providers import (
    DemoOAuthProvider,
    GitHubProvider,
    GoogleProvider,
    NotConfiguredProvider,
    OAuth2Provider,
    Provider,
    create_provider,
)
from .registry import ProviderRegistry
from .routes import create_auth_router
from .session import SessionManager
from .state import PendingStateStore
from .types import Identity, SessionEntry


__all__ = [
    "DemoOAuthProvider",
    "GitHubProvider",
    "GoogleProvider",
    "Identity",
    "NotConfiguredProvider",
    "OAuth2Provider",
    "PendingStateStore",
    "Provider",
    "ProviderRegistry",
    "SessionEntry",
    "SessionManager",
    "SessionMiddleware",
    "create_auth_router",
    "create_provider",
    "current_identity",
    "get_identity",
]
