"""Pytest configuration and shared fixtures."""

# pylint: disable=redefined-outer-name

from __future__ import annotations

import os

import pytest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from shanraq.auth.providers import DemoOAuthProvider, NotConfiguredProvider
from shanraq.auth.registry import ProviderRegistry
from shanraq.auth.routes import create_auth_router
from shanraq.auth.session import SessionManager
from shanraq.auth.state import PendingStateStore
from shanraq.auth.types import Identity
from shanraq.config import AuthSettings


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep user-level config files and SHANRAQ_* env vars out of tests."""
    for key in list(os.environ):
        if key.startswith("SHANRAQ"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("APPDATA", str(tmp_path))


@pytest.fixture()
def identity() -> Identity:
    """A sample identity."""
    return Identity(
        subject="user-123",
        email="user@example.com",
        full_name="Test User",
        provider="demo",
        access_token="at-secret",
    )


@pytest.fixture()
def registry() -> ProviderRegistry:
    """Registry with a demo provider and a placeholder."""
    reg = ProviderRegistry()
    reg.register("demo", DemoOAuthProvider("demo"))
    reg.register("google", NotConfiguredProvider("google"))
    return reg


@pytest.fixture()
def sessions() -> SessionManager:
    """Session manager with a one hour TTL."""
    return SessionManager(ttl=3600)


@pytest.fixture()
def auth_settings() -> AuthSettings:
    """Default auth settings with a public base URL."""
    return AuthSettings(public_base_url="https://shanraq.example/")


@pytest.fixture()
def state_store() -> PendingStateStore:
    """Fresh pending state store."""
    return PendingStateStore()


def make_auth_app(
    registry: ProviderRegistry,
    sessions: SessionManager,
    auth_settings: AuthSettings,
    state_store: PendingStateStore | None = None,
) -> FastAPI:
    """Create a FastAPI app with only the auth router mounted."""
    app = FastAPI()
    app.include_router(
        create_auth_router(
            registry=registry,
            session_manager=sessions,
            auth_settings=auth_settings,
            state_store=state_store,
        )
    )
    return app


@pytest.fixture()
def client(
    registry: ProviderRegistry,
    sessions: SessionManager,
    auth_settings: AuthSettings,
    state_store: PendingStateStore,
) -> TestClient:
    """Test client for the auth router without redirect following."""
    app = make_auth_app(registry, sessions, auth_settings, state_store)
    return TestClient(app, follow_redirects=False)


@pytest.fixture()
def make_client(registry: ProviderRegistry, sessions: SessionManager, state_store: PendingStateStore):
    """Factory building a test client with custom auth settings."""

    def _make(auth_settings: AuthSettings, **client_kwargs) -> TestClient:
        app = make_auth_app(registry, sessions, auth_settings, state_store)
        client_kwargs.setdefault("follow_redirects", False)
        return TestClient(app, **client_kwargs)

    return _make
