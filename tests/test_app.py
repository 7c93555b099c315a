"""End-to-end tests for the application factory."""

# pylint: disable=redefined-outer-name

from __future__ import annotations

import logging

from pathlib import Path

import pytest

from fastapi.testclient import TestClient

from shanraq.app import build_registry, build_session_manager, create_app
from shanraq.auth.providers import DemoOAuthProvider, GitHubProvider, NotConfiguredProvider
from shanraq.auth.registry import ProviderRegistry
from shanraq.auth.session import SessionManager
from shanraq.auth.types import Identity
from shanraq.config import AuthSettings, SessionSettings, ShanraqSettings


@pytest.fixture(autouse=True)
def _workdir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the project pyproject.toml out of the settings."""
    monkeypatch.chdir(tmp_path)


def _settings(**auth) -> ShanraqSettings:
    return ShanraqSettings(
        auth={"public_base_url": "https://shanraq.example/", **auth},
        session={"sweep_interval_seconds": 0.05},
        log={"level": "WARNING"},
    )


class TestBuildRegistry:
    """Tests for building the registry from settings."""

    def test_demo_bindings(self) -> None:
        """Supported names are bound to demo providers by default."""
        registry = build_registry(AuthSettings(supported_providers=["google", "github"]))
        assert registry.names() == ["github", "google"]
        assert isinstance(registry.get("google"), DemoOAuthProvider)

    def test_placeholders_without_demo(self) -> None:
        """With demo providers off the names stay reserved but unconfigured."""
        registry = build_registry(
            AuthSettings(supported_providers=["google"], provider="Facebook", demo_providers=False)
        )
        assert registry.names() == ["facebook", "google"]
        assert isinstance(registry.get("facebook"), NotConfiguredProvider)

    def test_real_credentials_win(self) -> None:
        """Names with OAuth2 settings get a real provider."""
        registry = build_registry(
            AuthSettings(
                supported_providers=["google", "github"],
                oauth2={"GitHub": {"kind": "github", "client_id": "cid"}},
            )
        )
        assert isinstance(registry.get("github"), GitHubProvider)
        assert isinstance(registry.get("google"), DemoOAuthProvider)


class TestBuildSessionManager:
    """Tests for building the session manager from settings."""

    def test_settings_applied(self) -> None:
        """TTL, cookie name and Secure flag come from settings."""
        manager = build_session_manager(
            SessionSettings(ttl_seconds=60, cookie_name="sid", cookie_secure=True)
        )
        assert manager.ttl == 60
        assert manager.cookie_name == "sid"
        assert manager.cookie_secure is True


class TestCreateApp:
    """Tests for the assembled application."""

    def test_state_exposes_components(self) -> None:
        """Registry, session manager and settings are reachable from app.state."""
        settings = _settings()
        app = create_app(settings)
        assert app.state.settings is settings
        assert app.state.registry.names() == ["github", "google"]
        assert len(app.state.session_manager) == 0

    def test_injected_empty_components_are_kept(self) -> None:
        """Empty injected registry and session manager are used as given."""
        registry = ProviderRegistry()
        manager = SessionManager()
        app = create_app(_settings(), registry=registry, session_manager=manager)
        assert app.state.registry is registry
        assert app.state.session_manager is manager
        assert app.state.registry.names() == []

        registry.register("demo", DemoOAuthProvider("demo"))
        token = manager.create(Identity(subject="u1"))
        with TestClient(app) as client:
            assert client.get("/auth/providers").json() == {"providers": ["demo"]}
            client.cookies.set("shanraq_session", token)
            session = client.get("/auth/session").json()
        assert session["authenticated"] is True
        assert session["identity"]["subject"] == "u1"

    def test_full_login_flow(self) -> None:
        """Login, callback, session check and logout through the whole stack."""
        app = create_app(_settings(supported_providers=["google"]))
        with TestClient(app) as client:
            login = client.get("/auth/google/login", params={"state": "s1"})
            assert login.status_code == 200
            assert login.history[0].status_code == 307
            body = login.json()
            assert body["state"] == "s1"
            assert body["identity"]["subject"] == "demo-google-demo-google-user"
            assert body["identity"]["full_name"] == "Google User"

            session = client.get("/auth/session").json()
            assert session["authenticated"] is True
            assert session["identity"]["email"] == "demo-google-user@demo.shanraq.com"

            logout = client.post("/auth/logout")
            assert logout.json() == {
                "message": "logged_out",
                "return_url": "https://shanraq.example/",
            }
            assert len(app.state.session_manager) == 0

    def test_unconfigured_provider(self) -> None:
        """Reserved names answer 501 when demo providers are disabled."""
        app = create_app(_settings(demo_providers=False))
        with TestClient(app) as client:
            response = client.get("/auth/github/login")
            assert response.status_code == 501

    def test_lifespan_controls_sweeper(self) -> None:
        """The sweep thread runs only while the app is up."""
        app = create_app(_settings())
        manager = app.state.session_manager
        with TestClient(app):
            assert manager._sweeper is not None  # pylint: disable=protected-access
            assert manager._sweeper.is_alive()  # pylint: disable=protected-access
        assert manager._sweeper is None  # pylint: disable=protected-access

    def test_request_logging(self, caplog: pytest.LogCaptureFixture) -> None:
        """Each request is logged with method, path and status."""
        app = create_app(_settings())
        with caplog.at_level(logging.INFO, logger="shanraq.http"):
            with TestClient(app) as client:
                client.get("/auth/providers")

        messages = [r.getMessage() for r in caplog.records if r.name == "shanraq.http"]
        assert any(m.startswith("GET /auth/providers 200 ") for m in messages)
