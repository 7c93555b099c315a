"""Tests for shanraq.exceptions module."""

from __future__ import annotations

import pytest

from shanraq.exceptions import (
    AuthenticationError,
    InvalidCodeError,
    InvalidRequestError,
    InvalidReturnURLError,
    InvalidStateError,
    ProviderNotConfiguredError,
    SessionCreationError,
    SessionError,
    ShanraqException,
    UpstreamExchangeError,
)


class TestShanraqException:
    """Test base exception class behavior."""

    def test_message_only(self) -> None:
        """Exception with just a message stores it correctly."""
        exc = ShanraqException("Something went wrong")
        assert exc.message == "Something went wrong"
        assert not exc.context
        assert str(exc) == "Something went wrong"

    def test_with_context(self) -> None:
        """Context is included in the string representation."""
        exc = ShanraqException("Failed", provider="demo", attempt=2)
        assert exc.context == {"provider": "demo", "attempt": 2}
        assert "provider='demo'" in str(exc)
        assert "attempt=2" in str(exc)


class TestHierarchy:
    """Error classes map onto the client/upstream/server taxonomy."""

    @pytest.mark.parametrize(
        "cls",
        [InvalidCodeError, InvalidStateError, InvalidReturnURLError],
    )
    def test_invalid_request_subclasses(self, cls: type[Exception]) -> None:
        """Specific client errors are InvalidRequestErrors."""
        assert issubclass(cls, InvalidRequestError)
        assert issubclass(cls, AuthenticationError)

    def test_upstream_is_not_invalid_request(self) -> None:
        """Upstream failures are a separate class from caller errors."""
        assert not issubclass(UpstreamExchangeError, InvalidRequestError)
        assert issubclass(UpstreamExchangeError, AuthenticationError)

    def test_not_configured_carries_provider(self) -> None:
        """Provider name is kept as an attribute."""
        exc = ProviderNotConfiguredError("missing", provider="google")
        assert exc.provider == "google"
        assert "provider='google'" in str(exc)

    def test_upstream_timeout_context(self) -> None:
        """Timeout is recorded only when given."""
        exc = UpstreamExchangeError("slow", provider="acme", timeout=1.5)
        assert exc.timeout == 1.5
        assert exc.context["timeout"] == 1.5
        assert "timeout" not in UpstreamExchangeError("down").context

    def test_session_creation_is_session_error(self) -> None:
        """Session failures are not authentication failures."""
        assert issubclass(SessionCreationError, SessionError)
        assert not issubclass(SessionCreationError, AuthenticationError)
        assert issubclass(SessionCreationError, ShanraqException)
