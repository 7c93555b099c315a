"""Shanraq exception hierarchy.

All Shanraq-specific exceptions inherit from ShanraqException, enabling
catch-all handling while supporting specific error types.
"""

from __future__ import annotations

from typing import Any


class ShanraqException(Exception):
    """Base exception for all Shanraq errors."""

    def __init__(self, message: str, **context: Any) -> None:
        """Initialize Shanraq exception.

        Parameters
        ----------
        message : str
            Human-readable error message.
        **context : Any
            Additional context (provider, timeout, etc.).
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Format exception with context."""
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class AuthenticationError(ShanraqException):
    """Base exception for all authentication failures.

    Raised when a login flow, provider call, or callback fails.
    """

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        **context: Any,
    ) -> None:
        """Initialize authentication error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        provider : str, optional
            The normalized provider name (e.g., "google", "demo").
        **context : Any
            Additional context.
        """
        super().__init__(message, provider=provider, **context)
        self.provider = provider


class ProviderNotConfiguredError(AuthenticationError):
    """Provider is unknown or has no usable credentials.

    Raised by the registry for unbound names and by placeholder
    providers that exist only to reserve a name.
    """


class InvalidRequestError(AuthenticationError):
    """Required input is missing or malformed.

    Always a client error; never retried.
    """


class InvalidCodeError(InvalidRequestError):
    """Authorization code is empty or was rejected as malformed."""


class InvalidStateError(InvalidRequestError):
    """Callback ``state`` was never issued or was already consumed."""


class InvalidReturnURLError(InvalidRequestError):
    """Logout return URL is not a syntactically valid URL."""


class UpstreamExchangeError(AuthenticationError):
    """The provider's code-for-identity exchange failed.

    Distinct from InvalidRequestError since it reflects a failing
    dependency rather than a caller error.
    """

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        timeout: float | None = None,
        **context: Any,
    ) -> None:
        """Initialize exchange error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        provider : str, optional
            The normalized provider name.
        timeout : float, optional
            The exchange timeout in seconds, if the failure was a timeout.
        **context : Any
            Additional context.
        """
        if timeout is not None:
            context["timeout"] = timeout
        super().__init__(message, provider=provider, **context)
        self.timeout = timeout


class SessionError(ShanraqException):
    """Base exception for session store failures."""


class SessionCreationError(SessionError):
    """A session token could not be generated.

    Raised when the operating system's secure random source
    is unavailable. There is no fallback to a weaker generator.
    """
