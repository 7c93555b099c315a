"""FastAPI routes for the login, callback, logout, and session endpoints.

Each step of the login protocol is an independent request. The only
state carried between login and callback is the ``state`` parameter
round-tripped through the provider redirect, optionally checked against
the PendingStateStore when ``strict_state`` is enabled.
"""

# pylint: disable=logging-too-many-args,too-many-statements

from __future__ import annotations

import asyncio
import logging
import re

from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from fastapi import APIRouter, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from ..exceptions import (
    InvalidRequestError,
    InvalidReturnURLError,
    InvalidStateError,
    ProviderNotConfiguredError,
    SessionCreationError,
    UpstreamExchangeError,
)
from .providers import normalize_name
from .state import PendingStateStore, generate_state


if TYPE_CHECKING:
    from ..config import AuthSettings
    from .providers import Provider
    from .registry import ProviderRegistry
    from .session import SessionManager
    from .types import Identity


logger = logging.getLogger("shanraq.auth")

_BAD_PERCENT_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _error(status_code: int, error: str, description: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "error_description": description},
    )


def validate_return_url(value: str) -> str:
    """Check that ``value`` is a syntactically valid absolute or relative URL.

    Raises
    ------
    InvalidReturnURLError
        On whitespace or control characters, malformed percent escapes,
        a missing scheme before ``:``, or an unparseable host or port.
    """
    if any(ch.isspace() or ord(ch) < 0x20 or ord(ch) == 0x7F for ch in value):
        msg = "Return URL contains whitespace or control characters"
        raise InvalidReturnURLError(msg)
    if _BAD_PERCENT_ESCAPE.search(value):
        msg = "Return URL contains an invalid percent escape"
        raise InvalidReturnURLError(msg)
    if value.startswith(":"):
        msg = "Return URL is missing a scheme"
        raise InvalidReturnURLError(msg)
    try:
        parts = urlsplit(value)
        _ = parts.port
    except ValueError as exc:
        msg = f"Return URL could not be parsed: {exc}"
        raise InvalidReturnURLError(msg) from exc
    return value


async def exchange_code(idp: Provider, code: str, provider: str, timeout: float) -> Identity:
    """Run the provider exchange, bounded by ``timeout`` seconds.

    Raises
    ------
    UpstreamExchangeError
        If the provider does not answer within ``timeout``.
    """
    try:
        return await asyncio.wait_for(idp.exchange(code), timeout=timeout)
    except asyncio.TimeoutError as exc:
        msg = "Code exchange timed out"
        raise UpstreamExchangeError(msg, provider=provider, timeout=timeout) from exc


def create_auth_router(  # noqa: C901, PLR0915
    registry: ProviderRegistry,
    session_manager: SessionManager,
    auth_settings: AuthSettings,
    state_store: PendingStateStore | None = None,
) -> APIRouter:
    """Create a FastAPI router with the ``/auth/*`` routes.

    Parameters
    ----------
    registry : ProviderRegistry
        Registry used to resolve the ``{provider}`` path segment.
    session_manager : SessionManager
        Store that issues and destroys session tokens.
    auth_settings : AuthSettings
        Flow settings (strict state, exchange timeout, return URL).
    state_store : PendingStateStore, optional
        Store for issued login states. Created from the settings if omitted.

    Returns
    -------
    APIRouter
        Router with ``/auth/*`` routes.
    """
    router = APIRouter(prefix="/auth", tags=["authentication"])

    if state_store is None:
        state_store = PendingStateStore(
            max_pending=auth_settings.max_pending_states,
            max_age=auth_settings.state_ttl_seconds,
        )

    @router.get("/providers")
    async def auth_providers() -> JSONResponse:
        """List registered provider names in sorted order."""
        return JSONResponse(content={"providers": registry.names()})

    @router.get("/{provider}/login")
    async def auth_login(provider: str, state: str = "") -> Response:
        """Start a login by redirecting to the provider.

        Generates a random state when the caller does not supply one.
        """
        try:
            idp = registry.get(provider)
        except ProviderNotConfiguredError as exc:
            logger.warning("Auth provider not available: %s", exc)
            return _error(404, "provider_not_configured", "Unknown authentication provider")

        if not state:
            state = generate_state()

        try:
            authorize_url = idp.auth_code_url(state)
        except ProviderNotConfiguredError as exc:
            logger.warning("Login attempted on unconfigured provider: %s", exc)
            return _error(
                501,
                "auth_not_configured",
                "Authentication provider is not configured yet.",
            )
        except Exception:
            logger.exception("Building authorization URL failed for %s", provider)
            return _error(502, "provider_error", "An internal error occurred")

        state_store.put(state, normalize_name(provider))
        return RedirectResponse(url=authorize_url, status_code=307)

    @router.get("/{provider}/callback")
    async def auth_callback(
        request: Request,
        provider: str,
        code: str = "",
        state: str = "",
        error: str | None = None,
        error_description: str | None = None,
    ) -> Response:
        """Exchange the authorization code and issue a session cookie."""
        try:
            idp = registry.get(provider)
        except ProviderNotConfiguredError:
            return _error(404, "provider_not_configured", "Unknown authentication provider")

        if error:
            return _error(400, error, error_description or "Authentication failed")

        if not code:
            return _error(400, "missing_code", "Authorization code not provided")

        key = normalize_name(provider)
        pending = state_store.pop(state) if state else None
        try:
            if auth_settings.strict_state and (pending is None or pending.provider != key):
                msg = "State was not issued for this provider or was already used"
                raise InvalidStateError(msg, provider=key)
            identity = await exchange_code(
                idp, code, key, auth_settings.exchange_timeout_seconds
            )
        except InvalidStateError as exc:
            logger.warning("Rejected callback: %s", exc)
            return _error(400, "invalid_state", "Invalid or expired state parameter")
        except InvalidRequestError as exc:
            logger.info("Rejected authorization code: %s", exc)
            return _error(400, "invalid_code", "Authorization code is invalid")
        except UpstreamExchangeError as exc:
            logger.error("Code exchange failed: %s", exc)
            if exc.timeout is not None:
                return _error(502, "exchange_failed", "Authentication provider did not respond")
            return _error(502, "exchange_failed", "An internal error occurred")
        except Exception:
            logger.exception("Code exchange failed for %s", key)
            return _error(502, "exchange_failed", "An internal error occurred")

        try:
            token = session_manager.create(identity)
        except SessionCreationError:
            logger.exception("Session creation failed")
            return _error(500, "session_error", "An internal error occurred")

        response = JSONResponse(
            content={"state": state, "identity": identity.to_public_dict()},
        )
        session_manager.set_cookie(response, token, request)
        logger.info("User %s authenticated via %s", identity.subject, identity.provider)
        return response

    @router.post("/logout")
    async def auth_logout(
        request: Request,
        return_url: str = Query(default="", alias="return"),
    ) -> JSONResponse:
        """End the current session and clear the cookie.

        Succeeds whether or not a session exists.
        """
        return_url = return_url or auth_settings.public_base_url
        try:
            validate_return_url(return_url)
        except InvalidReturnURLError as exc:
            logger.info("Rejected logout return URL: %s", exc)
            return _error(400, "invalid_return_url", "Return URL is not a valid URL")

        response = JSONResponse(content={"message": "logged_out", "return_url": return_url})
        session_manager.destroy(session_manager.token_from_request(request), response, request)
        return response

    @router.get("/session")
    async def auth_session(request: Request) -> JSONResponse:
        """Report whether the request carries a live session."""
        identity = session_manager.identity_from_request(request)
        content: dict[str, Any] = {
            "authenticated": identity is not None,
            "identity": identity.to_public_dict() if identity else None,
        }
        return JSONResponse(content=content)

    return router
