"""Session resolution middleware and request accessors.

The middleware only resolves identities; it never rejects a request.
Handlers that require a signed-in user check ``get_identity`` themselves.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from starlette.requests import HTTPConnection, Request


if TYPE_CHECKING:
    from .session import SessionManager
    from .types import Identity


IDENTITY_STATE_KEY = "identity"


class SessionMiddleware:
    """ASGI middleware attaching the session identity to the request.

    The identity (or ``None``) is stored in the request state and is
    available to handlers as ``request.state.identity``.

    Parameters
    ----------
    app : ASGI application
        The wrapped application.
    session_manager : SessionManager
        Session store used to resolve the cookie.
    """

    def __init__(self, app: Any, session_manager: SessionManager) -> None:
        self.app = app
        self.session_manager = session_manager

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        """Handle ASGI request."""
        if scope["type"] in ("http", "websocket"):
            identity = self.session_manager.identity_from_request(HTTPConnection(scope))
            scope.setdefault("state", {})[IDENTITY_STATE_KEY] = identity

        await self.app(scope, receive, send)


def get_identity(request: HTTPConnection) -> Identity | None:
    """Return the identity resolved by SessionMiddleware, if any."""
    return request.scope.get("state", {}).get(IDENTITY_STATE_KEY)


async def current_identity(request: Request) -> Identity | None:
    """FastAPI dependency yielding the request's identity or ``None``."""
    return get_identity(request)
