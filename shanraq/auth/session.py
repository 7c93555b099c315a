"""In-memory session manager with cookie helpers.

Maps opaque bearer tokens to identities with a fixed time-to-live.
Expired entries are purged lazily when looked up, and periodically by
an optional background sweep thread.
"""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import logging
import math
import secrets
import threading
import time

from typing import TYPE_CHECKING, Literal

from ..exceptions import SessionCreationError
from .types import SessionEntry


if TYPE_CHECKING:
    from starlette.requests import HTTPConnection
    from starlette.responses import Response

    from .types import Identity


logger = logging.getLogger("shanraq.auth")

DEFAULT_TTL = 12 * 60 * 60
DEFAULT_COOKIE_NAME = "shanraq_session"
TOKEN_BYTES = 32


def generate_token(nbytes: int = TOKEN_BYTES) -> str:
    """Generate a URL-safe random session token.

    Parameters
    ----------
    nbytes : int
        Bytes of randomness (default 32, i.e. 256 bits).

    Returns
    -------
    str
        Base64url text without padding, safe as a cookie value.

    Raises
    ------
    SessionCreationError
        If the operating system's secure random source is unavailable.
    """
    try:
        return secrets.token_urlsafe(nbytes)
    except (NotImplementedError, OSError) as exc:
        msg = "Secure random source unavailable"
        raise SessionCreationError(msg) from exc


class SessionManager:
    """Stores authenticated identities and owns the session cookie.

    Parameters
    ----------
    ttl : float
        Session lifetime in seconds. Non-positive values fall back to 12 hours.
    cookie_name : str
        Cookie carrying the token. Empty falls back to ``shanraq_session``.
    cookie_secure : bool or None
        Whether to set the cookie's ``Secure`` attribute. ``None`` follows
        the request scheme: Secure over HTTPS, not over plain HTTP.
    cookie_samesite : str
        The cookie's ``SameSite`` attribute.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        cookie_name: str = DEFAULT_COOKIE_NAME,
        cookie_secure: bool | None = None,
        cookie_samesite: Literal["lax", "strict", "none"] = "lax",
    ) -> None:
        self.ttl = ttl if ttl > 0 else DEFAULT_TTL
        self.cookie_name = cookie_name or DEFAULT_COOKIE_NAME
        self.cookie_secure = cookie_secure
        self.cookie_samesite = cookie_samesite

        self._store: dict[str, SessionEntry] = {}
        self._lock = threading.Lock()
        self._sweeper: threading.Thread | None = None
        self._sweeper_stop = threading.Event()

    def create(
        self,
        identity: Identity,
        response: Response | None = None,
        request: HTTPConnection | None = None,
    ) -> str:
        """Issue a session for ``identity``.

        Parameters
        ----------
        identity : Identity
            The identity to store.
        response : Response, optional
            If given, the session cookie is set on it.
        request : HTTPConnection, optional
            The request being answered; decides ``Secure`` when
            ``cookie_secure`` is unset.

        Returns
        -------
        str
            The new session token.

        Raises
        ------
        SessionCreationError
            If a secure token could not be generated.
        """
        token = generate_token()
        entry = SessionEntry(identity=identity, expires_at=time.time() + self.ttl)

        with self._lock:
            self._store[token] = entry

        if response is not None:
            self.set_cookie(response, token, request)

        logger.debug("Session created for %s via %s", identity.subject, identity.provider)
        return token

    def identity(self, token: str | None) -> Identity | None:
        """Return the identity stored under ``token``, if still live.

        An expired entry is deleted and reported as absent. Lookups
        never extend the expiry.
        """
        if not token:
            return None

        with self._lock:
            entry = self._store.get(token)
            if entry is None:
                return None
            if entry.is_expired(time.time()):
                del self._store[token]
                return None
            return entry.identity

    def destroy(
        self,
        token: str | None,
        response: Response | None = None,
        request: HTTPConnection | None = None,
    ) -> None:
        """Delete the session for ``token`` and clear the cookie.

        Deleting an unknown or empty token is a no-op.
        """
        if token:
            with self._lock:
                self._store.pop(token, None)

        if response is not None:
            self.clear_cookie(response, request)

    def purge_expired(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = time.time()
        with self._lock:
            expired = [k for k, v in self._store.items() if v.is_expired(now)]
            for k in expired:
                del self._store[k]
        if expired:
            logger.debug("Purged %d expired sessions", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    # ── Cookie wire form ──────────────────────────────────────────────

    def token_from_request(self, request: HTTPConnection) -> str | None:
        """Read the session token from the request cookie, if present."""
        return request.cookies.get(self.cookie_name) or None

    def identity_from_request(self, request: HTTPConnection) -> Identity | None:
        """Resolve the request's session cookie to an identity."""
        return self.identity(self.token_from_request(request))

    def secure_for(self, request: HTTPConnection | None = None) -> bool:
        """Resolve the ``Secure`` attribute for a cookie sent in reply to ``request``."""
        if self.cookie_secure is not None:
            return self.cookie_secure
        return request is not None and request.url.scheme in ("https", "wss")

    def set_cookie(
        self, response: Response, token: str, request: HTTPConnection | None = None
    ) -> None:
        """Attach the session cookie carrying ``token``."""
        lifetime = math.ceil(self.ttl)
        response.set_cookie(
            key=self.cookie_name,
            value=token,
            max_age=lifetime,
            expires=lifetime,
            path="/",
            httponly=True,
            secure=self.secure_for(request),
            samesite=self.cookie_samesite,
        )

    def clear_cookie(self, response: Response, request: HTTPConnection | None = None) -> None:
        """Attach a cookie directive that expires the session cookie now."""
        response.delete_cookie(
            key=self.cookie_name,
            path="/",
            httponly=True,
            secure=self.secure_for(request),
            samesite=self.cookie_samesite,
        )

    # ── Background sweep ──────────────────────────────────────────────

    def start_sweeper(self, interval: float) -> None:
        """Purge expired sessions every ``interval`` seconds on a daemon thread.

        Does nothing if ``interval`` is not positive or a sweeper is running.
        """
        if interval <= 0 or (self._sweeper is not None and self._sweeper.is_alive()):
            return

        self._sweeper_stop.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            args=(interval,),
            name="shanraq-session-sweeper",
            daemon=True,
        )
        self._sweeper.start()
        logger.debug("Session sweeper started (interval %.1fs)", interval)

    def stop_sweeper(self, timeout: float = 5.0) -> None:
        """Stop the background sweep and wait for the thread to exit."""
        self._sweeper_stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=timeout)
            self._sweeper = None

    def _sweep_loop(self, interval: float) -> None:
        while not self._sweeper_stop.wait(interval):
            try:
                self.purge_expired()
            except Exception:
                logger.exception("Session sweep failed")
