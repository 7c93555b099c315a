"""Identity provider abstractions.

Defines the Provider ABC, the NotConfiguredProvider placeholder, the
deterministic DemoOAuthProvider, and a plain authorization-code
OAuth2Provider with Google and GitHub presets.
"""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import logging

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

import httpx

from ..exceptions import InvalidCodeError, ProviderNotConfiguredError, UpstreamExchangeError
from ..log import redact_sensitive_data
from .types import Identity


if TYPE_CHECKING:
    from ..config import OAuth2ProviderSettings

logger = logging.getLogger("shanraq.auth")


def normalize_name(name: str) -> str:
    """Normalize a provider name: trim whitespace and case-fold."""
    return name.strip().lower()


class Provider(ABC):
    """Abstract base class for identity providers.

    A provider has exactly two capabilities: building the URL the
    browser is sent to, and exchanging the returned authorization code
    for an Identity. Providers hold no session state.
    """

    @abstractmethod
    def auth_code_url(self, state: str) -> str:
        """Build the authorization redirect URL.

        Parameters
        ----------
        state : str
            Opaque value round-tripped through the provider redirect.

        Returns
        -------
        str
            The URL to redirect the browser to.

        Raises
        ------
        ProviderNotConfiguredError
            If the provider has no usable credentials.
        """

    @abstractmethod
    async def exchange(self, code: str) -> Identity:
        """Exchange an authorization code for an Identity.

        Runs inside the request task, so cancelling the request
        (client disconnect or timeout) cancels the exchange.

        Parameters
        ----------
        code : str
            The authorization code from the callback.

        Returns
        -------
        Identity
            The verified identity.

        Raises
        ------
        ProviderNotConfiguredError
            If the provider has no usable credentials.
        InvalidCodeError
            If the code is empty or malformed.
        UpstreamExchangeError
            If the remote exchange fails.
        """

    async def close(self) -> None:  # noqa: B027
        """Release provider resources. Called on application shutdown."""


class NotConfiguredProvider(Provider):
    """Placeholder that reserves a provider name without credentials."""

    def __init__(self, name: str = "") -> None:
        self.name = normalize_name(name)

    def auth_code_url(self, state: str) -> str:
        msg = "Auth provider not configured"
        raise ProviderNotConfiguredError(msg, provider=self.name or None)

    async def exchange(self, code: str) -> Identity:
        msg = "Auth provider not configured"
        raise ProviderNotConfiguredError(msg, provider=self.name or None)


class DemoOAuthProvider(Provider):
    """Simulated provider for local development and tests.

    The authorization URL points straight back at this application's
    callback with a synthetic code, and the exchange derives the
    identity from the code alone, so the same code always yields the
    same identity. Never performs I/O.

    Parameters
    ----------
    name : str
        Provider name; normalized before use.
    """

    def __init__(self, name: str) -> None:
        self.name = normalize_name(name)

    def auth_code_url(self, state: str) -> str:
        params = {"code": f"demo-{self.name}-user"}
        if state:
            params["state"] = state
        return f"/auth/{self.name}/callback?{urlencode(params)}"

    async def exchange(self, code: str) -> Identity:
        code = code.strip()
        if not code:
            msg = "Invalid code"
            raise InvalidCodeError(msg, provider=self.name)

        slug = code.replace(" ", "-")
        return Identity(
            subject=f"demo-{self.name}-{slug}",
            email=f"{slug}@demo.shanraq.com",
            full_name=code.removeprefix("demo-").replace("-", " ").title(),
            provider=self.name,
            access_token=f"token-{code}",
        )


class OAuth2Provider(Provider):
    """Authorization-code provider backed by a remote OAuth2 server.

    Posts the code to the token endpoint, then reads the user profile
    from the userinfo endpoint. No ID token validation is performed.

    Parameters
    ----------
    name : str
        Provider name; normalized before use.
    client_id : str
        The OAuth2 client ID.
    client_secret : str
        The OAuth2 client secret.
    authorize_url : str
        The provider's authorization endpoint.
    token_url : str
        The provider's token endpoint.
    userinfo_url : str
        The provider's user profile endpoint.
    redirect_uri : str
        The callback URL registered with the provider.
    scopes : list[str], optional
        Requested scopes.
    """

    def __init__(
        self,
        name: str,
        client_id: str,
        client_secret: str = "",
        authorize_url: str = "",
        token_url: str = "",
        userinfo_url: str = "",
        redirect_uri: str = "",
        scopes: list[str] | None = None,
    ) -> None:
        self.name = normalize_name(name)
        self.client_id = client_id
        self.client_secret = client_secret
        self.authorize_url = authorize_url
        self.token_url = token_url
        self.userinfo_url = userinfo_url
        self.redirect_uri = redirect_uri
        self.scopes = scopes or []
        self._http_client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        """Whether both client credentials and endpoints are present."""
        return bool(self.client_id and self.authorize_url and self.token_url)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client."""
        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None

    def auth_code_url(self, state: str) -> str:
        if not self.is_configured:
            msg = "OAuth2 client credentials are missing"
            raise ProviderNotConfiguredError(msg, provider=self.name)

        params: dict[str, str] = {
            "response_type": "code",
            "client_id": self.client_id,
            "scope": " ".join(self.scopes),
        }
        if self.redirect_uri:
            params["redirect_uri"] = self.redirect_uri
        if state:
            params["state"] = state
        return f"{self.authorize_url}?{urlencode(params)}"

    async def exchange(self, code: str) -> Identity:
        if not self.is_configured:
            msg = "OAuth2 client credentials are missing"
            raise ProviderNotConfiguredError(msg, provider=self.name)
        code = code.strip()
        if not code:
            msg = "Invalid code"
            raise InvalidCodeError(msg, provider=self.name)

        data: dict[str, str] = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.client_id,
        }
        if self.client_secret:
            data["client_secret"] = self.client_secret
        if self.redirect_uri:
            data["redirect_uri"] = self.redirect_uri

        client = await self._get_client()
        try:
            resp = await client.post(
                self.token_url,
                data=data,
                headers={"Accept": "application/json"},
            )
            resp.raise_for_status()
            raw = resp.json()
        except httpx.HTTPStatusError as exc:
            msg = f"Token exchange failed: {exc.response.status_code}"
            raise UpstreamExchangeError(msg, provider=self.name) from exc
        except (httpx.HTTPError, ValueError) as exc:
            msg = f"Token exchange request failed: {exc}"
            raise UpstreamExchangeError(msg, provider=self.name) from exc

        if "error" in raw:
            logger.debug("Token error from %s: %s", self.name, redact_sensitive_data(raw))
            msg = f"Token error: {raw.get('error_description', raw['error'])}"
            raise UpstreamExchangeError(msg, provider=self.name)
        access_token = raw.get("access_token")
        if not access_token:
            msg = "Token response did not include an access token"
            raise UpstreamExchangeError(msg, provider=self.name)

        profile = await self.get_userinfo(access_token)
        identity = self.identity_from_profile(profile, access_token)
        logger.debug("Exchanged code for %s identity %s", self.name, identity.subject)
        return identity

    async def get_userinfo(self, access_token: str) -> dict[str, Any]:
        """Fetch the user profile for ``access_token``."""
        if not self.userinfo_url:
            return {}
        client = await self._get_client()
        try:
            resp = await client.get(
                self.userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=10.0,
            )
            resp.raise_for_status()
            return resp.json()  # type: ignore[no-any-return]
        except (httpx.HTTPError, ValueError) as exc:
            msg = f"Userinfo request failed: {exc}"
            raise UpstreamExchangeError(msg, provider=self.name) from exc

    def identity_from_profile(self, profile: dict[str, Any], access_token: str) -> Identity:
        """Map a provider profile document to an Identity."""
        subject = profile.get("sub") or profile.get("id") or profile.get("login")
        if not subject:
            msg = "Provider profile has no subject"
            raise UpstreamExchangeError(msg, provider=self.name)
        return Identity(
            subject=str(subject),
            email=profile.get("email") or "",
            full_name=profile.get("name") or profile.get("login") or "",
            picture_url=profile.get("picture") or profile.get("avatar_url") or "",
            provider=self.name,
            access_token=access_token,
        )


class GoogleProvider(OAuth2Provider):
    """Google OAuth2 provider with preset endpoints."""

    def __init__(
        self,
        client_id: str,
        client_secret: str = "",
        redirect_uri: str = "",
        scopes: list[str] | None = None,
        name: str = "google",
    ) -> None:
        super().__init__(
            name=name,
            client_id=client_id,
            client_secret=client_secret,
            authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
            token_url="https://oauth2.googleapis.com/token",  # noqa: S106
            userinfo_url="https://openidconnect.googleapis.com/v1/userinfo",
            redirect_uri=redirect_uri,
            scopes=scopes or ["openid", "email", "profile"],
        )


class GitHubProvider(OAuth2Provider):
    """GitHub OAuth2 provider.

    GitHub's profile endpoint reports ``id``/``login``/``avatar_url``
    rather than OIDC claims; ``identity_from_profile`` handles both.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str = "",
        redirect_uri: str = "",
        scopes: list[str] | None = None,
        name: str = "github",
    ) -> None:
        super().__init__(
            name=name,
            client_id=client_id,
            client_secret=client_secret,
            authorize_url="https://github.com/login/oauth/authorize",
            token_url="https://github.com/login/oauth/access_token",  # noqa: S106
            userinfo_url="https://api.github.com/user",
            redirect_uri=redirect_uri,
            scopes=scopes or ["read:user", "user:email"],
        )


def create_provider(name: str, settings: OAuth2ProviderSettings) -> OAuth2Provider:
    """Create an OAuth2Provider from per-provider settings.

    Parameters
    ----------
    name : str
        Provider name the instance will be registered under.
    settings : OAuth2ProviderSettings
        Credentials and endpoints.

    Returns
    -------
    OAuth2Provider
        A provider instance. It reports not-configured at call time
        when credentials are incomplete.
    """
    scopes = settings.scopes.split() or None

    if settings.kind == "google":
        return GoogleProvider(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            redirect_uri=settings.redirect_uri,
            scopes=scopes,
            name=name,
        )
    if settings.kind == "github":
        return GitHubProvider(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            redirect_uri=settings.redirect_uri,
            scopes=scopes,
            name=name,
        )
    return OAuth2Provider(
        name=name,
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        authorize_url=settings.authorize_url,
        token_url=settings.token_url,
        userinfo_url=settings.userinfo_url,
        redirect_uri=settings.redirect_uri,
        scopes=scopes,
    )
