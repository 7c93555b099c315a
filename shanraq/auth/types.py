"""Type definitions for identity and session management.

Shared types used across providers, the session store, and the auth routes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Identity:
    """Verified user profile returned by a provider's code exchange.

    Attributes
    ----------
    subject : str
        Provider-scoped unique user identifier.
    email : str
        Email address reported by the provider.
    full_name : str
        Display name.
    picture_url : str
        Avatar URL (may be empty).
    provider : str
        Normalized name of the provider that produced this identity.
    access_token : str
        Provider access token. Never serialized into HTTP responses.
    """

    subject: str
    email: str = ""
    full_name: str = ""
    picture_url: str = ""
    provider: str = ""
    access_token: str = ""

    def to_public_dict(self) -> dict[str, Any]:
        """Return the JSON-safe view of this identity (no access token)."""
        return {
            "subject": self.subject,
            "email": self.email,
            "full_name": self.full_name,
            "picture_url": self.picture_url,
            "provider": self.provider,
        }


@dataclass(frozen=True)
class SessionEntry:
    """Identity stored under a session token.

    Attributes
    ----------
    identity : Identity
        The authenticated identity.
    expires_at : float
        Unix timestamp after which the entry is treated as absent.
    """

    identity: Identity
    expires_at: float

    def is_expired(self, now: float) -> bool:
        """Check whether the entry has passed its expiry at ``now``."""
        return now >= self.expires_at

