"""Bounded, TTL-enforced store for pending login ``state`` values."""

from __future__ import annotations

import secrets
import threading
import time

from dataclasses import dataclass


def generate_state() -> str:
    """Generate a random, URL-safe login state value."""
    return secrets.token_urlsafe(32)


@dataclass(frozen=True)
class PendingState:
    """A login request waiting for its callback.

    Attributes
    ----------
    provider : str
        Normalized name of the provider the login was started with.
    created_at : float
        Unix timestamp when the login request was handled.
    """

    provider: str
    created_at: float


class PendingStateStore:
    """Remembers issued login states so a callback can be correlated.

    Entries are single-use: ``pop`` removes them. Expired entries are
    evicted on every access, and the oldest entry is dropped when the
    store is at capacity.

    Parameters
    ----------
    max_pending : int
        Maximum number of concurrent pending states.
    max_age : float
        Seconds before a pending state is discarded.
    """

    def __init__(self, max_pending: int = 1000, max_age: float = 600.0) -> None:
        self._store: dict[str, PendingState] = {}
        self._lock = threading.Lock()
        self._max_pending = max_pending
        self._max_age = max_age

    def put(self, state: str, provider: str) -> None:
        """Record ``state`` as issued for ``provider``."""
        with self._lock:
            self._evict_expired()
            if state not in self._store and len(self._store) >= self._max_pending:
                oldest = min(self._store, key=lambda k: self._store[k].created_at)
                del self._store[oldest]
            self._store[state] = PendingState(provider=provider, created_at=time.time())

    def pop(self, state: str) -> PendingState | None:
        """Retrieve and remove a pending state."""
        with self._lock:
            self._evict_expired()
            return self._store.pop(state, None)

    def __contains__(self, state: object) -> bool:
        with self._lock:
            self._evict_expired()
            return state in self._store

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired()
            return len(self._store)

    def cleanup(self) -> int:
        """Explicitly clean up expired states. Returns count removed."""
        with self._lock:
            before = len(self._store)
            self._evict_expired()
            return before - len(self._store)

    def _evict_expired(self) -> None:
        """Remove all expired entries (caller must hold lock)."""
        cutoff = time.time() - self._max_age
        expired = [k for k, v in self._store.items() if v.created_at < cutoff]
        for k in expired:
            del self._store[k]
