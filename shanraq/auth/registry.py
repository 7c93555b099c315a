"""Provider registry keyed by normalized provider name."""

from __future__ import annotations

import threading

from typing import TYPE_CHECKING

from ..exceptions import ProviderNotConfiguredError
from .providers import NotConfiguredProvider, normalize_name


if TYPE_CHECKING:
    from .providers import Provider


class ProviderRegistry:
    """Thread-safe mapping from provider name to Provider.

    Names are trimmed and case-folded, so ``"Google "`` and ``"google"``
    address the same slot. The lock covers map access only and is never
    held while a provider is called.
    """

    def __init__(self) -> None:
        self._providers: dict[str, Provider] = {}
        self._lock = threading.Lock()

    @classmethod
    def with_placeholders(cls, *names: str) -> ProviderRegistry:
        """Build a registry with every name bound to a NotConfiguredProvider."""
        registry = cls()
        for name in names:
            registry.register(name, NotConfiguredProvider(name))
        return registry

    def register(self, name: str, provider: Provider) -> None:
        """Bind ``name`` to ``provider``, replacing any existing binding."""
        key = normalize_name(name)
        with self._lock:
            self._providers[key] = provider

    def get(self, name: str) -> Provider:
        """Return the provider bound to ``name``.

        Raises
        ------
        ProviderNotConfiguredError
            If nothing is bound to the normalized name.
        """
        key = normalize_name(name)
        with self._lock:
            provider = self._providers.get(key)
        if provider is None:
            msg = "Auth provider not configured"
            raise ProviderNotConfiguredError(msg, provider=key)
        return provider

    def names(self) -> list[str]:
        """Return a sorted snapshot of the registered names."""
        with self._lock:
            return sorted(self._providers)

    def providers(self) -> list[Provider]:
        """Return a snapshot of the registered provider instances."""
        with self._lock:
            return list(self._providers.values())

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        key = normalize_name(name)
        with self._lock:
            return key in self._providers

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)
