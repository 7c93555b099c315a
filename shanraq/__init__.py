"""Shanraq identity and session service."""

from __future__ import annotations

from .app import create_app
from .auth import Identity, ProviderRegistry, SessionManager
from .config import ShanraqSettings, get_settings


__version__ = "0.1.0"

__all__ = [
    "Identity",
    "ProviderRegistry",
    "SessionManager",
    "ShanraqSettings",
    "__version__",
    "create_app",
    "get_settings",
]
