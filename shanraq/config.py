"""Configuration system for Shanraq using pydantic-settings.

Supports layered configuration:
1. Built-in defaults (lowest priority)
2. pyproject.toml [tool.shanraq] section (project-level)
3. ./shanraq.toml (project-level, explicit)
4. ~/.config/shanraq/config.toml (user-level, overrides project)
5. Environment variables (highest priority)

Environment variables use SHANRAQ_ prefix with nested delimiter __.
Example: SHANRAQ_SESSION__TTL_SECONDS, SHANRAQ_AUTH__STRICT_STATE
"""

from __future__ import annotations

import logging
import os
import sys
import tomllib

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


logger = logging.getLogger("shanraq.config")


def _find_config_files() -> list[Path]:
    """Find all configuration files in order of precedence (lowest first)."""
    files = []

    pyproject = Path("pyproject.toml")
    if pyproject.exists():
        files.append(pyproject)

    shanraq_toml = Path("shanraq.toml")
    if shanraq_toml.exists():
        files.append(shanraq_toml)

    if sys.platform == "win32":
        user_config = Path(os.environ.get("APPDATA", "~")) / "shanraq" / "config.toml"
    else:
        user_config = Path("~/.config/shanraq/config.toml")
    user_config = user_config.expanduser()
    if user_config.exists():
        files.append(user_config)

    env_config = os.environ.get("SHANRAQ_CONFIG_FILE")
    if env_config:
        env_path = Path(env_config)
        if env_path.exists():
            files.append(env_path)

    return files


def _load_toml_config() -> dict[str, Any]:
    """Load and merge all TOML configuration files."""
    merged: dict[str, Any] = {}

    for config_file in _find_config_files():
        try:
            data = tomllib.loads(config_file.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            logger.warning("Ignoring unreadable config file %s: %s", config_file, exc)
            continue

        if config_file.name == "pyproject.toml":
            data = data.get("tool", {}).get("shanraq", {})

        merged = _deep_merge(merged, data)

    return merged


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _split_csv(v: Any) -> list[str]:
    if isinstance(v, str):
        return [s.strip() for s in v.split(",") if s.strip()]
    return v or []


# Field names that contain sensitive data and must be redacted in output.
_SENSITIVE_FIELDS: set[str] = {
    "client_secret",
}

_REDACTED = "********"


class LogSettings(BaseSettings):
    """Logging settings.

    Environment prefix: SHANRAQ_LOG__
    Example: SHANRAQ_LOG__LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="SHANRAQ_LOG__",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: str = "%(asctime)s %(name)s - %(levelname)s - %(message)s"


class SessionSettings(BaseSettings):
    """Session store and cookie settings.

    Environment prefix: SHANRAQ_SESSION__
    Example: SHANRAQ_SESSION__COOKIE_SECURE=true
    """

    model_config = SettingsConfigDict(
        env_prefix="SHANRAQ_SESSION__",
        extra="ignore",
    )

    ttl_seconds: float = Field(
        default=12 * 60 * 60,
        description="Session lifetime in seconds. Non-positive values fall back to 12 hours.",
    )
    cookie_name: str = Field(
        default="shanraq_session",
        description="Name of the cookie carrying the session token",
    )
    cookie_secure: bool | None = Field(
        default=None,
        description=(
            "Set the Secure attribute on the session cookie. "
            "Unset follows the request scheme; set True behind a TLS-terminating proxy."
        ),
    )
    cookie_samesite: Literal["lax", "strict", "none"] = Field(
        default="lax",
        description="SameSite attribute of the session cookie",
    )
    sweep_interval_seconds: float = Field(
        default=300.0,
        ge=0.0,
        description="Seconds between background purges of expired sessions (0 disables)",
    )


class OAuth2ProviderSettings(BaseModel):
    """Credentials and endpoints for one real OAuth2 provider.

    TOML section: [tool.shanraq.auth.oauth2.<name>]
    """

    kind: Literal["google", "github", "generic"] = "generic"
    client_id: str = ""
    client_secret: str = ""
    authorize_url: str = ""
    token_url: str = ""
    userinfo_url: str = ""
    redirect_uri: str = ""
    scopes: str = ""


class AuthSettings(BaseSettings):
    """Identity provider and login flow settings.

    Environment prefix: SHANRAQ_AUTH__
    Example: SHANRAQ_AUTH__SUPPORTED_PROVIDERS=google,github
    """

    model_config = SettingsConfigDict(
        env_prefix="SHANRAQ_AUTH__",
        extra="ignore",
    )

    supported_providers: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["google", "github"],
        description="Provider names registered at startup",
    )
    provider: str = Field(
        default="",
        description="Additional provider name registered alongside the supported ones",
    )
    demo_providers: bool = Field(
        default=True,
        description=(
            "Bind every registered name to the deterministic demo provider "
            "unless real credentials are configured for it"
        ),
    )
    strict_state: bool = Field(
        default=False,
        description=(
            "Reject callbacks whose state was not issued by a login request "
            "on this process, or was already used"
        ),
    )
    state_ttl_seconds: float = Field(
        default=600.0,
        gt=0.0,
        description="Lifetime of a pending login state",
    )
    max_pending_states: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of pending login states kept in memory",
    )
    exchange_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Upper bound on a provider code exchange",
    )
    public_base_url: str = Field(
        default="/",
        description="Return URL used by logout when the caller does not supply one",
    )
    oauth2: dict[str, OAuth2ProviderSettings] = Field(
        default_factory=dict,
        description="Real provider credentials keyed by provider name",
    )

    @field_validator("supported_providers", mode="before")
    @classmethod
    def parse_comma_separated(cls, v: Any) -> list[str]:
        """Parse comma-separated strings from env vars."""
        return _split_csv(v)

    def provider_names(self) -> list[str]:
        """Return every configured provider name, normalized and de-duplicated."""
        names = [*self.supported_providers, self.provider, *self.oauth2]
        return sorted({n.strip().lower() for n in names if n and n.strip()})


class ServerSettings(BaseSettings):
    """HTTP server settings passed to uvicorn.

    Environment prefix: SHANRAQ_SERVER__
    Example: SHANRAQ_SERVER__PORT=8080
    """

    model_config = SettingsConfigDict(
        env_prefix="SHANRAQ_SERVER__",
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)
    log_level: Literal["critical", "error", "warning", "info", "debug", "trace"] = "info"
    reload: bool = False


class ShanraqSettings(BaseSettings):
    """Main settings aggregating all configuration sections.

    Environment prefix: SHANRAQ__

    Configuration sources (in order of precedence):
    1. Built-in defaults
    2. pyproject.toml [tool.shanraq] section
    3. ./shanraq.toml (project-level)
    4. ~/.config/shanraq/config.toml (user-level, overrides project)
    5. Environment variables (highest priority)
    """

    model_config = SettingsConfigDict(
        env_prefix="SHANRAQ__",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log: LogSettings = Field(default_factory=LogSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    def __init__(self, **data: Any) -> None:
        # Explicit keyword arguments take precedence over TOML files
        merged = _deep_merge(_load_toml_config(), data)
        super().__init__(**merged)

    def show(self) -> str:
        """Format settings as a readable table with secrets redacted."""
        lines = ["Shanraq Configuration", "=" * 60]

        show_sections = [
            ("Logging", "log"),
            ("Session", "session"),
            ("Auth", "auth"),
            ("Server", "server"),
        ]

        for display_name, attr_name in show_sections:
            section = getattr(self, attr_name)
            lines.append(f"\n{display_name}")
            lines.append("-" * 40)
            for field_name, field_value in section.model_dump(exclude={"oauth2"}).items():
                value_str = str(field_value)
                if len(value_str) > 50:
                    value_str = value_str[:47] + "..."
                lines.append(f"  {field_name:24} = {value_str}")

        for name, provider in sorted(self.auth.oauth2.items()):
            lines.append(f"\nOAuth2 provider: {name}")
            lines.append("-" * 40)
            for field_name, field_value in provider.model_dump().items():
                if field_name in _SENSITIVE_FIELDS and field_value:
                    field_value = _REDACTED
                lines.append(f"  {field_name:24} = {field_value}")

        return "\n".join(lines)


@lru_cache(maxsize=1)
def get_settings() -> ShanraqSettings:
    """Get the global settings instance (cached).

    Call clear_settings() to reload configuration.
    """
    return ShanraqSettings()


def clear_settings() -> None:
    """Clear the cached settings to force reload."""
    get_settings.cache_clear()
