"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the storage backends and
the environment check script share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

import os

from pydantic import AnyHttpUrl, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class _EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)


class ProviderSettings(_EnvSettings):
    """OAuth client credentials for a single social provider."""

    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


class TwitterSettings(ProviderSettings):
    """Credentials for the Twitter/X OAuth 2.0 app."""

    client_id: Optional[str] = Field(None, validation_alias="TWITTER_CLIENT_ID")
    client_secret: Optional[str] = Field(None, validation_alias="TWITTER_CLIENT_SECRET")


class LinkedInSettings(ProviderSettings):
    """Credentials for the LinkedIn OAuth 2.0 app."""

    client_id: Optional[str] = Field(None, validation_alias="LINKEDIN_CLIENT_ID")
    client_secret: Optional[str] = Field(
        None, validation_alias="LINKEDIN_CLIENT_SECRET"
    )


class InstagramSettings(ProviderSettings):
    """Credentials for the Instagram Login app."""

    client_id: Optional[str] = Field(None, validation_alias="INSTAGRAM_CLIENT_ID")
    client_secret: Optional[str] = Field(
        None, validation_alias="INSTAGRAM_CLIENT_SECRET"
    )


class OAuthSettings(_EnvSettings):
    """OAuth flow configuration."""

    verifier_ttl_seconds: int = Field(600, validation_alias="OAUTH_VERIFIER_TTL")
    enforce_state_binding: bool = Field(
        False,
        validation_alias="OAUTH_ENFORCE_STATE_BINDING",
        description=(
            "Bind the callback state to a server-side nonce issued at initiation."
        ),
    )


class SecuritySettings(_EnvSettings):
    """Security-related configuration."""

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class StorageSettings(_EnvSettings):
    """Document store selection and connection details."""

    backend: Literal["sqlite", "dynamodb"] = Field(
        "sqlite", validation_alias="STORAGE_BACKEND"
    )
    sqlite_path: str = Field(
        "data/social_dashboard.db", validation_alias="SQLITE_DB_PATH"
    )
    dynamodb_table_name: Optional[str] = Field(
        None, validation_alias="DYNAMODB_TABLE_NAME"
    )
    region_name: str = Field("us-east-1", validation_alias="AWS_REGION")

    @model_validator(mode="after")
    def _require_table_for_dynamodb(self) -> "StorageSettings":
        if self.backend == "dynamodb" and not self.dynamodb_table_name:
            raise ValueError(
                "DYNAMODB_TABLE_NAME is required when STORAGE_BACKEND=dynamodb"
            )
        return self


class AppSettings(_EnvSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    app_base_url: AnyHttpUrl = Field(
        ...,
        validation_alias="APP_BASE_URL",
        description="Public URL of the dashboard; callbacks and redirects derive from it.",
    )
    http_timeout_seconds: float = Field(15.0, validation_alias="HTTP_TIMEOUT_SECONDS")
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    twitter: TwitterSettings = Field(default_factory=TwitterSettings)
    linkedin: LinkedInSettings = Field(default_factory=LinkedInSettings)
    instagram: InstagramSettings = Field(default_factory=InstagramSettings)

    @property
    def base_url(self) -> str:
        """Base URL without a trailing slash."""
        return str(self.app_base_url).rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def provider_settings(self, provider: str) -> ProviderSettings:
        """Return the credential block for ``provider``."""
        return getattr(self, provider)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "InstagramSettings",
    "LinkedInSettings",
    "OAuthSettings",
    "ProviderSettings",
    "SecuritySettings",
    "StorageSettings",
    "TwitterSettings",
    "get_settings",
]
