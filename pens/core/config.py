"""
Application configuration models and helpers.

Centralizes settings management so the polling worker and the operator
scripts share a consistent configuration surface. Library classes receive
these objects explicitly; only entry points call ``get_settings``.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class OAuthSettings(BaseSettings):
    """OAuth2 refresh flow configuration for the mail provider."""

    model_config = SettingsConfigDict(
        env_prefix="PENS_OAUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    client_id: str = Field("", description="Application (client) ID.")
    tenant_id: str = Field("", description="Directory (tenant) ID or issuer segment.")
    authority_host: str = Field("https://login.microsoftonline.com")
    scope: str = Field(
        "",
        description="Space-separated scopes sent with the refresh request, if any.",
    )
    token_file: str = Field("config/oauth_token.json")
    certificate_path: Optional[str] = None
    private_key_path: Optional[str] = None
    client_secret: Optional[str] = None
    request_timeout_seconds: float = Field(30.0, gt=0)
    refresh_buffer_seconds: int = Field(300, ge=0)
    assertion_lifetime_seconds: int = Field(3600, gt=0, le=3600)

    @field_validator("certificate_path", "private_key_path", "client_secret", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        """Treat empty strings from env files as unset."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def token_endpoint(self) -> str:
        authority = self.authority_host.rstrip("/")
        return f"{authority}/{self.tenant_id}/oauth2/v2.0/token"

    @property
    def has_certificate(self) -> bool:
        return bool(self.certificate_path and self.private_key_path)


class AppSettings(BaseSettings):
    """Root settings object for the monitoring agent."""

    model_config = SettingsConfigDict(
        env_prefix="PENS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = Field("development")
    log_level: str = Field("INFO")
    debug_mode: bool = Field(False)
    check_interval: int = Field(60, gt=0, description="Seconds between polling cycles.")
    imap_username: str = Field("", description="Mailbox the bearer token is used for.")
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug_mode else self.log_level


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "AppSettings",
    "OAuthSettings",
    "get_settings",
]
