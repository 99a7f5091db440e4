"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults. Supports .env files and nested configuration.

Example:
    >>> from contrast_mcp.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.cache.applications_ttl
    300.0
    >>> settings.logging.level
    'INFO'

    # Or with environment variables:
    # CONTRAST_HOST_NAME=app.contrastsecurity.com
    # CONTRAST_CACHE_LIBRARIES_TTL=1200
    # CONTRAST_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import (
    AliasChoices,
    Field,
    PositiveFloat,
    PositiveInt,
    SecretStr,
    computed_field,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseSettings):
    """TTL cache configuration for slow-changing upstream data."""

    model_config = SettingsConfigDict(
        env_prefix="CONTRAST_CACHE_",
        extra="ignore",
    )

    enabled: bool = True
    max_entries: PositiveInt = Field(default=500_000, description="Upper bound per named cache")
    applications_ttl: PositiveFloat = Field(default=300.0, description="Application list TTL in seconds")
    libraries_ttl: PositiveFloat = Field(default=600.0, description="Per-application library TTL in seconds")
    observations_ttl: PositiveFloat = Field(default=600.0, description="Per-library observation TTL in seconds")


class PaginationSettings(BaseSettings):
    """Default page sizing for paginated tools."""

    model_config = SettingsConfigDict(
        env_prefix="CONTRAST_PAGINATION_",
        extra="ignore",
    )

    default_page_size: Annotated[int, Field(ge=1, le=100)] = 50
    max_page_size: Annotated[int, Field(ge=1, le=100)] = 100


class SessionFilterSettings(BaseSettings):
    """Limits for fetching traces that are filtered in memory by session metadata."""

    model_config = SettingsConfigDict(
        env_prefix="CONTRAST_SESSION_",
        extra="ignore",
    )

    fetch_page_size: Annotated[int, Field(ge=1, le=1000)] = 500
    max_pages: PositiveInt = 100
    max_traces: PositiveInt = 50_000


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CONTRAST_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class ContrastSettings(BaseSettings):
    """Root settings for the Contrast MCP server.

    Loads configuration from environment variables with CONTRAST_ prefix.
    Supports nested configuration and .env files.

    Example environment variables:
        CONTRAST_HOST_NAME=app.contrastsecurity.com
        CONTRAST_API_KEY=...
        CONTRAST_SERVICE_KEY=...
        CONTRAST_USERNAME=someone@example.com
        CONTRAST_ORG_ID=...
        CONTRAST_CACHE_APPLICATIONS_TTL=600
        CONTRAST_LOG_FORMAT=json
    """

    model_config = SettingsConfigDict(
        env_prefix="CONTRAST_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    # Connection
    host_name: str | None = Field(default=None, description="Contrast TeamServer host, without scheme")
    api_key: SecretStr | None = None
    service_key: SecretStr | None = None
    username: str | None = None
    org_id: str | None = None
    protocol: Literal["http", "https"] = "https"
    http_proxy_host: str | None = Field(
        default=None,
        validation_alias=AliasChoices("http_proxy_host", "contrast_http_proxy_host"),
    )
    http_proxy_port: PositiveInt | None = Field(
        default=None,
        validation_alias=AliasChoices("http_proxy_port", "contrast_http_proxy_port"),
    )
    timeout: PositiveFloat = Field(default=30.0, description="Upstream request timeout in seconds")

    # Nested settings (loaded with CONTRAST_CACHE_, CONTRAST_LOG_, etc.)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    pagination: PaginationSettings = Field(default_factory=PaginationSettings)
    session_filter: SessionFilterSettings = Field(default_factory=SessionFilterSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("host_name", mode="before")
    @classmethod
    def _normalize_host(cls, v: str | None) -> str | None:
        """Strip scheme and trailing slashes so the host can be joined with the protocol."""
        if not isinstance(v, str):
            return v
        host = v.strip()
        for scheme in ("https://", "http://"):
            if host.lower().startswith(scheme):
                host = host[len(scheme):]
        return host.rstrip("/") or None

    @field_validator("protocol", mode="before")
    @classmethod
    def _lower_protocol(cls, v: str) -> str:
        return v.strip().lower() if isinstance(v, str) else v

    @computed_field
    @property
    def base_url(self) -> str | None:
        """REST API root, or None while the host is unconfigured."""
        return f"{self.protocol}://{self.host_name}/Contrast/api" if self.host_name else None

    @computed_field
    @property
    def proxy_url(self) -> str | None:
        """Proxy URL when both proxy host and port are configured."""
        if self.http_proxy_host and self.http_proxy_port:
            return f"http://{self.http_proxy_host}:{self.http_proxy_port}"
        return None

    def missing_credentials(self) -> list[str]:
        """Names of connection settings that must be present before calling the API."""
        required = {
            "CONTRAST_HOST_NAME": self.host_name,
            "CONTRAST_API_KEY": self.api_key,
            "CONTRAST_SERVICE_KEY": self.service_key,
            "CONTRAST_USERNAME": self.username,
            "CONTRAST_ORG_ID": self.org_id,
        }
        return [name for name, value in required.items() if not value]


@lru_cache(maxsize=1)
def get_settings() -> ContrastSettings:
    """Get the process settings instance (cached).

    Returns:
        Cached ContrastSettings instance
    """
    return ContrastSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing).

    After calling this, the next get_settings() call will
    reload configuration from environment.
    """
    get_settings.cache_clear()
