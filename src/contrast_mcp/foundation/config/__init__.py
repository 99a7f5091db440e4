"""Configuration management using pydantic-settings.

Provides environment-based configuration with type safety and validation.
"""

from .settings import (
    CacheSettings,
    ContrastSettings,
    LoggingSettings,
    PaginationSettings,
    SessionFilterSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "CacheSettings",
    "ContrastSettings",
    "LoggingSettings",
    "PaginationSettings",
    "SessionFilterSettings",
    "clear_settings_cache",
    "get_settings",
]
