"""Tests for environment-based settings."""

from __future__ import annotations

import pytest

from contrast_mcp.foundation.config import ContrastSettings, get_settings


def test_defaults() -> None:
    """Nested settings carry the documented defaults."""
    s = ContrastSettings(_env_file=None)
    assert s.cache.applications_ttl == 300
    assert s.cache.libraries_ttl == 600
    assert s.cache.max_entries == 500_000
    assert s.pagination.default_page_size == 50
    assert s.session_filter.max_traces == 50_000
    assert s.logging.level == "INFO"
    assert s.base_url is None


def test_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """CONTRAST_ variables populate top-level and nested settings."""
    monkeypatch.setenv("CONTRAST_HOST_NAME", "https://teamserver.example.com/")
    monkeypatch.setenv("CONTRAST_ORG_ID", "org-9")
    monkeypatch.setenv("CONTRAST_API_KEY", "k")
    monkeypatch.setenv("CONTRAST_CACHE_LIBRARIES_TTL", "1200")
    monkeypatch.setenv("CONTRAST_LOG_LEVEL", "debug")
    s = ContrastSettings(_env_file=None)
    assert s.host_name == "teamserver.example.com"
    assert s.base_url == "https://teamserver.example.com/Contrast/api"
    assert s.org_id == "org-9"
    assert s.api_key is not None and s.api_key.get_secret_value() == "k"
    assert s.cache.libraries_ttl == 1200
    assert s.logging.level == "DEBUG"


def test_proxy_url(monkeypatch: pytest.MonkeyPatch) -> None:
    """The proxy URL needs both host and port."""
    monkeypatch.setenv("http_proxy_host", "proxy.local")
    assert ContrastSettings(_env_file=None).proxy_url is None
    monkeypatch.setenv("http_proxy_port", "3128")
    assert ContrastSettings(_env_file=None).proxy_url == "http://proxy.local:3128"


def test_missing_credentials_lists_env_names() -> None:
    """Missing connection settings are reported by environment variable name."""
    s = ContrastSettings(_env_file=None, host_name="h", org_id="o")
    assert s.missing_credentials() == ["CONTRAST_API_KEY", "CONTRAST_SERVICE_KEY", "CONTRAST_USERNAME"]


def test_secrets_are_masked() -> None:
    """Secret values never appear in the settings repr."""
    s = ContrastSettings(_env_file=None, api_key="super-secret")
    assert "super-secret" not in repr(s)


def test_get_settings_is_cached() -> None:
    """get_settings returns one instance until the cache is cleared."""
    assert get_settings() is get_settings()
