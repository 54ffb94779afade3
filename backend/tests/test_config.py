"""Tests for Settings."""

import pytest
from pydantic import ValidationError

from stoxly.config import Settings, get_settings

ENV_NAMES = list(Settings.model_fields)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


class TestSettings:
    """Environment-driven configuration."""

    def test_defaults(self, clean_env):
        """Test defaults with an empty environment."""
        settings = Settings.from_env()
        assert settings.STOXLY_API_URL is None
        assert settings.STOXLY_QUOTE_TTL == 10.0
        assert settings.STOXLY_SEARCH_TTL == 300.0
        assert settings.STOXLY_RETRY_ATTEMPTS == 3
        assert settings.STOXLY_RETRY_BASE_DELAY == 1.0
        assert settings.STOXLY_STREAM_RECONNECT is True
        assert settings.uses_simulator

    def test_from_env(self, clean_env):
        """Test that environment values are parsed and validated."""
        clean_env.setenv("STOXLY_API_URL", "https://quotes.example.com")
        clean_env.setenv("STOXLY_QUOTE_TTL", "15")
        clean_env.setenv("STOXLY_RETRY_ATTEMPTS", "5")
        clean_env.setenv("STOXLY_STREAM_RECONNECT", "off")
        settings = Settings.from_env()
        assert settings.STOXLY_API_URL == "https://quotes.example.com"
        assert settings.STOXLY_QUOTE_TTL == 15.0
        assert settings.STOXLY_RETRY_ATTEMPTS == 5
        assert settings.STOXLY_STREAM_RECONNECT is False
        assert not settings.uses_simulator

    def test_blank_values_ignored(self, clean_env):
        """Test that whitespace-only values fall back to defaults."""
        clean_env.setenv("STOXLY_API_URL", "   ")
        clean_env.setenv("STOXLY_STREAM_RECONNECT", "")
        settings = Settings.from_env()
        assert settings.uses_simulator
        assert settings.STOXLY_STREAM_RECONNECT is True

    def test_invalid_values_rejected(self, clean_env):
        """Test that out-of-range values fail validation."""
        clean_env.setenv("STOXLY_QUOTE_TTL", "0")
        with pytest.raises(ValidationError):
            Settings.from_env()

    def test_get_settings_cached(self, clean_env):
        """Test that get_settings() returns one shared instance."""
        assert get_settings() is get_settings()
