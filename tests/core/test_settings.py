"""Tests for Settings."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from decision_trace.settings import Settings, settings

_TRACE_VARS = ("TRACE_API_URL", "TRACE_ENABLED", "TRACE_BATCH_SIZE", "TRACE_SUMMARY_LIMIT", "TRACE_DELIVERY_TIMEOUT")


@pytest.fixture
def clean_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty directory with no TRACE_* variables set."""
    for name in _TRACE_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestSettings:
    """Test Settings configuration."""

    def test_default_values(self, clean_env: Path):
        """Test default Settings values when env vars/files are not set."""
        s = Settings()

        assert s.trace_api_url == "http://localhost:3001/api"
        assert s.trace_enabled is True
        assert s.trace_batch_size == 10
        assert s.trace_summary_limit == 100
        assert s.trace_delivery_timeout == 10.0

    def test_env_variable_loading(self, clean_env: Path):
        """Test loading settings from environment variables."""
        with patch.dict(
            os.environ,
            {
                "TRACE_API_URL": "http://traces.internal:3001/api",
                "TRACE_ENABLED": "false",
                "TRACE_BATCH_SIZE": "25",
                "TRACE_SUMMARY_LIMIT": "200",
                "TRACE_DELIVERY_TIMEOUT": "2.5",
            },
        ):
            s = Settings()

        assert s.trace_api_url == "http://traces.internal:3001/api"
        assert s.trace_enabled is False
        assert s.trace_batch_size == 25
        assert s.trace_summary_limit == 200
        assert s.trace_delivery_timeout == 2.5

    def test_extra_env_ignored(self, clean_env: Path):
        """Test that unknown environment variables are ignored."""
        with patch.dict(os.environ, {"TRACE_BATCH_SIZE": "3", "UNKNOWN_SETTING": "should-be-ignored"}):
            s = Settings()
        assert s.trace_batch_size == 3
        assert not hasattr(s, "unknown_setting")

    def test_invalid_value_rejected(self, clean_env: Path):
        """Test that a non-numeric batch size fails validation."""
        with patch.dict(os.environ, {"TRACE_BATCH_SIZE": "lots"}):
            with pytest.raises(ValidationError):
                Settings()

    def test_settings_singleton(self):
        """Test that the module provides a settings singleton."""
        assert isinstance(settings, Settings)

        from decision_trace.settings import settings as settings2

        assert settings is settings2

    def test_env_file_loading(self, clean_env: Path) -> None:
        """Test loading from .env file."""
        (clean_env / ".env").write_text("""
TRACE_API_URL=http://from-file:3001/api
TRACE_SUMMARY_LIMIT=50
""")

        s = Settings()

        assert s.trace_api_url == "http://from-file:3001/api"
        assert s.trace_summary_limit == 50

    def test_env_var_overrides_env_file(self, clean_env: Path) -> None:
        """Test that environment variables override .env file."""
        (clean_env / ".env").write_text("TRACE_BATCH_SIZE=5")

        with patch.dict(os.environ, {"TRACE_BATCH_SIZE": "7"}):
            s = Settings()

        assert s.trace_batch_size == 7

    def test_settings_immutable_config(self):
        """Test that Settings uses proper Pydantic configuration."""
        s = Settings()

        with pytest.raises(ValidationError) as exc_info:
            s.trace_batch_size = 1  # type: ignore[misc]
        assert "frozen" in str(exc_info.value).lower()

    def test_model_config_attributes(self):
        """Test that model_config is properly set."""
        assert Settings.model_config.get("env_file") == ".env"
        assert Settings.model_config.get("env_file_encoding") == "utf-8"
        assert Settings.model_config.get("extra") == "ignore"
        assert Settings.model_config.get("frozen") is True
