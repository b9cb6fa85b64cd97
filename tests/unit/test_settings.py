"""
Unit Tests for Configuration
============================

Tests for settings validation and the logging configuration.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from erdsync.config.logging import get_logger, get_logging_config
from erdsync.config.settings import Settings, get_settings


class TestSettings:
    """Test settings validation."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ERDSYNC_ENVIRONMENT", raising=False)
        settings = Settings(_env_file=None)

        assert settings.environment == "development"
        assert settings.sync_debounce_ms == 400
        assert settings.sync_debounce_seconds == pytest.approx(0.4)
        assert settings.default_fk_cardinality == "many-to-one"
        assert settings.log_file is None

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("ERDSYNC_SYNC_DEBOUNCE_MS", "150")
        monkeypatch.setenv("ERDSYNC_LOG_LEVEL", "warning")

        settings = Settings(_env_file=None)

        assert settings.sync_debounce_ms == 150
        assert settings.log_level == "WARNING"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"environment": "staging"},
            {"log_level": "VERBOSE"},
            {"sync_debounce_ms": -1},
            {"default_fk_cardinality": "some-to-many"},
        ],
    )
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **overrides)

    def test_tests_run_with_test_settings(self, test_settings):
        assert get_settings() is test_settings
        assert get_settings().environment == "testing"


class TestLoggingConfig:
    """Test the logging dictConfig builder."""

    def test_console_only_by_default(self, test_settings):
        config = get_logging_config(test_settings)

        assert list(config["handlers"]) == ["console"]
        assert config["handlers"]["console"]["formatter"] == "standard"
        assert config["loggers"]["erdsync"]["propagate"] is False

    def test_production_uses_json_and_log_file(self, tmp_path):
        settings = Settings(_env_file=None, environment="production", log_file=tmp_path / "erdsync.log")

        config = get_logging_config(settings)

        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["handlers"]["file"]["filename"] == str(tmp_path / "erdsync.log")
        assert config["loggers"]["erdsync"]["handlers"] == ["console", "file"]
        assert config["formatters"]["json"]["()"] == "pythonjsonlogger.jsonlogger.JsonFormatter"

    def test_log_file_ignored_while_testing(self, test_settings):
        settings = test_settings.model_copy(update={"log_file": Path("logs/erdsync.log")})

        assert "file" not in get_logging_config(settings)["handlers"]

    def test_get_logger_binds_context(self):
        logger = get_logger("erdsync.tests").bind(component="tests")
        logger.debug("Bound logger works", value=1)
