"""
Unit tests for configuration loading.
"""

import pytest

from party_observability.config import ObservabilityConfig, load_config
from party_observability.constants import (DEFAULT_LOG_RETENTION_MS,
                                           DEFAULT_MAX_LOGS,
                                           DEFAULT_MAX_METRICS)
from party_observability.exceptions import ConfigurationError


class TestObservabilityConfig:
    """Test defaults and validation."""

    def test_defaults(self):
        """Test that every field has a usable default."""
        config = ObservabilityConfig()
        assert config.max_logs == DEFAULT_MAX_LOGS == 1000
        assert config.max_metrics == DEFAULT_MAX_METRICS == 500
        assert config.default_log_retention_ms == DEFAULT_LOG_RETENTION_MS
        assert config.critical_error_threshold == 10

    def test_load_config(self):
        """Test direct construction through load_config."""
        config = load_config(max_logs=200, probe_timeout_seconds=2.5)
        assert config.max_logs == 200
        assert config.probe_timeout_seconds == 2.5

    @pytest.mark.parametrize(
        "field,value",
        [
            ("max_logs", 0),
            ("max_metrics", -1),
            ("probe_timeout_seconds", 0),
            ("critical_error_threshold", 0),
            ("default_log_retention_ms", -5),
        ],
    )
    def test_invalid_values(self, field, value):
        """Test that out-of-range values raise ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(**{field: value})

        assert exc_info.value.config_key == field
        assert exc_info.value.config_value == value

    def test_non_numeric_value(self):
        """Test that an unparseable value raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            load_config(max_logs="lots")


class TestFromEnv:
    """Test environment loading."""

    def test_reads_environment(self, monkeypatch):
        """Test that OBS_* variables are applied."""
        monkeypatch.setenv("OBS_MAX_LOGS", "25")
        monkeypatch.setenv("OBS_PROBE_TIMEOUT_SECONDS", "0.5")

        config = ObservabilityConfig.from_env()

        assert config.max_logs == 25
        assert config.probe_timeout_seconds == 0.5
        assert config.max_metrics == DEFAULT_MAX_METRICS

    def test_empty_variables_ignored(self, monkeypatch):
        """Test that empty variables fall back to defaults."""
        monkeypatch.setenv("OBS_MAX_METRICS", "")
        assert ObservabilityConfig.from_env().max_metrics == DEFAULT_MAX_METRICS

    def test_overrides_take_precedence(self, monkeypatch):
        """Test that explicit overrides win over the environment."""
        monkeypatch.setenv("OBS_MAX_LOGS", "25")
        assert ObservabilityConfig.from_env(max_logs=7).max_logs == 7

    def test_invalid_environment(self, monkeypatch):
        """Test that invalid environment values raise ConfigurationError."""
        monkeypatch.setenv("OBS_CRITICAL_ERROR_THRESHOLD", "zero")

        with pytest.raises(ConfigurationError) as exc_info:
            ObservabilityConfig.from_env()

        assert exc_info.value.config_key == "critical_error_threshold"
