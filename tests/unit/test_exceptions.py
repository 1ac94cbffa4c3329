"""
Unit tests for custom exceptions.

Tests exception hierarchy and error messages.
"""

from party_observability.exceptions import (ConfigurationError,
                                            ObservabilityError)


class TestExceptionHierarchy:
    """Test exception inheritance hierarchy."""

    def test_observability_error_is_runtime_error(self):
        """Test that ObservabilityError is a RuntimeError."""
        error = ObservabilityError("test error")
        assert isinstance(error, RuntimeError)

    def test_configuration_error_inheritance(self):
        """Test that ConfigurationError inherits from ObservabilityError."""
        error = ConfigurationError("config invalid")
        assert isinstance(error, ObservabilityError)
        assert isinstance(error, RuntimeError)


class TestExceptionMessages:
    """Test exception message formatting."""

    def test_observability_error_message(self):
        """Test ObservabilityError message."""
        message = "Something went wrong"
        error = ObservabilityError(message)
        assert str(error) == message
        assert error.message == message
        assert error.context == {}

    def test_observability_error_with_context(self):
        """Test ObservabilityError message with context."""
        context = {"module_id": "eu-nunca", "check": "reachability"}
        error = ObservabilityError("Something went wrong", context=context)
        assert "context:" in str(error)
        assert "module_id=eu-nunca" in str(error)
        assert error.context == context

    def test_configuration_error_with_key(self):
        """Test ConfigurationError with config key and value."""
        error = ConfigurationError("Invalid value", config_key="max_logs", config_value=0)
        assert error.config_key == "max_logs"
        assert error.config_value == 0
        assert error.context == {"config_key": "max_logs", "config_value": 0}
        assert "config_key=max_logs" in str(error)

    def test_configuration_error_without_key(self):
        """Test ConfigurationError without optional fields."""
        error = ConfigurationError("config invalid")
        assert error.config_key is None
        assert error.config_value is None
        assert str(error) == "config invalid"
