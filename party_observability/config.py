"""
Configuration management for PARTY_OBSERVABILITY.

Settings are held in a Pydantic model so that capacities and timeouts are
validated once, at construction. Every value has a default, so
``ObservabilityConfig()`` is always usable; ``ObservabilityConfig.from_env()``
reads overrides from the environment.

Example:
    # Using environment variables
    config = ObservabilityConfig.from_env()
    service = MonitoringService(config=config)

    # Or using direct parameters
    config = load_config(max_logs=200, probe_timeout_seconds=2.0)
"""

import os
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .constants import (
    DEFAULT_CRITICAL_ERROR_THRESHOLD,
    DEFAULT_LOG_RETENTION_MS,
    DEFAULT_MAX_LOGS,
    DEFAULT_MAX_METRICS,
    DEFAULT_PROBE_TIMEOUT_SECONDS,
    DEFAULT_RESOURCE_QUERY_LIMIT,
    DEFAULT_SLOW_QUERY_THRESHOLD_MS,
)
from .exceptions import ConfigurationError

# Environment variable name for each config field
ENV_VARS: dict[str, str] = {
    "max_logs": "OBS_MAX_LOGS",
    "max_metrics": "OBS_MAX_METRICS",
    "probe_timeout_seconds": "OBS_PROBE_TIMEOUT_SECONDS",
    "slow_query_threshold_ms": "OBS_SLOW_QUERY_THRESHOLD_MS",
    "critical_error_threshold": "OBS_CRITICAL_ERROR_THRESHOLD",
    "default_log_retention_ms": "OBS_DEFAULT_LOG_RETENTION_MS",
    "resource_query_limit": "OBS_RESOURCE_QUERY_LIMIT",
}


class ObservabilityConfig(BaseModel):
    """
    Observability configuration with automatic validation.
    """

    max_logs: int = Field(
        DEFAULT_MAX_LOGS, ge=1, description="Capacity of the event log buffer"
    )
    max_metrics: int = Field(
        DEFAULT_MAX_METRICS, ge=1, description="Capacity of the metric buffer"
    )
    probe_timeout_seconds: float = Field(
        DEFAULT_PROBE_TIMEOUT_SECONDS,
        gt=0,
        description="Deadline for each health probe in seconds",
    )
    slow_query_threshold_ms: float = Field(
        DEFAULT_SLOW_QUERY_THRESHOLD_MS,
        gt=0,
        description="Scoped queries slower than this are reported as degraded",
    )
    critical_error_threshold: int = Field(
        DEFAULT_CRITICAL_ERROR_THRESHOLD,
        ge=1,
        description="Error count at which the system summary turns critical",
    )
    default_log_retention_ms: int = Field(
        DEFAULT_LOG_RETENTION_MS,
        ge=0,
        description="Age cutoff used by clear_logs() when none is given",
    )
    resource_query_limit: int = Field(
        DEFAULT_RESOURCE_QUERY_LIMIT,
        ge=1,
        description="Maximum documents fetched by a scoped resource query",
    )

    @classmethod
    def from_env(cls, **overrides: Any) -> "ObservabilityConfig":
        """
        Build a configuration from OBS_* environment variables.

        Args:
            **overrides: Values that take precedence over the environment

        Returns:
            Validated ObservabilityConfig

        Raises:
            ConfigurationError: If a value is missing a valid type or is out of range
        """
        values: dict[str, Any] = {}
        for field_name, env_var in ENV_VARS.items():
            raw = os.getenv(env_var)
            if raw is not None and raw != "":
                values[field_name] = raw
        values.update(overrides)
        return load_config(**values)


def load_config(**values: Any) -> ObservabilityConfig:
    """
    Construct an ObservabilityConfig, converting validation failures.

    Raises:
        ConfigurationError: If any value is invalid
    """
    try:
        return ObservabilityConfig(**values)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(part) for part in first.get("loc", ()))
        raise ConfigurationError(
            f"Invalid observability configuration: {first.get('msg', str(e))}",
            config_key=key or None,
            config_value=first.get("input"),
        ) from e
