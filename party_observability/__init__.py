"""
PARTY_OBSERVABILITY - observability core for the party-game application

In-process event log, performance metric recorder, and a concurrent
health-check aggregator over the persistence backend and the game modules.
"""

from .config import ObservabilityConfig, load_config
from .events import EventLog, LogCategory, LogEvent
from .exceptions import ConfigurationError, ObservabilityError
from .health import (
    HealthAggregator,
    HealthStatus,
    ModuleCheckResult,
    ModuleDefinition,
    ModuleHealthProber,
    ModuleHealthStatus,
    ModuleRegistry,
    MongoPersistenceStore,
    PersistenceHealth,
    PersistenceProbe,
    SystemHealthReport,
)
from .metrics import MetricRecorder, MetricStats, PerformanceMetric, timed_operation
from .service import (
    ModuleSession,
    MonitoringService,
    SummaryHealth,
    SystemSummary,
    periodic_health_checks,
)

__version__ = "0.1.0"

__all__ = [
    # Service
    "MonitoringService",
    "ModuleSession",
    "SummaryHealth",
    "SystemSummary",
    "periodic_health_checks",
    # Config
    "ObservabilityConfig",
    "load_config",
    # Events
    "EventLog",
    "LogCategory",
    "LogEvent",
    # Metrics
    "MetricRecorder",
    "MetricStats",
    "PerformanceMetric",
    "timed_operation",
    # Health
    "HealthAggregator",
    "HealthStatus",
    "ModuleCheckResult",
    "ModuleDefinition",
    "ModuleHealthProber",
    "ModuleHealthStatus",
    "ModuleRegistry",
    "MongoPersistenceStore",
    "PersistenceHealth",
    "PersistenceProbe",
    "SystemHealthReport",
    # Exceptions
    "ObservabilityError",
    "ConfigurationError",
]
