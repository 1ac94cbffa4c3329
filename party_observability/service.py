"""
Monitoring service.

The explicitly constructed facade that owns one event log, one metric
recorder, and one health aggregator. Create one per process (or per test)
and pass it to the code that needs it.

Usage:
    service = MonitoringService.from_mongo(client, "party_app")
    service.events.game_event("roleta-bebada", "Round started", subject_id=user_id)
    report = await service.run_full_health_check(subject_id=user_id)
"""

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from motor.motor_asyncio import AsyncIOMotorClient

from .config import ObservabilityConfig
from .constants import DEFAULT_HEALTH_CHECK_INTERVAL_SECONDS
from .events import EventLog, ExternalSink, LogCategory, LogEvent
from .health import (
    HealthAggregator,
    ModuleHealthProber,
    ModuleRegistry,
    MongoPersistenceStore,
    OwnerResourceQuery,
    PersistencePinger,
    PersistenceProbe,
    ResourceCount,
    ScopedResourceQuery,
    SystemHealthReport,
)
from .logging import module_context
from .metrics import MetricRecorder, MetricStats, Operation, PerformanceMetric

T = TypeVar("T")


class SummaryHealth(str, Enum):
    """Log-derived health of the session."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class SystemSummary:
    """Counts over the current event log."""

    session_id: str
    total_logs: int
    total_metrics: int
    error_count: int
    warning_count: int
    module_event_count: int
    health: SummaryHealth

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "total_logs": self.total_logs,
            "total_metrics": self.total_metrics,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "module_event_count": self.module_event_count,
            "health": self.health.value,
        }


class ModuleSession:
    """
    Handle logging the lifecycle of one game session of a module.

    Events written through the handle are mirrored to stdlib logging with the
    module and subject attached to the record.
    """

    def __init__(self, events: EventLog, module_id: str, subject_id: str | None = None):
        self._events = events
        self._module_id = module_id
        self._subject_id = subject_id
        self._stopped = False
        self._emit(LogCategory.GAME, "Game started", {"subject_id": subject_id})

    @property
    def module_id(self) -> str:
        return self._module_id

    def log_event(self, message: str, details: dict[str, Any] | None = None) -> None:
        self._emit(LogCategory.GAME, message, details)

    def log_error(self, message: str, details: dict[str, Any] | None = None) -> None:
        self._emit(LogCategory.ERROR, f"[{self._module_id}] {message}", details)

    def stop(self) -> None:
        """Log the end of the session; later calls are no-ops."""
        if self._stopped:
            return
        self._stopped = True
        self._emit(LogCategory.GAME, "Game finished", {"subject_id": self._subject_id})

    def _emit(self, category: LogCategory, message: str, details: dict[str, Any] | None) -> None:
        with module_context(self._module_id, self._subject_id):
            self._events.record(category, message, details, self._subject_id, self._module_id)


class MonitoringService:
    """
    Observability core for the party-game application.

    Exposes the operations used by the presentation layer: health checks,
    log queries, the session summary, export, and purge.
    """

    def __init__(
        self,
        pinger: PersistencePinger,
        resources: ScopedResourceQuery | None = None,
        owner_resources: OwnerResourceQuery | None = None,
        registry: ModuleRegistry | None = None,
        config: ObservabilityConfig | None = None,
        external_sink: ExternalSink | None = None,
        session_id: str | None = None,
    ):
        """
        Initialize the service.

        Args:
            pinger: Persistence round-trip collaborator
            resources: Scoped resource query collaborator
            owner_resources: Owner-scoped resource query collaborator
            registry: Module registry (defaults to the built-in party games)
            config: Observability configuration (defaults to ObservabilityConfig())
            external_sink: Best-effort hook invoked for every error event
            session_id: Session id override (generated if None)
        """
        self.config = config or ObservabilityConfig()
        self.metrics = MetricRecorder(max_metrics=self.config.max_metrics)
        self.events = EventLog(
            max_events=self.config.max_logs,
            session_id=session_id,
            metrics=self.metrics,
            external_sink=external_sink,
        )
        self.registry = registry if registry is not None else ModuleRegistry.with_party_games()
        self.prober = ModuleHealthProber(
            self.registry,
            resources=resources,
            owner_resources=owner_resources,
            timeout_seconds=self.config.probe_timeout_seconds,
            slow_query_threshold_ms=self.config.slow_query_threshold_ms,
        )
        self.aggregator = HealthAggregator(
            self.prober,
            PersistenceProbe(
                pinger, timeout_seconds=self.config.probe_timeout_seconds, events=self.events
            ),
            self.events,
            self.metrics,
        )
        self._latest_report: SystemHealthReport | None = None

    @classmethod
    def from_mongo(
        cls,
        client: AsyncIOMotorClient,
        db_name: str,
        **kwargs: Any,
    ) -> "MonitoringService":
        """
        Build a service whose collaborators are backed by MongoDB.

        Args:
            client: Motor client
            db_name: Application database name
            **kwargs: Forwarded to MonitoringService (registry, config, ...)
        """
        config = kwargs.get("config") or ObservabilityConfig()
        store = MongoPersistenceStore(client, db_name, query_limit=config.resource_query_limit)
        kwargs["config"] = config
        return cls(pinger=store, resources=store, owner_resources=store, **kwargs)

    @property
    def session_id(self) -> str:
        return self.events.session_id

    @property
    def latest_report(self) -> SystemHealthReport | None:
        """Most recent report produced by run_full_health_check()."""
        return self._latest_report

    async def run_full_health_check(self, subject_id: str | None = None) -> SystemHealthReport:
        report = await self.aggregator.run_full_health_check(subject_id)
        self._latest_report = report
        return report

    async def check_subject_resources(self, subject_id: str, resource: str) -> ResourceCount:
        return await self.prober.check_subject_resources(subject_id, resource)

    def get_logs(
        self,
        category: LogCategory | str | None = None,
        subject_id: str | None = None,
        module_id: str | None = None,
    ) -> list[LogEvent]:
        return self.events.query(category=category, subject_id=subject_id, module_id=module_id)

    def get_metrics(self, name: str | None = None) -> list[PerformanceMetric]:
        return self.metrics.query(name)

    def get_performance_stats(self, name: str) -> MetricStats | None:
        return self.metrics.stats(name)

    async def measure(
        self, name: str, operation: Operation[T], metadata: dict[str, Any] | None = None
    ) -> T:
        return await self.metrics.measure(name, operation, metadata)

    def get_system_summary(self) -> SystemSummary:
        """
        Summarize the current event log.

        Health is ``critical`` once the error count reaches the configured
        threshold, ``warning`` with any error, otherwise ``healthy``.
        """
        logs = self.events.query()
        error_count = sum(1 for e in logs if e.category == LogCategory.ERROR)
        warning_count = sum(1 for e in logs if e.category == LogCategory.WARNING)
        module_event_count = sum(1 for e in logs if e.category == LogCategory.GAME)

        if error_count >= self.config.critical_error_threshold:
            health = SummaryHealth.CRITICAL
        elif error_count > 0:
            health = SummaryHealth.WARNING
        else:
            health = SummaryHealth.HEALTHY

        return SystemSummary(
            session_id=self.session_id,
            total_logs=len(logs),
            total_metrics=len(self.metrics),
            error_count=error_count,
            warning_count=warning_count,
            module_event_count=module_event_count,
            health=health,
        )

    def export_logs(self) -> str:
        """Serialize the session snapshot as indented JSON."""
        return json.dumps(self.events.export_snapshot(), indent=2, default=str)

    def clear_logs(self, max_age_ms: float | None = None) -> None:
        """
        Purge events and metrics older than max_age_ms.

        Args:
            max_age_ms: Age cutoff; 0 clears everything, None uses the configured retention
        """
        if max_age_ms is None:
            max_age_ms = self.config.default_log_retention_ms
        self.events.purge_older_than(max_age_ms)

    def start_module_session(self, module_id: str, subject_id: str | None = None) -> ModuleSession:
        return ModuleSession(self.events, module_id, subject_id)


async def periodic_health_checks(
    service: MonitoringService,
    interval_seconds: float = DEFAULT_HEALTH_CHECK_INTERVAL_SECONDS,
    subject_id: str | None = None,
    on_report: Callable[[SystemHealthReport], Any] | None = None,
    iterations: int | None = None,
) -> None:
    """
    Re-run the full health check on an interval until cancelled.

    The loop is owned by the caller, typically as a background task:

        task = asyncio.create_task(periodic_health_checks(service, 30))
        ...
        task.cancel()

    Args:
        service: Service to check
        interval_seconds: Pause between runs
        subject_id: Optional subject passed to every run
        on_report: Optional callback receiving each report
        iterations: Stop after this many runs (None runs forever)
    """
    runs = 0
    while True:
        report = await service.run_full_health_check(subject_id)
        runs += 1
        if on_report is not None:
            on_report(report)
        if iterations is not None and runs >= iterations:
            return
        await asyncio.sleep(interval_seconds)
