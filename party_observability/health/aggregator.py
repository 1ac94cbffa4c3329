"""
Full system health aggregation.

Fans out the persistence probe and one probe per registered module
concurrently, waits for all of them, and merges the results into a single
SystemHealthReport.
"""

import asyncio
import logging
import time

from ..constants import FULL_HEALTH_CHECK_METRIC
from ..events import EventLog
from ..logging import correlation_scope, log_operation
from ..metrics import MetricRecorder
from .modules import ModuleHealthProber
from .persistence import PersistenceProbe
from .types import HealthStatus, ModuleHealthStatus, PersistenceHealth, SystemHealthReport

logger = logging.getLogger(__name__)


class HealthAggregator:
    """
    Scatter/gather health checker.

    Probes convert their own failures into results, so an exception
    escaping run_full_health_check() indicates a defect and is propagated.
    Cancelling the caller cancels every outstanding probe.
    """

    def __init__(
        self,
        prober: ModuleHealthProber,
        persistence_probe: PersistenceProbe,
        events: EventLog,
        metrics: MetricRecorder,
    ):
        self._prober = prober
        self._persistence_probe = persistence_probe
        self._events = events
        self._metrics = metrics

    @property
    def prober(self) -> ModuleHealthProber:
        return self._prober

    async def run_full_health_check(self, subject_id: str | None = None) -> SystemHealthReport:
        """
        Run every probe concurrently and build the report.

        The run's start and finish events, and every log record written while
        it is in flight, share one correlation id.

        Args:
            subject_id: Optional subject whose scoped resources are checked per module

        Returns:
            SystemHealthReport with modules in registration order
        """
        with correlation_scope() as correlation_id:
            return await self._run(subject_id, correlation_id)

    async def _run(self, subject_id: str | None, correlation_id: str) -> SystemHealthReport:
        modules = list(self._prober.registry)
        self._events.info(
            "Starting full system health check",
            {"subject_id": subject_id, "correlation_id": correlation_id},
            subject_id,
        )
        start_time = time.perf_counter()

        async def _gather() -> tuple[PersistenceHealth, list[ModuleHealthStatus]]:
            persistence, *module_results = await asyncio.gather(
                self._persistence_probe.check(),
                *(
                    self._prober.check_module(m.module_id, m.module_name, subject_id)
                    for m in modules
                ),
            )
            return persistence, module_results

        persistence, module_results = await self._metrics.measure(
            FULL_HEALTH_CHECK_METRIC, _gather, {"module_count": len(modules)}
        )
        duration_ms = (time.perf_counter() - start_time) * 1000

        report = SystemHealthReport(
            modules=tuple(module_results),
            persistence=persistence,
            duration_ms=duration_ms,
        )
        overall = report.overall

        self._events.info(
            "Full system health check finished",
            {
                "overall": overall.value,
                "duration_ms": round(duration_ms, 2),
                "modules_checked": len(module_results),
                "correlation_id": correlation_id,
            },
            subject_id,
        )
        log_operation(
            logger,
            FULL_HEALTH_CHECK_METRIC,
            level=logging.INFO if overall == HealthStatus.HEALTHY else logging.WARNING,
            duration_ms=duration_ms,
            overall=overall.value,
            modules_checked=len(module_results),
        )
        return report
