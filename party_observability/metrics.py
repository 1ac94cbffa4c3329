"""
Performance metric recording for PARTY_OBSERVABILITY.

This module keeps named duration measurements in a bounded buffer,
computes per-name statistics on demand, and provides helpers that time an
operation and record the outcome.
"""

import functools
import inspect
import logging
import threading
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, TypeVar, Union

from .constants import DEFAULT_MAX_METRICS

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Union[T, Awaitable[T]]]


@dataclass(frozen=True)
class PerformanceMetric:
    """A single duration measurement."""

    name: str
    duration_ms: float
    metadata: dict[str, Any] | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert metric to dictionary."""
        return {
            "name": self.name,
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class MetricStats:
    """Aggregate statistics for one metric name."""

    count: int
    avg: float
    min: float
    max: float
    sum: float

    def to_dict(self) -> dict[str, Any]:
        """Convert stats to dictionary."""
        return {
            "count": self.count,
            "avg": round(self.avg, 2),
            "min": round(self.min, 2),
            "max": round(self.max, 2),
            "sum": round(self.sum, 2),
        }


class MetricRecorder:
    """
    Capacity-bounded recorder of performance metrics.

    Statistics are recomputed from the buffer on every call, so they stay
    correct after evictions and purges.
    """

    def __init__(self, max_metrics: int = DEFAULT_MAX_METRICS):
        """
        Initialize the metric recorder.

        Args:
            max_metrics: Maximum number of metrics to store before evicting the oldest.
        """
        if max_metrics < 1:
            raise ValueError(f"max_metrics must be >= 1, got {max_metrics}")
        self._metrics: deque[PerformanceMetric] = deque(maxlen=max_metrics)
        self._lock = threading.Lock()
        self._max_metrics = max_metrics

    @property
    def capacity(self) -> int:
        """Maximum number of buffered metrics."""
        return self._max_metrics

    def __len__(self) -> int:
        return len(self._metrics)

    def record(
        self, name: str, duration_ms: float, metadata: dict[str, Any] | None = None
    ) -> None:
        """
        Record a metric. Never raises.

        Args:
            name: Name of the measured operation (e.g., "full_health_check")
            duration_ms: Duration in milliseconds; negative values are clamped to 0
            metadata: Optional opaque metadata
        """
        try:
            metric = PerformanceMetric(
                name=str(name),
                duration_ms=max(0.0, float(duration_ms)),
                metadata=metadata,
            )
            with self._lock:
                self._metrics.append(metric)
        except (TypeError, ValueError, OverflowError):
            logger.exception("Failed to record metric %r", name)
            return

        logger.debug(f"[PERFORMANCE] {metric.name}: {metric.duration_ms:.2f}ms")

    def query(self, name: str | None = None) -> list[PerformanceMetric]:
        """Return buffered metrics in insertion order, optionally filtered by name."""
        with self._lock:
            metrics = list(self._metrics)
        if name is not None:
            metrics = [m for m in metrics if m.name == name]
        return metrics

    def stats(self, name: str) -> MetricStats | None:
        """
        Compute statistics for a metric name.

        Returns:
            MetricStats, or None when no metric with that name is buffered
        """
        durations = [m.duration_ms for m in self.query(name)]
        if not durations:
            return None
        total = sum(durations)
        return MetricStats(
            count=len(durations),
            avg=total / len(durations),
            min=min(durations),
            max=max(durations),
            sum=total,
        )

    def names(self) -> list[str]:
        """Distinct metric names in first-seen order."""
        return list(dict.fromkeys(m.name for m in self.query()))

    def purge_older_than(self, max_age_ms: float) -> None:
        """
        Remove metrics older than max_age_ms; 0 clears everything.

        The buffer is replaced in a single assignment, so readers never see
        a partially purged state.
        """
        if max_age_ms <= 0:
            self.clear()
            return
        cutoff = datetime.now() - timedelta(milliseconds=max_age_ms)
        with self._lock:
            self._metrics = deque(
                (m for m in self._metrics if m.timestamp >= cutoff), maxlen=self._max_metrics
            )

    def clear(self) -> None:
        """Remove all metrics."""
        with self._lock:
            self._metrics = deque(maxlen=self._max_metrics)

    async def measure(
        self,
        name: str,
        operation: Operation[T],
        metadata: dict[str, Any] | None = None,
    ) -> T:
        """
        Time an operation and record exactly one metric for it.

        The operation is called with no arguments; an awaitable result is
        awaited, so the measurement covers any suspension. On failure the
        metric metadata carries ``error: True`` and the original exception
        is re-raised unchanged.

        Args:
            name: Metric name
            operation: Zero-argument callable, sync or async
            metadata: Optional metadata recorded with the metric

        Returns:
            The operation's result
        """
        start_time = time.perf_counter()
        success = False
        try:
            result = operation()
            if inspect.isawaitable(result):
                result = await result
            success = True
            return result
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.record(name, duration_ms, _outcome_metadata(metadata, success))

    def measure_sync(
        self,
        name: str,
        operation: Callable[[], T],
        metadata: dict[str, Any] | None = None,
    ) -> T:
        """Synchronous counterpart of measure() for plain callables."""
        start_time = time.perf_counter()
        success = False
        try:
            result = operation()
            success = True
            return result
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.record(name, duration_ms, _outcome_metadata(metadata, success))


def _outcome_metadata(metadata: dict[str, Any] | None, success: bool) -> dict[str, Any] | None:
    if success:
        return metadata
    return {**(metadata or {}), "error": True}


def timed_operation(recorder: MetricRecorder, name: str, **metadata: Any):
    """
    Decorator to automatically time and record an operation.

    Usage:
        @timed_operation(recorder, "cards.load", source="db")
        async def load_cards(user_id):
            ...
    """

    def decorator(func: Callable) -> Callable:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                return await recorder.measure(
                    name, lambda: func(*args, **kwargs), metadata or None
                )

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            return recorder.measure_sync(name, lambda: func(*args, **kwargs), metadata or None)

        return sync_wrapper

    return decorator
