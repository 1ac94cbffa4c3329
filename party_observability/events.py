"""
In-memory event log for PARTY_OBSERVABILITY.

Stores typed log events in a bounded buffer that evicts the oldest entry
once full. Every event is stamped with the process session id and mirrored
to the stdlib logging side channel. Error events are additionally handed to
an optional external sink, which never holds up the recording caller.
"""

import asyncio
import concurrent.futures
import inspect
import logging
import threading
import time
import uuid
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

from .constants import DEFAULT_MAX_LOGS
from .logging import get_logger

if TYPE_CHECKING:
    from .metrics import MetricRecorder

logger = logging.getLogger(__name__)


class LogCategory(str, Enum):
    """Event category enumeration."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"
    GAME = "game"
    AUTH = "auth"
    PAYMENT = "payment"


# Side-channel log level for each category
_CATEGORY_LEVELS: dict[str, int] = {
    LogCategory.ERROR.value: logging.ERROR,
    LogCategory.WARNING.value: logging.WARNING,
    LogCategory.INFO.value: logging.INFO,
    LogCategory.SUCCESS.value: logging.INFO,
}

ExternalSink = Callable[["LogEvent"], Any]

# Plain-callable sinks run here, off the thread that recorded the event
_SINK_EXECUTOR = concurrent.futures.ThreadPoolExecutor(
    max_workers=4, thread_name_prefix="event-export"
)


def generate_session_id() -> str:
    """Generate a session id of the form ``session_<epoch ms>_<random>``."""
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def coerce_category(category: "LogCategory | str") -> "LogCategory | str":
    """
    Normalize a category to a LogCategory member when it names one.

    Unknown categories are kept as lower-cased strings so that callers can
    tag events with their own domain categories.
    """
    if isinstance(category, LogCategory):
        return category
    value = str(category).strip().lower()
    try:
        return LogCategory(value)
    except ValueError:
        return value


def category_value(category: "LogCategory | str") -> str:
    """Return the plain string value of a category."""
    return category.value if isinstance(category, LogCategory) else category


@dataclass(frozen=True)
class LogEvent:
    """A single immutable log event."""

    category: LogCategory | str
    message: str
    session_id: str
    details: dict[str, Any] | None = None
    subject_id: str | None = None
    module_id: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "category": category_value(self.category),
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "session_id": self.session_id,
            "subject_id": self.subject_id,
            "module_id": self.module_id,
        }


class EventLog:
    """
    Capacity-bounded, append-only event log.

    Mutations are serialized by a lock that is held only for the buffer
    operation itself. Mirroring to the logging side channel happens after
    the lock is released, and the external sink is never waited on.
    """

    def __init__(
        self,
        max_events: int = DEFAULT_MAX_LOGS,
        session_id: str | None = None,
        metrics: "MetricRecorder | None" = None,
        external_sink: ExternalSink | None = None,
    ):
        """
        Initialize the event log.

        Args:
            max_events: Maximum number of events kept before evicting the oldest
            session_id: Session id to stamp on events (generated if None)
            metrics: Metric recorder included in snapshots and age purges
            external_sink: Best-effort hook invoked for every error event.
                           May be a plain callable or a coroutine function.
        """
        if max_events < 1:
            raise ValueError(f"max_events must be >= 1, got {max_events}")
        self._events: deque[LogEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()
        self._max_events = max_events
        self._session_id = session_id or generate_session_id()
        self._metrics = metrics
        self._external_sink = external_sink
        self._pending_exports: set[asyncio.Future | concurrent.futures.Future] = set()
        self._exports_lock = threading.Lock()
        self._side_channel = get_logger(__name__, session_id=self._session_id)

    @property
    def session_id(self) -> str:
        """Session id stamped on every event."""
        return self._session_id

    @property
    def capacity(self) -> int:
        """Maximum number of buffered events."""
        return self._max_events

    @property
    def metrics(self) -> "MetricRecorder | None":
        """Linked metric recorder, if any."""
        return self._metrics

    def set_external_sink(self, sink: ExternalSink | None) -> None:
        """Replace the external sink used for error events."""
        self._external_sink = sink

    def __len__(self) -> int:
        return len(self._events)

    def record(
        self,
        category: LogCategory | str,
        message: str,
        details: dict[str, Any] | None = None,
        subject_id: str | None = None,
        module_id: str | None = None,
    ) -> None:
        """
        Record an event.

        Never raises: any internal failure is reported on the logging
        side channel instead.

        Args:
            category: Event category (LogCategory or a custom string tag)
            message: Human-readable message
            details: Optional opaque payload, stored as given
            subject_id: Optional acting subject (user) id
            module_id: Optional originating module (game) id
        """
        try:
            event = LogEvent(
                category=coerce_category(category),
                message=str(message),
                session_id=self._session_id,
                details=details,
                subject_id=subject_id,
                module_id=module_id,
            )
            with self._lock:
                self._events.append(event)
        except Exception:  # noqa: BLE001 - record() must never raise
            logger.exception("Failed to record event %r", message)
            return

        self._mirror(event)
        if event.category == LogCategory.ERROR:
            self._export(event)

    def error(self, message: str, details: dict[str, Any] | None = None,
              subject_id: str | None = None) -> None:
        """Record an error event."""
        self.record(LogCategory.ERROR, message, details, subject_id)

    def warning(self, message: str, details: dict[str, Any] | None = None,
                subject_id: str | None = None) -> None:
        """Record a warning event."""
        self.record(LogCategory.WARNING, message, details, subject_id)

    def info(self, message: str, details: dict[str, Any] | None = None,
             subject_id: str | None = None) -> None:
        """Record an informational event."""
        self.record(LogCategory.INFO, message, details, subject_id)

    def success(self, message: str, details: dict[str, Any] | None = None,
                subject_id: str | None = None) -> None:
        """Record a success event."""
        self.record(LogCategory.SUCCESS, message, details, subject_id)

    def game_event(self, module_id: str, message: str,
                   details: dict[str, Any] | None = None,
                   subject_id: str | None = None) -> None:
        """Record a game event for a module."""
        self.record(LogCategory.GAME, message, details, subject_id, module_id)

    def auth_event(self, message: str, details: dict[str, Any] | None = None,
                   subject_id: str | None = None) -> None:
        """Record an authentication event."""
        self.record(LogCategory.AUTH, message, details, subject_id)

    def payment_event(self, message: str, details: dict[str, Any] | None = None,
                      subject_id: str | None = None) -> None:
        """Record a payment event."""
        self.record(LogCategory.PAYMENT, message, details, subject_id)

    def query(
        self,
        category: LogCategory | str | None = None,
        subject_id: str | None = None,
        module_id: str | None = None,
    ) -> list[LogEvent]:
        """
        Return buffered events in insertion order.

        All provided filters must match.
        """
        with self._lock:
            events = list(self._events)
        if category is not None:
            wanted = category_value(coerce_category(category))
            events = [e for e in events if category_value(e.category) == wanted]
        if subject_id is not None:
            events = [e for e in events if e.subject_id == subject_id]
        if module_id is not None:
            events = [e for e in events if e.module_id == module_id]
        return events

    def count(self, category: LogCategory | str) -> int:
        """Count buffered events of a category."""
        return len(self.query(category=category))

    def purge_older_than(self, max_age_ms: float) -> None:
        """
        Remove every event (and linked metric) older than max_age_ms.

        A max_age_ms of 0 clears everything. The surviving events replace the
        buffer in a single assignment, so readers see either the old or the
        new contents.
        """
        if max_age_ms <= 0:
            with self._lock:
                self._events = deque(maxlen=self._max_events)
        else:
            cutoff = datetime.now() - timedelta(milliseconds=max_age_ms)
            with self._lock:
                self._events = deque(
                    (e for e in self._events if e.timestamp >= cutoff), maxlen=self._max_events
                )

        if self._metrics is not None:
            self._metrics.purge_older_than(max_age_ms)

    def export_snapshot(self) -> dict[str, Any]:
        """
        Build a serializable snapshot of the session.

        Returns:
            Dictionary with session id, all events, all metrics and export time
        """
        metrics = self._metrics.query() if self._metrics is not None else []
        return {
            "session_id": self._session_id,
            "logs": [e.to_dict() for e in self.query()],
            "metrics": [m.to_dict() for m in metrics],
            "exported_at": datetime.now().isoformat(),
        }

    def _mirror(self, event: LogEvent) -> None:
        """Forward an event to the stdlib logging side channel."""
        value = category_value(event.category)
        level = _CATEGORY_LEVELS.get(value, logging.INFO)
        try:
            self._side_channel.log(
                level,
                f"[{value.upper()}] {event.message}",
                extra={
                    "category": value,
                    "details": event.details,
                    "event_subject_id": event.subject_id,
                    "event_module_id": event.module_id,
                },
            )
        except Exception:  # noqa: BLE001 - side channel must not break record()
            logger.debug("Failed to mirror event to logging", exc_info=True)

    def _export(self, event: LogEvent) -> None:
        """
        Hand an error event to the external sink without waiting for it.

        Coroutine sinks become tasks on the running loop and are dropped when
        no loop is running. Plain callables run on the export thread pool.
        """
        sink = self._external_sink
        if sink is None:
            return

        if not _is_coroutine_sink(sink):
            try:
                future = _SINK_EXECUTOR.submit(_call_sink, sink, event)
            except RuntimeError as e:
                logger.warning(f"External sink unavailable for event {event.message!r}: {e}")
                return
            self._track_export(future)
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                f"Coroutine sink used outside an event loop; export of {event.message!r} dropped"
            )
            return
        try:
            task = loop.create_task(sink(event))
        except Exception as e:  # noqa: BLE001 - sink failures are contained
            logger.warning(f"External sink failed for event {event.message!r}: {e}", exc_info=True)
            return
        self._track_export(task)

    def _track_export(self, future: "asyncio.Future | concurrent.futures.Future") -> None:
        with self._exports_lock:
            self._pending_exports.add(future)
        future.add_done_callback(self._on_export_done)

    def _on_export_done(self, future: "asyncio.Future | concurrent.futures.Future") -> None:
        with self._exports_lock:
            self._pending_exports.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning(f"External sink failed: {exc}", exc_info=exc)

    async def drain_exports(self) -> None:
        """Wait for every pending sink export, threaded or asynchronous."""
        with self._exports_lock:
            pending = list(self._pending_exports)
        if pending:
            await asyncio.gather(
                *(asyncio.wrap_future(f) for f in pending), return_exceptions=True
            )

    def flush_exports(self, timeout: float | None = None) -> None:
        """Block until threaded sink exports finish (for callers without a loop)."""
        with self._exports_lock:
            pending = [
                f for f in self._pending_exports if isinstance(f, concurrent.futures.Future)
            ]
        concurrent.futures.wait(pending, timeout=timeout)


def _is_coroutine_sink(sink: ExternalSink) -> bool:
    return inspect.iscoroutinefunction(sink) or inspect.iscoroutinefunction(
        getattr(sink, "__call__", None)
    )


def _call_sink(sink: ExternalSink, event: LogEvent) -> None:
    """Run a plain-callable sink on an export thread."""
    result = sink(event)
    if inspect.isawaitable(result):
        asyncio.run(_await(result))


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable
