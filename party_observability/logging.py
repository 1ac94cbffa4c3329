"""
Structured logging utilities for PARTY_OBSERVABILITY.

The event log mirrors every event to stdlib logging. Records written from
inside a health-check run or a game session carry that run's correlation
id and the module/subject being worked on, taken from context variables.
Each asyncio task gets its own copy of the context, so concurrent probes
never see each other's module.

Usage:
    with correlation_scope() as correlation_id:
        with module_context("roleta-bebada", subject_id=user_id):
            logger.info("Spinning")
"""

import contextvars
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)

_module_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "module_context", default=None
)


def get_correlation_id() -> str | None:
    """Correlation id of the current health-check run or request, if any."""
    return _correlation_id.get()


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """
    Run a block under a correlation id.

    An id already set by an enclosing scope is reused unless one is passed
    explicitly, so a request handler's id flows into the health-check run it
    triggers.

    Yields:
        The correlation id in effect inside the block
    """
    if correlation_id is None:
        correlation_id = _correlation_id.get() or uuid.uuid4().hex
    token = _correlation_id.set(correlation_id)
    try:
        yield correlation_id
    finally:
        _correlation_id.reset(token)


@contextmanager
def module_context(
    module_id: str | None, subject_id: str | None = None, **fields: Any
) -> Iterator[None]:
    """
    Tag records written inside the block with a module and subject.

    Values that are None are left out.
    """
    context = dict(_module_context.get() or {})
    context.update(
        {k: v for k, v in {"module_id": module_id, "subject_id": subject_id, **fields}.items()
         if v is not None}
    )
    token = _module_context.set(context)
    try:
        yield
    finally:
        _module_context.reset(token)


def get_logging_context() -> dict[str, Any]:
    """
    Get current logging context (correlation ID and module context).

    Returns:
        Dictionary with context information
    """
    context: dict[str, Any] = {"timestamp": datetime.now().isoformat()}

    correlation_id = _correlation_id.get()
    if correlation_id:
        context["correlation_id"] = correlation_id

    current_module = _module_context.get()
    if current_module:
        context.update(current_module)

    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter stamping static fields (e.g. the session id), then the
    current correlation/module context, then the per-call ``extra``.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = dict(self.extra or {})
        context.update(get_logging_context())
        context.update(kwargs.get("extra") or {})
        kwargs["extra"] = context
        return msg, kwargs


def get_logger(name: str, **static_context: Any) -> ContextualLoggerAdapter:
    """
    Get a contextual logger.

    Args:
        name: Logger name (typically __name__)
        **static_context: Fields stamped on every record (e.g. session_id)
    """
    return ContextualLoggerAdapter(logging.getLogger(name), static_context)


def log_operation(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    level: int = logging.INFO,
    success: bool = True,
    duration_ms: float | None = None,
    **context: Any,
) -> None:
    """
    Log a timed operation with structured context.

    Args:
        logger: Logger instance
        operation: Operation name (e.g. "full_health_check")
        level: Log level
        success: Whether the operation succeeded
        duration_ms: Operation duration in milliseconds
        **context: Additional fields
    """
    log_context = get_logging_context()
    log_context.update({"operation": operation, "success": success})
    if duration_ms is not None:
        log_context["duration_ms"] = round(duration_ms, 2)
    log_context.update(context)

    message = f"Operation: {operation}" if success else f"Operation failed: {operation}"
    if duration_ms is not None:
        message += f" (duration: {duration_ms:.2f}ms)"

    logger.log(level, message, extra=log_context)
