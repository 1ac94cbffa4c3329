"""
Health check result types.

All results are plain dataclasses with a ``to_dict()`` for JSON responses.
Statuses are always derived from check outcomes, never set by hand.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class HealthStatus(str, Enum):
    """Health status enumeration."""

    HEALTHY = "healthy"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class ModuleCheckResult:
    """Outcome of one check run against a module."""

    check_name: str
    passed: bool
    message: str | None = None
    degraded: bool = False

    def __post_init__(self) -> None:
        if not self.passed and not self.message:
            object.__setattr__(self, "message", f"Check '{self.check_name}' failed")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "check_name": self.check_name,
            "passed": self.passed,
            "message": self.message,
            "degraded": self.degraded,
        }


def derive_module_status(checks: Iterable[ModuleCheckResult]) -> HealthStatus:
    """
    Derive a module status from its checks.

    ``error`` if any check failed, ``warning`` if any passed check is
    degraded, otherwise ``healthy``.
    """
    checks = list(checks)
    if any(not c.passed for c in checks):
        return HealthStatus.ERROR
    if any(c.degraded for c in checks):
        return HealthStatus.WARNING
    return HealthStatus.HEALTHY


@dataclass(frozen=True)
class ModuleHealthStatus:
    """Health of one module."""

    module_id: str
    module_name: str
    checks: tuple[ModuleCheckResult, ...]
    last_checked: datetime = field(default_factory=datetime.now)

    @property
    def status(self) -> HealthStatus:
        return derive_module_status(self.checks)

    def get_check(self, check_name: str) -> ModuleCheckResult | None:
        """Return the check with the given name, if it ran."""
        for check in self.checks:
            if check.check_name == check_name:
                return check
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "module_id": self.module_id,
            "module_name": self.module_name,
            "status": self.status.value,
            "checks": [c.to_dict() for c in self.checks],
            "last_checked": self.last_checked.isoformat(),
        }


@dataclass(frozen=True)
class PersistenceHealth:
    """Result of the persistence round-trip probe."""

    connected: bool
    response_time_ms: float
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "connected": self.connected,
            "response_time_ms": round(self.response_time_ms, 2),
            "error": self.error,
        }


def derive_overall_status(
    modules: Iterable[ModuleHealthStatus], persistence: PersistenceHealth
) -> HealthStatus:
    """
    Derive the system verdict.

    ``error`` if persistence is disconnected or any module is in error,
    ``warning`` if any module is in warning, otherwise ``healthy``.
    """
    statuses = [m.status for m in modules]
    if not persistence.connected or HealthStatus.ERROR in statuses:
        return HealthStatus.ERROR
    if HealthStatus.WARNING in statuses:
        return HealthStatus.WARNING
    return HealthStatus.HEALTHY


@dataclass(frozen=True)
class SystemHealthReport:
    """Consolidated result of one aggregation run."""

    modules: tuple[ModuleHealthStatus, ...]
    persistence: PersistenceHealth
    duration_ms: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def overall(self) -> HealthStatus:
        return derive_overall_status(self.modules, self.persistence)

    def get_module(self, module_id: str) -> ModuleHealthStatus | None:
        """Return the status of one module, if it was checked."""
        for module in self.modules:
            if module.module_id == module_id:
                return module
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "overall": self.overall.value,
            "modules": [m.to_dict() for m in self.modules],
            "persistence": self.persistence.to_dict(),
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class ResourceCount:
    """Count of a subject's records in an owner-scoped collection."""

    success: bool
    count: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"success": self.success, "count": self.count, "message": self.message}
