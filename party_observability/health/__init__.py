"""
Health checking.

Module probes, the persistence probe, and the aggregator that merges them
into one system verdict.
"""

from .aggregator import HealthAggregator
from .modules import ModuleDefinition, ModuleHealthProber, ModuleRegistry
from .persistence import (
    MongoPersistenceStore,
    OwnerResourceQuery,
    PersistencePinger,
    PersistenceProbe,
    ScopedResourceQuery,
)
from .types import (
    HealthStatus,
    ModuleCheckResult,
    ModuleHealthStatus,
    PersistenceHealth,
    ResourceCount,
    SystemHealthReport,
    derive_module_status,
    derive_overall_status,
)

__all__ = [
    # Types
    "HealthStatus",
    "ModuleCheckResult",
    "ModuleHealthStatus",
    "PersistenceHealth",
    "SystemHealthReport",
    "ResourceCount",
    "derive_module_status",
    "derive_overall_status",
    # Modules
    "ModuleDefinition",
    "ModuleRegistry",
    "ModuleHealthProber",
    # Persistence
    "PersistencePinger",
    "ScopedResourceQuery",
    "OwnerResourceQuery",
    "MongoPersistenceStore",
    "PersistenceProbe",
    # Aggregation
    "HealthAggregator",
]
