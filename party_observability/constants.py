"""
Constants for PARTY_OBSERVABILITY.

This module contains all shared constants used across the package to avoid
magic numbers and improve maintainability.
"""

from typing import Final

# ============================================================================
# BUFFER CONSTANTS
# ============================================================================

DEFAULT_MAX_LOGS: Final[int] = 1000
"""Maximum number of log events kept in memory before evicting the oldest."""

DEFAULT_MAX_METRICS: Final[int] = 500
"""Maximum number of performance metrics kept in memory before evicting the oldest."""

DEFAULT_LOG_RETENTION_MS: Final[int] = 24 * 60 * 60 * 1000  # 24 hours
"""Default age cutoff used by clear_logs() (milliseconds)."""

# ============================================================================
# HEALTH CHECK CONSTANTS
# ============================================================================

DEFAULT_PROBE_TIMEOUT_SECONDS: Final[float] = 10.0
"""Deadline for a single probe before it is converted into a failed check."""

DEFAULT_SLOW_QUERY_THRESHOLD_MS: Final[float] = 2000.0
"""Scoped resource queries slower than this pass but are reported as degraded."""

DEFAULT_RESOURCE_QUERY_LIMIT: Final[int] = 1000
"""Maximum number of documents fetched by a scoped resource query."""

DEFAULT_HEALTH_CHECK_INTERVAL_SECONDS: Final[float] = 30.0
"""Default interval for periodic_health_checks()."""

FULL_HEALTH_CHECK_METRIC: Final[str] = "full_health_check"
"""Metric name recorded for every aggregation run."""

# Check names, in execution order
CHECK_REACHABILITY: Final[str] = "reachability"
CHECK_SCOPED_RESOURCES: Final[str] = "scoped_resources"
CHECK_CONFIGURATION: Final[str] = "configuration"

# ============================================================================
# SUMMARY CONSTANTS
# ============================================================================

DEFAULT_CRITICAL_ERROR_THRESHOLD: Final[int] = 10
"""Error count at which the system summary turns critical."""

# ============================================================================
# PERSISTENCE CONSTANTS
# ============================================================================

SCOPED_RESOURCE_COLLECTION: Final[str] = "custom_cards"
"""Collection holding subject-owned, module-tagged resources."""

OWNER_FIELD: Final[str] = "user_id"
"""Document field holding the owning subject id."""

MODULE_FIELD: Final[str] = "game_type"
"""Document field holding the module tag."""

# Owner-scoped collections that check_subject_resources() may inspect
OWNER_SCOPED_COLLECTIONS: Final[tuple[str, ...]] = (
    "custom_cards",
    "drink_inventory",
    "friend_lists",
)

# ============================================================================
# MODULE REGISTRY DEFAULTS
# ============================================================================

PARTY_GAME_MODULES: Final[tuple[tuple[str, str], ...]] = (
    ("jogo-da-casa", "Jogo da Casa"),
    ("roleta-bebada", "Roleta Bebada"),
    ("batata-bebada", "Batata Bebada"),
    ("cumpra-ou-beba", "Cumpra ou Beba"),
    ("eu-nunca", "Eu Nunca"),
    ("verdade-ou-shot", "Verdade ou Shot"),
    ("dedo-magico", "Dedo Mágico"),
    ("jogo-da-velha", "Jogo da Velha Bebado"),
    ("curiosidade-shot", "Curiosidade = Shot"),
    ("rei-da-rima", "Rei da Rima"),
)
"""(module_id, module_name) pairs for the built-in party games."""
