"""
Pytest configuration and shared fixtures for PARTY_OBSERVABILITY tests.

This module provides:
- Mock persistence collaborators
- Mock MongoDB client fixtures
- Module registry and service factories
"""

import asyncio
from typing import Any, List
from unittest.mock import AsyncMock, MagicMock

import pytest

from party_observability.config import ObservabilityConfig
from party_observability.health import ModuleRegistry
from party_observability.service import MonitoringService

# ============================================================================
# COLLABORATOR FIXTURES
# ============================================================================


class DelayedResources:
    """Scoped resource query that sleeps before answering."""

    def __init__(self, delay_seconds: float = 0.0, records: List[Any] | None = None):
        self.delay_seconds = delay_seconds
        self.records = records if records is not None else []
        self.calls: List[tuple] = []

    async def query_by_owner_and_module(self, owner_id: str, module_id: str) -> List[Any]:
        self.calls.append((owner_id, module_id))
        await asyncio.sleep(self.delay_seconds)
        return self.records


@pytest.fixture
def healthy_pinger() -> MagicMock:
    """Persistence collaborator whose ping succeeds."""
    pinger = MagicMock()
    pinger.ping = AsyncMock(return_value={"ok": 1.0})
    return pinger


@pytest.fixture
def failing_pinger() -> MagicMock:
    """Persistence collaborator whose ping raises a connection error."""
    pinger = MagicMock()
    pinger.ping = AsyncMock(side_effect=ConnectionError("connection refused"))
    return pinger


@pytest.fixture
def mock_resources() -> MagicMock:
    """Scoped resource collaborator returning two records."""
    resources = MagicMock()
    resources.query_by_owner_and_module = AsyncMock(return_value=[{"_id": "a"}, {"_id": "b"}])
    resources.query_by_owner = AsyncMock(return_value=[{"_id": "x"}])
    return resources


# ============================================================================
# MOCK MONGODB FIXTURES
# ============================================================================


@pytest.fixture
def mock_mongo_collection() -> MagicMock:
    """Create a mock MongoDB collection whose cursors return two documents."""
    collection = MagicMock()
    collection.name = "custom_cards"
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=[{"_id": "id1"}, {"_id": "id2"}])
    collection.find = MagicMock(return_value=cursor)
    return collection


@pytest.fixture
def mock_mongo_database(mock_mongo_collection: MagicMock) -> MagicMock:
    """Create a mock MongoDB database returning the same collection for any name."""
    db = MagicMock()
    db.name = "test_db"
    db.__getitem__.return_value = mock_mongo_collection
    return db


@pytest.fixture
def mock_mongo_client(mock_mongo_database: MagicMock) -> MagicMock:
    """Create a mock motor client."""
    client = MagicMock()
    client.admin = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1.0})
    client.__getitem__.return_value = mock_mongo_database
    return client


# ============================================================================
# REGISTRY AND SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def three_module_registry() -> ModuleRegistry:
    """Registry with three modules and default hooks."""
    registry = ModuleRegistry()
    registry.register("jogo-da-casa", "Jogo da Casa")
    registry.register("roleta-bebada", "Roleta Bebada")
    registry.register("eu-nunca", "Eu Nunca")
    return registry


@pytest.fixture
def test_config() -> ObservabilityConfig:
    """Configuration with small buffers and a short probe timeout."""
    return ObservabilityConfig(max_logs=50, max_metrics=50, probe_timeout_seconds=1.0)


@pytest.fixture
def service(
    healthy_pinger: MagicMock,
    three_module_registry: ModuleRegistry,
    test_config: ObservabilityConfig,
) -> MonitoringService:
    """Monitoring service over healthy collaborators."""
    return MonitoringService(
        pinger=healthy_pinger,
        registry=three_module_registry,
        config=test_config,
        session_id="session_test",
    )


@pytest.fixture
def delayed_resources():
    """Factory for scoped resource collaborators that answer after a delay."""
    return DelayedResources
