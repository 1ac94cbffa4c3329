"""
Unit tests for MonitoringService.

Tests the facade operations used by the presentation layer:
- System summary thresholds
- JSON export and purge
- Module session lifecycle logging
- Periodic health checks
"""

import asyncio
import json
import logging

import pytest

from party_observability.config import ObservabilityConfig
from party_observability.constants import FULL_HEALTH_CHECK_METRIC, PARTY_GAME_MODULES
from party_observability.events import LogCategory
from party_observability.health import HealthStatus
from party_observability.service import (MonitoringService, SummaryHealth,
                                         periodic_health_checks)


class TestSystemSummary:
    """Test the log-derived summary."""

    def test_no_errors_is_healthy(self, service):
        """Test that a clean log is healthy."""
        service.events.info("hello")
        service.events.warning("careful")

        summary = service.get_system_summary()

        assert summary.health == SummaryHealth.HEALTHY
        assert summary.total_logs == 2
        assert summary.warning_count == 1
        assert summary.session_id == "session_test"

    def test_one_error_is_warning(self, service):
        """Test that a single error degrades the summary."""
        service.events.error("oops")
        assert service.get_system_summary().health == SummaryHealth.WARNING

    def test_threshold_is_critical(self, service):
        """Test that reaching the error threshold is critical."""
        for i in range(service.config.critical_error_threshold):
            service.events.error(f"error {i}")

        summary = service.get_system_summary()

        assert summary.error_count == 10
        assert summary.health == SummaryHealth.CRITICAL

    def test_one_below_threshold_is_warning(self, service):
        """Test the boundary just under the threshold."""
        for i in range(service.config.critical_error_threshold - 1):
            service.events.error(f"error {i}")
        assert service.get_system_summary().health == SummaryHealth.WARNING

    def test_counts_module_events_and_metrics(self, service):
        """Test that game events and metrics are counted."""
        service.events.game_event("eu-nunca", "Round started")
        service.metrics.record("cards.load", 3.0)

        data = service.get_system_summary().to_dict()

        assert data["module_event_count"] == 1
        assert data["total_metrics"] == 1
        assert data["health"] == "healthy"


class TestExportAndPurge:
    """Test JSON export and clearing."""

    def test_export_logs_is_json(self, service):
        """Test that the export is parseable and complete."""
        service.events.error("bad", {"code": 1})
        service.metrics.record("op", 5.0)

        data = json.loads(service.export_logs())

        assert data["session_id"] == "session_test"
        assert data["logs"][0]["details"] == {"code": 1}
        assert data["metrics"][0]["duration_ms"] == 5.0
        assert "exported_at" in data

    def test_clear_logs_zero(self, service):
        """Test that clearing with 0 empties logs and metrics."""
        service.events.info("a")
        service.metrics.record("op", 1.0)

        service.clear_logs(0)

        assert service.get_logs() == []
        assert service.get_metrics() == []

    def test_clear_logs_default_keeps_recent(self, service):
        """Test that the default retention keeps fresh entries."""
        service.events.info("fresh")
        service.clear_logs()
        assert [e.message for e in service.get_logs()] == ["fresh"]

    def test_get_logs_filters(self, service):
        """Test that log filters are forwarded."""
        service.events.game_event("eu-nunca", "a", subject_id="u1")
        service.events.game_event("roleta-bebada", "b", subject_id="u1")

        logs = service.get_logs(category="game", module_id="roleta-bebada")

        assert [e.message for e in logs] == ["b"]


class TestModuleSession:
    """Test the game session lifecycle handle."""

    def test_lifecycle(self, service):
        """Test start, events, errors and stop."""
        session = service.start_module_session("roleta-bebada", subject_id="u1")
        session.log_event("Spin", {"result": 3})
        session.log_error("Wheel stuck")
        session.stop()
        session.stop()

        logs = service.get_logs(module_id="roleta-bebada")
        assert [e.message for e in logs] == [
            "Game started",
            "Spin",
            "[roleta-bebada] Wheel stuck",
            "Game finished",
        ]
        assert logs[2].category == LogCategory.ERROR
        assert all(e.subject_id == "u1" for e in logs)

    def test_records_carry_module_context(self, service, caplog):
        """Test that session events are mirrored with module and subject."""
        with caplog.at_level(logging.INFO, logger="party_observability.events"):
            session = service.start_module_session("eu-nunca", subject_id="u7")
            session.log_event("Card drawn")

        records = [r for r in caplog.records if "Card drawn" in r.getMessage()]
        assert records[0].module_id == "eu-nunca"
        assert records[0].subject_id == "u7"


class TestHealthChecks:
    """Test health checks through the service."""

    @pytest.mark.asyncio
    async def test_latest_report(self, service):
        """Test that the latest report is retained."""
        assert service.latest_report is None

        report = await service.run_full_health_check()

        assert service.latest_report is report
        assert report.overall == HealthStatus.HEALTHY
        assert service.get_performance_stats(FULL_HEALTH_CHECK_METRIC).count == 1

    @pytest.mark.asyncio
    async def test_measure(self, service):
        """Test that measure records into the service's recorder."""

        async def operation():
            return "ok"

        assert await service.measure("load", operation) == "ok"
        assert len(service.get_metrics("load")) == 1

    @pytest.mark.asyncio
    async def test_periodic_health_checks(self, service):
        """Test a bounded number of periodic runs."""
        reports = []

        await asyncio.wait_for(
            periodic_health_checks(
                service, interval_seconds=0.01, on_report=reports.append, iterations=2
            ),
            timeout=2,
        )

        assert len(reports) == 2
        assert service.latest_report is reports[-1]

    @pytest.mark.asyncio
    async def test_periodic_health_checks_cancel(self, service):
        """Test that an unbounded loop stops on cancellation."""
        task = asyncio.ensure_future(periodic_health_checks(service, interval_seconds=10))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert service.latest_report is not None


class TestFromMongo:
    """Test the MongoDB-backed factory."""

    def test_default_registry(self, mock_mongo_client):
        """Test that the built-in party games are registered by default."""
        service = MonitoringService.from_mongo(mock_mongo_client, "party_app")
        assert len(service.registry) == len(PARTY_GAME_MODULES)

    @pytest.mark.asyncio
    async def test_health_check_with_subject(self, mock_mongo_client, three_module_registry):
        """Test a full check against mocked MongoDB collaborators."""
        service = MonitoringService.from_mongo(
            mock_mongo_client,
            "party_app",
            registry=three_module_registry,
            config=ObservabilityConfig(probe_timeout_seconds=1.0),
        )

        report = await service.run_full_health_check(subject_id="user-1")

        assert report.overall == HealthStatus.HEALTHY
        assert report.persistence.connected
        assert report.modules[0].get_check("scoped_resources").message == (
            "2 custom resources found"
        )

    @pytest.mark.asyncio
    async def test_subject_resources(self, mock_mongo_client):
        """Test owner-scoped counts through the service."""
        service = MonitoringService.from_mongo(mock_mongo_client, "party_app")

        result = await service.check_subject_resources("user-1", "friend_lists")

        assert result.success
        assert result.count == 2
