"""
Unit tests for structured logging helpers.
"""

import asyncio
import logging

import pytest

from party_observability.logging import (correlation_scope,
                                         get_correlation_id, get_logger,
                                         get_logging_context, log_operation,
                                         module_context)


class TestCorrelationScope:
    """Test correlation id scoping."""

    def test_generates_and_restores(self):
        """Test that a scope generates an id and restores the previous one."""
        assert get_correlation_id() is None

        with correlation_scope() as correlation_id:
            assert correlation_id
            assert get_correlation_id() == correlation_id
            assert get_logging_context()["correlation_id"] == correlation_id

        assert get_correlation_id() is None

    def test_nested_scope_reuses_outer_id(self):
        """Test that an inner scope inherits the enclosing id."""
        with correlation_scope("request-1"):
            with correlation_scope() as inner:
                assert inner == "request-1"

    def test_explicit_id_overrides_outer(self):
        """Test that an explicit id wins inside the block only."""
        with correlation_scope("outer"):
            with correlation_scope("inner"):
                assert get_correlation_id() == "inner"
            assert get_correlation_id() == "outer"


class TestModuleContext:
    """Test module/subject context scoping."""

    def test_drops_none_and_restores(self):
        """Test that unset values are omitted and the context is restored."""
        with module_context("eu-nunca", subject_id=None, round=2):
            context = get_logging_context()
            assert context["module_id"] == "eu-nunca"
            assert context["round"] == 2
            assert "subject_id" not in context

        assert "module_id" not in get_logging_context()

    @pytest.mark.asyncio
    async def test_isolated_between_tasks(self):
        """Test that concurrent tasks each see their own module."""
        seen = {}

        async def work(module_id):
            with module_context(module_id):
                await asyncio.sleep(0.01)
                seen[module_id] = get_logging_context()["module_id"]

        await asyncio.gather(work("eu-nunca"), work("roleta-bebada"))

        assert seen == {"eu-nunca": "eu-nunca", "roleta-bebada": "roleta-bebada"}


class TestContextualLogger:
    """Test the contextual adapter and operation logging."""

    def test_static_and_call_context(self, caplog):
        """Test that static, scoped and per-call fields reach the record."""
        logger = get_logger("party_observability.test", session_id="session_1")
        with caplog.at_level(logging.INFO, logger="party_observability.test"):
            with correlation_scope("corr-1"), module_context("jogo-da-velha", "u1"):
                logger.info("hello", extra={"detail": 5})

        record = caplog.records[-1]
        assert record.session_id == "session_1"
        assert record.correlation_id == "corr-1"
        assert record.module_id == "jogo-da-velha"
        assert record.subject_id == "u1"
        assert record.detail == 5

    def test_log_operation_failure(self, caplog):
        """Test the failure message and structured fields."""
        logger = logging.getLogger("party_observability.test.ops")
        with caplog.at_level(logging.INFO, logger="party_observability.test.ops"):
            log_operation(
                logger, "full_health_check", logging.WARNING, False, 12.345, overall="error"
            )

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.getMessage() == "Operation failed: full_health_check (duration: 12.35ms)"
        assert record.duration_ms == 12.35
        assert record.overall == "error"
