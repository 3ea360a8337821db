"""Tests for logging configuration and prometheus metrics."""

import pytest
import structlog
from prometheus_client import REGISTRY

from convoflow.infrastructure import (
    bind_context,
    clear_context,
    configure_structlog,
    get_logger,
    record_action_execution,
    record_fallback,
    record_transition,
    set_active_sessions,
    turn_context,
    unbind_context,
)
from convoflow.models import IntentDefinition, RecognizedEvent


def sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestLoggingContext:
    """Tests for contextvars helpers."""

    @pytest.fixture(autouse=True)
    def clean_context(self):
        clear_context()
        yield
        clear_context()

    def test_bind_and_unbind(self):
        bind_context(session_id="abc", intent="Greet")
        assert structlog.contextvars.get_contextvars() == {"session_id": "abc", "intent": "Greet"}

        unbind_context("intent")
        assert structlog.contextvars.get_contextvars() == {"session_id": "abc"}

    def test_turn_context_restores_previous_values(self):
        bind_context(session_id="outer")
        with turn_context(session_id="inner"):
            assert structlog.contextvars.get_contextvars()["session_id"] == "inner"
        assert structlog.contextvars.get_contextvars()["session_id"] == "outer"

    def test_get_logger(self):
        logger = get_logger("convoflow.test")
        logger.info("Logger works", answer=42)

    def test_reconfigure_for_production(self):
        try:
            configure_structlog(env="production", log_level="warning")
            get_logger("convoflow.test").warning("JSON line")
        finally:
            configure_structlog(env="development")


class TestMetrics:
    """Tests for metric helpers."""

    def test_record_transition(self):
        before = sample("convoflow_transitions_total", from_state="A", to_state="B")
        record_transition("A", "B")
        assert sample("convoflow_transitions_total", from_state="A", to_state="B") == before + 1

    def test_record_fallback(self):
        before = sample("convoflow_fallbacks_total", state="Menu")
        record_fallback("Menu")
        assert sample("convoflow_fallbacks_total", state="Menu") == before + 1

    def test_record_action_execution(self):
        before = sample("convoflow_action_executions_total", action="send", status="timeout")
        record_action_execution("send", "timeout", 0.2)
        after = sample("convoflow_action_executions_total", action="send", status="timeout")
        assert after == before + 1

    def test_active_sessions(self):
        set_active_sessions(7)
        assert sample("convoflow_active_sessions") == 7

    @pytest.mark.asyncio
    async def test_engine_records_transitions(self, engine, session, greet_intent):
        before = sample("convoflow_transitions_total", from_state="Init", to_state="Greeted")
        await engine.handle_event(RecognizedEvent(definition=greet_intent), session)
        after = sample("convoflow_transitions_total", from_state="Init", to_state="Greeted")
        assert after == before + 1

    @pytest.mark.asyncio
    async def test_engine_records_fallbacks(self, engine, session):
        before = sample("convoflow_fallbacks_total", state="Init")
        await engine.handle_event(RecognizedEvent(definition=IntentDefinition("Nope")), session)
        assert sample("convoflow_fallbacks_total", state="Init") == before + 1
