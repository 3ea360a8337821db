"""Logging and metrics for the engine."""

from .logging_config import (
    bind_context,
    clear_context,
    configure_structlog,
    get_logger,
    turn_context,
    unbind_context,
)
from .metrics import (
    action_duration_seconds,
    action_executions_total,
    active_sessions,
    fallbacks_total,
    intent_matches_total,
    recognition_latency_seconds,
    recognition_requests_total,
    record_action_execution,
    record_fallback,
    record_intent_match,
    record_recognition,
    record_transition,
    set_active_sessions,
    transitions_total,
)

__all__ = [
    # Logging
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "turn_context",
    "configure_structlog",
    # Metrics
    "recognition_requests_total",
    "recognition_latency_seconds",
    "intent_matches_total",
    "transitions_total",
    "fallbacks_total",
    "action_executions_total",
    "action_duration_seconds",
    "active_sessions",
    "record_recognition",
    "record_intent_match",
    "record_transition",
    "record_fallback",
    "record_action_execution",
    "set_active_sessions",
]
