"""Prometheus metrics for the dialogue engine.

Provides metrics collection for:
- Recognition backend calls and latencies
- Intent matches
- State transitions and fallbacks
- Action execution
- Session tracking
"""

from prometheus_client import Counter, Gauge, Histogram

# =============================================================================
# Recognition Metrics
# =============================================================================

recognition_requests_total = Counter(
    "convoflow_recognition_requests_total",
    "Total recognition calls by backend",
    ["backend", "status"],
)

recognition_latency_seconds = Histogram(
    "convoflow_recognition_latency_seconds",
    "Recognition call latency in seconds",
    ["backend"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

intent_matches_total = Counter(
    "convoflow_intent_matches_total",
    "Total recognized inputs by intent",
    ["intent", "matched"],  # matched: true/false (fallback intent)
)

# =============================================================================
# Dispatch Metrics
# =============================================================================

transitions_total = Counter(
    "convoflow_transitions_total",
    "Total transitions taken",
    ["from_state", "to_state"],
)

fallbacks_total = Counter(
    "convoflow_fallbacks_total",
    "Total turns that took the fallback path",
    ["state"],
)

action_executions_total = Counter(
    "convoflow_action_executions_total",
    "Total action executions",
    ["action", "status"],  # status: success/failure/timeout
)

action_duration_seconds = Histogram(
    "convoflow_action_duration_seconds",
    "Action execution time in seconds",
    ["action"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0],
)

# =============================================================================
# Session Metrics
# =============================================================================

active_sessions = Gauge(
    "convoflow_active_sessions",
    "Number of sessions held by the session store",
)


# =============================================================================
# Helper Functions
# =============================================================================


def record_recognition(backend: str, status: str, duration: float) -> None:
    """Record a recognition call.

    Args:
        backend: Recognition backend name
        status: Call status (success/error)
        duration: Call duration in seconds
    """
    recognition_requests_total.labels(backend=backend, status=status).inc()
    recognition_latency_seconds.labels(backend=backend).observe(duration)


def record_intent_match(intent: str, matched: bool) -> None:
    """Record the intent an input was recognized as."""
    intent_matches_total.labels(intent=intent, matched=str(matched).lower()).inc()


def record_transition(from_state: str, to_state: str) -> None:
    """Record a transition between two states."""
    transitions_total.labels(from_state=from_state, to_state=to_state).inc()


def record_fallback(state: str) -> None:
    """Record a turn that fell back in the given state."""
    fallbacks_total.labels(state=state).inc()


def record_action_execution(action: str, status: str, duration: float) -> None:
    """Record an action execution.

    Args:
        action: Action name
        status: Execution status (success/failure/timeout)
        duration: Execution duration in seconds
    """
    action_executions_total.labels(action=action, status=status).inc()
    action_duration_seconds.labels(action=action).observe(duration)


def set_active_sessions(count: int) -> None:
    """Set the number of live sessions."""
    active_sessions.set(count)
