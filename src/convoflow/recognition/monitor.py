"""Recognition monitor.

Observes every recognition call for analytics: which inputs matched which
intent, which inputs were not understood, and how long the backend took.
The monitor never changes the recognized event, and its own failures are
logged and swallowed so that analytics can never break a turn.
"""

import threading
from collections import Counter, defaultdict, deque
from dataclasses import dataclass, field

from ..infrastructure.logging_config import get_logger
from ..infrastructure.metrics import record_intent_match, record_recognition
from ..models.events import RecognizedEvent

logger = get_logger(__name__)


@dataclass
class SessionRecognitionStats:
    """Recognition history of one session."""

    matched: int = 0
    unmatched: int = 0
    failures: int = 0
    inputs: list[tuple[str, str | None, float]] = field(default_factory=list)


class RecognitionMonitor:
    """In-memory and prometheus analytics for a recognition pipeline.

    Every in-memory collection is bounded: input samples keep the most
    recent ``max_recorded_inputs`` entries, and per-session statistics are
    kept for at most ``max_sessions`` sessions (least recently active first
    out). ``forget`` drops a session as soon as its store evicts it.
    """

    def __init__(
        self,
        backend_name: str,
        max_inputs_per_session: int = 100,
        max_recorded_inputs: int = 1000,
        max_sessions: int = 10000,
    ):
        self.backend_name = backend_name
        self.max_inputs_per_session = max_inputs_per_session
        self.max_recorded_inputs = max_recorded_inputs
        self.max_sessions = max_sessions
        self.matched_inputs: dict[str, deque[str]] = defaultdict(
            lambda: deque(maxlen=max_recorded_inputs)
        )
        self.unmatched_inputs: deque[str] = deque(maxlen=max_recorded_inputs)
        self.intent_counts: Counter[str] = Counter()
        self.unmatched_count = 0
        self.failure_count = 0
        self._sessions: dict[str, SessionRecognitionStats] = {}
        self._lock = threading.Lock()

    def _stats_for(self, session_id: str) -> SessionRecognitionStats:
        # Caller holds the lock. Dict order doubles as recency order.
        stats = self._sessions.pop(session_id, None) or SessionRecognitionStats()
        self._sessions[session_id] = stats
        while len(self._sessions) > self.max_sessions:
            del self._sessions[next(iter(self._sessions))]
        return stats

    def log_recognition(
        self, session_id: str, text: str, event: RecognizedEvent, duration: float
    ) -> None:
        """Record a successful recognition call."""
        try:
            record_recognition(self.backend_name, "success", duration)
            record_intent_match(event.name, not event.is_fallback)
            with self._lock:
                stats = self._stats_for(session_id)
                if event.is_fallback:
                    self.unmatched_inputs.append(text)
                    self.unmatched_count += 1
                    stats.unmatched += 1
                else:
                    self.matched_inputs[event.name].append(text)
                    self.intent_counts[event.name] += 1
                    stats.matched += 1
                stats.inputs.append((text, event.name, event.confidence))
                del stats.inputs[: -self.max_inputs_per_session]
        except Exception as e:
            logger.warning("Recognition monitor failed to log a recognition", error=str(e))

    def log_failure(self, session_id: str, text: str, error: Exception, duration: float) -> None:
        """Record a failed recognition call."""
        try:
            record_recognition(self.backend_name, "error", duration)
            with self._lock:
                self.failure_count += 1
                self._stats_for(session_id).failures += 1
        except Exception as e:
            logger.warning("Recognition monitor failed to log a failure", error=str(e))

    def forget(self, session_id: str) -> None:
        """Drop the statistics of an evicted session."""
        with self._lock:
            self._sessions.pop(session_id, None)

    def get_session_stats(self, session_id: str) -> SessionRecognitionStats | None:
        with self._lock:
            return self._sessions.get(session_id)

    @property
    def total_matched(self) -> int:
        return sum(self.intent_counts.values())

    @property
    def total_unmatched(self) -> int:
        return self.unmatched_count

    def summary(self) -> dict:
        """Aggregate statistics, e.g. for a health or analytics endpoint."""
        with self._lock:
            total = self.total_matched + self.total_unmatched
            return {
                "backend": self.backend_name,
                "total_inputs": total,
                "matched": self.total_matched,
                "unmatched": self.total_unmatched,
                "failures": self.failure_count,
                "match_rate": self.total_matched / total if total else 0.0,
                "intents": dict(self.intent_counts),
                "sessions": len(self._sessions),
            }

    def shutdown(self) -> None:
        logger.info("Recognition monitor stopped", **self.summary())
