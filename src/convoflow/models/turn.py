"""Outcome of a single dispatched turn."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class TurnOutcome(str, Enum):
    """How the engine handled an event."""

    TRANSITION = "transition"  # A transition was taken
    FALLBACK = "fallback"  # No transition matched, fallback actions ran
    NO_OP = "no_op"  # No transition matched while in Default_Fallback


class TurnResult(BaseModel):
    """Report of one handle_event call, returned to the transport layer."""

    session_id: str
    event: str
    from_state: str
    to_state: str
    outcome: TurnOutcome
    bindings: dict[str, Any] = Field(default_factory=dict)
    processing_time_ms: int = 0

    @property
    def is_fallback(self) -> bool:
        return self.outcome != TurnOutcome.TRANSITION
