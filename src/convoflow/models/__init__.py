"""Data models for the dialogue engine."""

from .config import Settings, get_settings, load_config_file
from .events import (
    DEFAULT_FALLBACK_INTENT,
    EventDefinition,
    IntentDefinition,
    RecognizedEvent,
)
from .execution import (
    DEFAULT_FALLBACK_STATE_NAME,
    INIT_STATE_NAME,
    ActionSpec,
    AndGuard,
    ContextValue,
    EventGuard,
    EventParameter,
    ExecutionModel,
    Guard,
    NotGuard,
    OrGuard,
    PredicateGuard,
    State,
    Transition,
)
from .turn import TurnOutcome, TurnResult

__all__ = [
    # Events
    "EventDefinition",
    "IntentDefinition",
    "RecognizedEvent",
    "DEFAULT_FALLBACK_INTENT",
    # Execution model
    "ExecutionModel",
    "State",
    "Transition",
    "ActionSpec",
    "ContextValue",
    "EventParameter",
    "Guard",
    "EventGuard",
    "AndGuard",
    "OrGuard",
    "NotGuard",
    "PredicateGuard",
    "INIT_STATE_NAME",
    "DEFAULT_FALLBACK_STATE_NAME",
    # Turns
    "TurnOutcome",
    "TurnResult",
    # Settings
    "Settings",
    "get_settings",
    "load_config_file",
]
