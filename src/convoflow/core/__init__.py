"""Dialogue runtime: model index, sessions, actions and the dispatch engine."""

from .actions import ActionRegistry, BaseAction, FunctionAction
from .engine import DialogueEngine
from .model_index import (
    ModelIndex,
    compute_top_level_intents,
    get_accessed_events,
    get_states_reachable_with_wildcard,
    validate_model,
)
from .session import InMemorySessionStore, Session, SessionStore

__all__ = [
    "DialogueEngine",
    "ModelIndex",
    "compute_top_level_intents",
    "get_accessed_events",
    "get_states_reachable_with_wildcard",
    "validate_model",
    "Session",
    "SessionStore",
    "InMemorySessionStore",
    "BaseAction",
    "FunctionAction",
    "ActionRegistry",
]
