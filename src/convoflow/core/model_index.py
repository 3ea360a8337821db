"""Read-only index computed from a loaded execution model.

The index locates the Init and Default_Fallback states, computes the
top-level intents (intents matchable without prior context) and the set of
events accessed by transition guards. It is an explicit value owned by an
engine instance, so several engines can coexist in one process.
"""

from __future__ import annotations

from ..errors import ModelValidationError
from ..infrastructure.logging_config import get_logger
from ..models.events import EventDefinition, IntentDefinition
from ..models.execution import (
    DEFAULT_FALLBACK_STATE_NAME,
    INIT_STATE_NAME,
    EventGuard,
    ExecutionModel,
    State,
    Transition,
)

logger = get_logger(__name__)


def get_states_reachable_with_wildcard(state: State) -> list[State]:
    """Return ``state`` and the states reachable from it through wildcard hops.

    Each state is visited once, so cyclic wildcard chains terminate.
    """
    visited: list[State] = []
    seen: set[int] = set()
    current: State | None = state
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        visited.append(current)
        wildcards = current.wildcard_transitions
        current = wildcards[0].target if wildcards else None
    return visited


def get_accessed_events(target: Transition | ExecutionModel) -> set[EventDefinition]:
    """Return the EventDefinitions referenced by guards.

    Args:
        target: A single transition, or a whole model (all its transitions).

    Returns:
        The referenced definitions, deduplicated by identity.
    """
    if isinstance(target, ExecutionModel):
        transitions = list(target.iter_transitions())
    else:
        transitions = [target]

    result: set[EventDefinition] = set()
    for transition in transitions:
        if transition.guard is None:
            continue
        for node in transition.guard.walk():
            if isinstance(node, EventGuard):
                result.add(node.event)
    return result


def compute_top_level_intents(model: ExecutionModel) -> set[IntentDefinition]:
    """Return the intents reachable from Init through zero or more wildcard hops.

    Returns an empty set when the model has no Init state.
    """
    init_state = model.get_state(INIT_STATE_NAME)
    if init_state is None:
        return set()

    result: set[IntentDefinition] = set()
    for state in get_states_reachable_with_wildcard(init_state):
        for transition in state.transitions:
            for event in get_accessed_events(transition):
                if isinstance(event, IntentDefinition):
                    result.add(event)
    return result


def validate_model(model: ExecutionModel) -> None:
    """Check the structural invariants the engine relies on.

    Raises:
        ModelValidationError: On the first violated invariant.
    """
    if model.get_state(INIT_STATE_NAME) is None:
        raise ModelValidationError(f"The model does not define a '{INIT_STATE_NAME}' state")

    names: set[str] = set()
    for state in model.states:
        if state.name in names:
            raise ModelValidationError(f"Duplicate state '{state.name}'", state=state.name)
        names.add(state.name)

    model_states = {id(s) for s in model.states}
    for state in model.states:
        if len(state.wildcard_transitions) > 1:
            raise ModelValidationError(
                f"State '{state.name}' defines {len(state.wildcard_transitions)} wildcard "
                "transitions, at most one is allowed",
                state=state.name,
            )
        for transition in state.transitions:
            if transition.target is None:
                raise ModelValidationError(
                    f"A transition of state '{state.name}' has no target", state=state.name
                )
            if id(transition.target) not in model_states:
                raise ModelValidationError(
                    f"State '{state.name}' targets '{transition.target.name}' which is not "
                    "part of the model",
                    state=state.name,
                )
            if not transition.is_wildcard and transition.guard is None:
                raise ModelValidationError(
                    f"A non-wildcard transition of state '{state.name}' has no guard",
                    state=state.name,
                )


class ModelIndex:
    """Cached, read-only view over an ExecutionModel."""

    def __init__(self, model: ExecutionModel, validate: bool = True):
        """Build the index.

        Args:
            model: The loaded execution model.
            validate: Check model invariants first (load-time errors).

        Raises:
            ModelValidationError: If ``validate`` is set and the model is invalid.
        """
        if validate:
            validate_model(model)
        self.model = model
        self.refresh()

    def refresh(self) -> None:
        """Recompute every cached value from the model."""
        self.init_state: State | None = self.model.get_state(INIT_STATE_NAME)
        self.fallback_state: State | None = self.model.get_state(DEFAULT_FALLBACK_STATE_NAME)
        self.top_level_intents: set[IntentDefinition] = compute_top_level_intents(self.model)
        self.all_accessed_events: set[EventDefinition] = get_accessed_events(self.model)
        logger.debug(
            "Model index computed",
            states=len(self.model.states),
            top_level_intents=len(self.top_level_intents),
            accessed_events=len(self.all_accessed_events),
        )

    @property
    def all_intents(self) -> list[IntentDefinition]:
        """Accessed intents, sorted by name for a stable training order."""
        intents = [e for e in self.all_accessed_events if isinstance(e, IntentDefinition)]
        return sorted(intents, key=lambda i: i.name)

    def get_accessed_events(self, transition: Transition) -> set[EventDefinition]:
        return get_accessed_events(transition)

    def transitions_of(self, state: State) -> list[Transition]:
        """Guarded transitions in declaration order, then the wildcard."""
        return state.guarded_transitions + state.wildcard_transitions

    def get_state(self, name: str) -> State | None:
        return self.model.get_state(name)

    def is_fallback_state(self, state: State) -> bool:
        return state is self.fallback_state or state.name == DEFAULT_FALLBACK_STATE_NAME

    def __repr__(self) -> str:
        return (
            f"<ModelIndex states={len(self.model.states)} "
            f"top_level_intents={len(self.top_level_intents)}>"
        )
