"""Execution model: states, transitions, guards and action specifications.

Guards form an explicit expression tree. ``EventGuard`` leaves hold a direct
reference to the EventDefinition they test, so finding the events a
transition accesses is a plain tree walk.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from .events import EventDefinition, RecognizedEvent

INIT_STATE_NAME = "Init"
DEFAULT_FALLBACK_STATE_NAME = "Default_Fallback"


# =============================================================================
# Guards
# =============================================================================


class Guard(ABC):
    """Boolean predicate over a recognized event and a session context."""

    @abstractmethod
    def evaluate(self, event: RecognizedEvent, context: Mapping[str, Any]) -> bool:
        pass

    def children(self) -> tuple[Guard, ...]:
        return ()

    def walk(self) -> Iterator[Guard]:
        """Yield this node and all its descendants (pre-order)."""
        stack: list[Guard] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children()))

    def __and__(self, other: Guard) -> AndGuard:
        return AndGuard(self, other)

    def __or__(self, other: Guard) -> OrGuard:
        return OrGuard(self, other)

    def __invert__(self) -> NotGuard:
        return NotGuard(self)


@dataclass(frozen=True, eq=False)
class EventGuard(Guard):
    """True when the recognized event was produced from ``event``."""

    event: EventDefinition

    def evaluate(self, event: RecognizedEvent, context: Mapping[str, Any]) -> bool:
        return event.definition is self.event


@dataclass(frozen=True, eq=False)
class AndGuard(Guard):
    left: Guard
    right: Guard

    def evaluate(self, event: RecognizedEvent, context: Mapping[str, Any]) -> bool:
        return self.left.evaluate(event, context) and self.right.evaluate(event, context)

    def children(self) -> tuple[Guard, ...]:
        return (self.left, self.right)


@dataclass(frozen=True, eq=False)
class OrGuard(Guard):
    left: Guard
    right: Guard

    def evaluate(self, event: RecognizedEvent, context: Mapping[str, Any]) -> bool:
        return self.left.evaluate(event, context) or self.right.evaluate(event, context)

    def children(self) -> tuple[Guard, ...]:
        return (self.left, self.right)


@dataclass(frozen=True, eq=False)
class NotGuard(Guard):
    operand: Guard

    def evaluate(self, event: RecognizedEvent, context: Mapping[str, Any]) -> bool:
        return not self.operand.evaluate(event, context)

    def children(self) -> tuple[Guard, ...]:
        return (self.operand,)


@dataclass(frozen=True, eq=False)
class PredicateGuard(Guard):
    """Arbitrary condition, e.g. on a context value or an event parameter."""

    predicate: Callable[[RecognizedEvent, Mapping[str, Any]], bool]
    description: str = ""

    def evaluate(self, event: RecognizedEvent, context: Mapping[str, Any]) -> bool:
        return bool(self.predicate(event, context))


# =============================================================================
# Action specifications
# =============================================================================


@dataclass(frozen=True)
class ContextValue:
    """Parameter bound to a session context value when the action runs."""

    key: str
    default: Any = None


@dataclass(frozen=True)
class EventParameter:
    """Parameter bound to a parameter of the recognized event."""

    name: str
    default: Any = None


@dataclass
class ActionSpec:
    """Reference to a registered action, with its parameters.

    Parameter values are literals, ``ContextValue`` or ``EventParameter``.
    """

    action_id: str
    return_variable: str | None = None
    parameters: dict[str, Any] = field(default_factory=dict)

    def bind_parameters(
        self, event: RecognizedEvent | None, context: Mapping[str, Any]
    ) -> dict[str, Any]:
        bound: dict[str, Any] = {}
        for name, value in self.parameters.items():
            if isinstance(value, ContextValue):
                bound[name] = context.get(value.key, value.default)
            elif isinstance(value, EventParameter):
                if event is None:
                    bound[name] = value.default
                else:
                    bound[name] = event.get_parameter(value.name, value.default)
            else:
                bound[name] = value
        return bound


# =============================================================================
# States and transitions
# =============================================================================


@dataclass(eq=False)
class Transition:
    """Outgoing edge of a State.

    A wildcard transition matches any event (its guard, when present, must
    still hold). ``target`` may be assigned after construction so that
    cyclic graphs can be built.
    """

    guard: Guard | None = None
    is_wildcard: bool = False
    target: State | None = None
    actions: list[ActionSpec] = field(default_factory=list)
    source: State | None = field(default=None, repr=False)

    def matches(self, event: RecognizedEvent, context: Mapping[str, Any]) -> bool:
        if self.guard is None:
            return self.is_wildcard
        return self.guard.evaluate(event, context)

    def __repr__(self) -> str:
        source = self.source.name if self.source else None
        target = self.target.name if self.target else None
        kind = "wildcard" if self.is_wildcard else "guarded"
        return f"<Transition {kind} {source} -> {target}>"


@dataclass(eq=False)
class State:
    """Named node of the execution model."""

    name: str
    transitions: list[Transition] = field(default_factory=list)
    body_actions: list[ActionSpec] = field(default_factory=list)
    fallback_actions: list[ActionSpec] = field(default_factory=list)

    def __post_init__(self) -> None:
        for transition in self.transitions:
            transition.source = self

    def add_transition(self, transition: Transition) -> Transition:
        transition.source = self
        self.transitions.append(transition)
        return transition

    def on(self, guard: Guard | EventDefinition, target: State, *actions: ActionSpec) -> Transition:
        """Add a guarded transition; an EventDefinition becomes an EventGuard."""
        if isinstance(guard, EventDefinition):
            guard = EventGuard(guard)
        return self.add_transition(Transition(guard=guard, target=target, actions=list(actions)))

    def otherwise(self, target: State, *actions: ActionSpec) -> Transition:
        """Add the wildcard transition of this state."""
        return self.add_transition(
            Transition(is_wildcard=True, target=target, actions=list(actions))
        )

    @property
    def wildcard_transitions(self) -> list[Transition]:
        return [t for t in self.transitions if t.is_wildcard]

    @property
    def guarded_transitions(self) -> list[Transition]:
        return [t for t in self.transitions if not t.is_wildcard]

    def __repr__(self) -> str:
        return f"<State {self.name!r}>"


@dataclass(eq=False)
class ExecutionModel:
    """A loaded state machine. Read-only once handed to the engine."""

    states: list[State] = field(default_factory=list)

    def get_state(self, name: str) -> State | None:
        for state in self.states:
            if state.name == name:
                return state
        return None

    def add_state(self, state: State) -> State:
        self.states.append(state)
        return state

    def iter_transitions(self) -> Iterator[Transition]:
        for state in self.states:
            yield from state.transitions
