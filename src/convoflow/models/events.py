"""Event and intent definitions, and the per-turn recognized event.

Definitions compare and hash by identity: two definitions that share a
name (for instance imported from two libraries) are distinct entities.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(eq=False)
class EventDefinition:
    """A named event the execution model can react to."""

    name: str

    @property
    def is_intent(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


@dataclass(eq=False, repr=False)
class IntentDefinition(EventDefinition):
    """An event produced by recognizing user input.

    ``training_sentences`` and ``parameters`` belong to the recognition
    backend; the engine only looks at the identity of the definition.
    """

    training_sentences: list[str] = field(default_factory=list)
    parameters: list[str] = field(default_factory=list)

    @property
    def is_intent(self) -> bool:
        return True


DEFAULT_FALLBACK_INTENT = IntentDefinition(name="Default_Fallback_Intent")


@dataclass
class RecognizedEvent:
    """Result of turning raw input into a typed event for one turn."""

    definition: EventDefinition
    parameters: dict[str, Any] = field(default_factory=dict)
    confidence: float = 1.0
    matched_input: str = ""
    nlp_data: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def is_fallback(self) -> bool:
        return self.definition is DEFAULT_FALLBACK_INTENT

    def get_parameter(self, name: str, default: Any = None) -> Any:
        return self.parameters.get(name, default)
