"""Regular-expression recognition backend.

Used when no NLU service is configured. Each training sentence becomes an
anchored, case-sensitive pattern; ``{name}`` placeholders capture event
parameters. Pre-processors (e.g. Lowercase) normalize input beforehand.

Example:
    IntentDefinition("OrderPizza", training_sentences=["i want a {size} pizza"])
    matches "i want a large pizza" with parameters {"size": "large"}.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

from ..infrastructure.logging_config import get_logger
from ..models.events import DEFAULT_FALLBACK_INTENT, IntentDefinition, RecognizedEvent
from .base import BaseRecognitionBackend

if TYPE_CHECKING:
    from ..core.session import Session

logger = get_logger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def compile_training_sentence(sentence: str) -> re.Pattern[str]:
    """Compile a training sentence into an anchored pattern.

    Literal text is escaped; each ``{name}`` placeholder becomes a named
    group matching one or more characters.
    """
    parts: list[str] = []
    position = 0
    seen: set[str] = set()
    for match in PLACEHOLDER_PATTERN.finditer(sentence):
        parts.append(re.escape(sentence[position : match.start()]))
        name = match.group(1)
        if name in seen:
            parts.append(f"(?P={name})")
        else:
            parts.append(f"(?P<{name}>.+?)")
            seen.add(name)
        position = match.end()
    parts.append(re.escape(sentence[position:]))
    return re.compile("^" + "".join(parts) + "$")


class RegexRecognitionBackend(BaseRecognitionBackend):
    """Pattern-matching backend with no external dependency."""

    def __init__(
        self,
        config: dict | None = None,
        intents: Iterable[IntentDefinition] | None = None,
    ):
        super().__init__(config)
        self._patterns: list[tuple[re.Pattern[str], IntentDefinition]] = []
        self._intents: list[IntentDefinition] = []
        if intents:
            self._register(intents)

    @property
    def name(self) -> str:
        return "regex"

    @property
    def intents(self) -> list[IntentDefinition]:
        return list(self._intents)

    def _register(self, intents: Iterable[IntentDefinition]) -> None:
        for intent in intents:
            if any(intent is known for known in self._intents):
                continue
            self._intents.append(intent)
            for sentence in intent.training_sentences:
                self._patterns.append((compile_training_sentence(sentence), intent))
        logger.debug(
            "Regex patterns registered", intents=len(self._intents), patterns=len(self._patterns)
        )

    async def train(self, intents: Iterable[IntentDefinition]) -> None:
        self._check_running()
        self._register(intents)

    async def recognize(self, text: str, session: Session) -> RecognizedEvent:
        self._check_running()
        for pattern, intent in self._patterns:
            match = pattern.match(text)
            if match:
                return RecognizedEvent(
                    definition=intent,
                    parameters=match.groupdict(),
                    confidence=1.0,
                    matched_input=text,
                )
        return RecognizedEvent(
            definition=DEFAULT_FALLBACK_INTENT,
            confidence=0.0,
            matched_input=text,
        )
