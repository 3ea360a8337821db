"""Base Recognition Backend Interface.

Defines the abstract base class every recognition backend implements.
A backend is trained once, then must accept concurrent ``recognize`` calls
from many sessions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import TYPE_CHECKING

from ..errors import IllegalStateError
from ..models.events import IntentDefinition, RecognizedEvent

if TYPE_CHECKING:
    from ..core.session import Session


class BaseRecognitionBackend(ABC):
    """Abstract base class for recognition backends."""

    def __init__(self, config: dict | None = None):
        """Initialize the backend.

        Args:
            config: Backend-specific configuration dictionary.
        """
        self.config = config or {}
        self._is_shutdown = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the backend name."""
        pass

    @abstractmethod
    async def train(self, intents: Iterable[IntentDefinition]) -> None:
        """Register the intents the backend must be able to recognize."""
        pass

    @abstractmethod
    async def recognize(self, text: str, session: Session) -> RecognizedEvent:
        """Turn ``text`` into a recognized event.

        Raises:
            RecognitionFailure: If the backend cannot process the input.
        """
        pass

    async def shutdown(self) -> None:
        """Release backend resources.

        Raises:
            IllegalStateError: If the backend is already shut down.
        """
        if self._is_shutdown:
            raise IllegalStateError(f"Recognition backend '{self.name}' is already shut down")
        self._is_shutdown = True

    @property
    def is_shutdown(self) -> bool:
        return self._is_shutdown

    def _check_running(self) -> None:
        if self._is_shutdown:
            raise IllegalStateError(f"Recognition backend '{self.name}' is shut down")
