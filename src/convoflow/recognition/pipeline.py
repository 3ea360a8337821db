"""Recognition pipeline.

Wraps one backend with ordered pre- and post-processors and an optional
monitor, and exposes the same ``recognize(text, session)`` contract
whatever the backend is.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from typing import TYPE_CHECKING

from ..errors import IllegalStateError, NullReferenceError, RecognitionFailure
from ..infrastructure.logging_config import get_logger
from ..models.events import IntentDefinition, RecognizedEvent
from .base import BaseRecognitionBackend
from .monitor import RecognitionMonitor
from .processors import PostProcessor, PreProcessor

if TYPE_CHECKING:
    from ..core.session import Session

logger = get_logger(__name__)


class RecognitionPipeline:
    """Pre-processors -> backend -> post-processors."""

    def __init__(
        self,
        backend: BaseRecognitionBackend,
        pre_processors: Iterable[PreProcessor] | None = None,
        post_processors: Iterable[PostProcessor] | None = None,
        monitor: RecognitionMonitor | None = None,
        intents: Iterable[IntentDefinition] | None = None,
    ):
        """Initialize the pipeline.

        Args:
            backend: The recognition backend.
            pre_processors: Applied in order to the raw input.
            post_processors: Applied in order to the recognized event.
            monitor: Optional analytics observer.
            intents: Intents trained by ``train()`` when called without arguments.
        """
        if backend is None:
            raise NullReferenceError("Cannot build a recognition pipeline without a backend")
        self.backend = backend
        self.pre_processors: list[PreProcessor] = list(pre_processors or [])
        self.post_processors: list[PostProcessor] = list(post_processors or [])
        self.monitor = monitor
        self.intents: list[IntentDefinition] = list(intents or [])
        self._is_shutdown = False

    @property
    def name(self) -> str:
        return self.backend.name

    async def train(self, intents: Iterable[IntentDefinition] | None = None) -> None:
        """Train the backend with ``intents`` (default: the pipeline's intents)."""
        self._check_running()
        await self.backend.train(self.intents if intents is None else list(intents))

    async def recognize(self, text: str, session: Session) -> RecognizedEvent:
        """Turn raw input into a recognized event.

        Raises:
            NullReferenceError: If ``text`` or ``session`` is None.
            IllegalStateError: If the pipeline is shut down.
            RecognitionFailure: If the backend fails.
        """
        if text is None:
            raise NullReferenceError("Cannot recognize a None input")
        if session is None:
            raise NullReferenceError("Cannot recognize an input without a session")
        self._check_running()

        processed = text
        for pre_processor in self.pre_processors:
            processed = pre_processor.process(processed, session)

        start_time = time.perf_counter()
        try:
            event = await self.backend.recognize(processed, session)
        except RecognitionFailure as e:
            self._monitor_failure(session, text, e, time.perf_counter() - start_time)
            raise
        except IllegalStateError:
            raise
        except Exception as e:
            self._monitor_failure(session, text, e, time.perf_counter() - start_time)
            raise RecognitionFailure(
                f"Recognition backend '{self.backend.name}' failed: {e}",
                backend=self.backend.name,
            ) from e
        duration = time.perf_counter() - start_time

        for post_processor in self.post_processors:
            event = post_processor.process(event, session)

        if self.monitor is not None:
            try:
                self.monitor.log_recognition(session.session_id, text, event, duration)
            except Exception as e:
                logger.warning("Recognition monitor failed", error=str(e))

        logger.debug(
            "Input recognized",
            session_id=session.session_id,
            intent=event.name,
            confidence=event.confidence,
        )
        return event

    def _monitor_failure(
        self, session: Session, text: str, error: Exception, duration: float
    ) -> None:
        logger.warning(
            "Recognition failed",
            session_id=session.session_id,
            backend=self.backend.name,
            error=str(error),
        )
        if self.monitor is not None:
            try:
                self.monitor.log_failure(session.session_id, text, error, duration)
            except Exception as e:
                logger.warning("Recognition monitor failed", error=str(e))

    async def shutdown(self) -> None:
        """Shut down the backend and the monitor.

        Raises:
            IllegalStateError: If the pipeline is already shut down.
        """
        if self._is_shutdown:
            raise IllegalStateError("The recognition pipeline is already shut down")
        self._is_shutdown = True
        if not self.backend.is_shutdown:
            await self.backend.shutdown()
        if self.monitor is not None:
            self.monitor.shutdown()

    @property
    def is_shutdown(self) -> bool:
        return self._is_shutdown

    def _check_running(self) -> None:
        if self._is_shutdown:
            raise IllegalStateError("The recognition pipeline is shut down")

    def __repr__(self) -> str:
        return (
            f"<RecognitionPipeline backend={self.backend.name} "
            f"pre={[p.name for p in self.pre_processors]} "
            f"post={[p.name for p in self.post_processors]}>"
        )
