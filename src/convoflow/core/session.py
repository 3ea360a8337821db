"""Per-user conversational state and its store.

A Session owns its current state and context. Events of one session are
serialized through ``Session.exclusive()``; the store only guards session
creation, so unrelated sessions never block one another.
"""

import asyncio
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from ..errors import InvalidArgumentError
from ..infrastructure.logging_config import get_logger
from ..infrastructure.metrics import set_active_sessions
from ..models.execution import State

logger = get_logger(__name__)


class Session:
    """Conversational state of one user.

    Attributes:
        session_id: Stable identifier supplied by the transport layer
        current_state: State the session is in
        context: Variables persisting across turns
        return_variables: Names of the context entries bound by actions
    """

    def __init__(self, session_id: str, current_state: State | None):
        self.session_id = session_id
        self.current_state = current_state
        self.context: dict[str, Any] = {}
        self.return_variables: set[str] = set()
        self.created_at = time.time()
        self.last_activity = self.created_at
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator["Session"]:
        """Run a unit of work with exclusive access to this session.

        Waiters are served in the order they asked for access.
        """
        async with self._lock:
            yield self
            self.last_activity = time.time()

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    def bind(self, name: str, value: Any) -> None:
        """Store an action result under a return variable."""
        self.context[name] = value
        self.return_variables.add(name)

    def __repr__(self) -> str:
        state = self.current_state.name if self.current_state else None
        return f"<Session {self.session_id!r} state={state}>"


class SessionStore(ABC):
    """Abstract base class for session stores."""

    @abstractmethod
    def get_or_create(self, session_id: str) -> Session:
        """Return the session for ``session_id``, creating it on first contact.

        Args:
            session_id: Unique identifier for the session

        Raises:
            InvalidArgumentError: If the id is empty or None
        """
        pass

    @abstractmethod
    def get(self, session_id: str) -> Session | None:
        """Return an existing session, or None."""
        pass

    @abstractmethod
    def remove(self, session_id: str) -> Session | None:
        """Evict a session and return it, if present."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Release every session."""
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass

    def __contains__(self, session_id: object) -> bool:
        return isinstance(session_id, str) and self.get(session_id) is not None


class InMemorySessionStore(SessionStore):
    """Session store keeping live Session objects in a dictionary.

    Creation is atomic across threads; exactly one Session exists per id for
    the lifetime of the store (until removed or cleared).
    """

    def __init__(
        self,
        initial_state: State | None = None,
        on_remove: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            initial_state: State new sessions start in (the model's Init state)
            on_remove: Called with the id of every removed or evicted session
        """
        self.initial_state = initial_state
        self.on_remove = on_remove
        self._sessions: dict[str, Session] = {}
        self._create_lock = threading.Lock()

    def get_or_create(self, session_id: str) -> Session:
        if not session_id:
            raise InvalidArgumentError(f"Cannot get or create a session with id {session_id!r}")

        session = self._sessions.get(session_id)
        if session is not None:
            return session

        with self._create_lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = Session(session_id, self.initial_state)
                self._sessions[session_id] = session
                set_active_sessions(len(self._sessions))
                logger.debug("Session created", session_id=session_id)
        return session

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Session | None:
        with self._create_lock:
            session = self._sessions.pop(session_id, None)
            set_active_sessions(len(self._sessions))
        if session is not None:
            self._notify_removed(session_id)
        return session

    def clear(self) -> None:
        with self._create_lock:
            self._sessions.clear()
            set_active_sessions(0)

    def evict_idle(self, max_idle_seconds: float) -> list[str]:
        """Remove sessions idle for longer than ``max_idle_seconds``.

        Sessions currently processing an event are never evicted.

        Returns:
            The evicted session ids.
        """
        cutoff = time.time() - max_idle_seconds
        with self._create_lock:
            expired = [
                sid
                for sid, s in self._sessions.items()
                if s.last_activity < cutoff and not s.is_busy
            ]
            for sid in expired:
                del self._sessions[sid]
            set_active_sessions(len(self._sessions))
        for sid in expired:
            self._notify_removed(sid)
        if expired:
            logger.debug("Idle sessions evicted", count=len(expired))
        return expired

    def _notify_removed(self, session_id: str) -> None:
        if self.on_remove is not None:
            self.on_remove(session_id)

    def __len__(self) -> int:
        return len(self._sessions)
