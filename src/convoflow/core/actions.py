"""Action capability and the registry the platform layer fills.

The engine never inspects an action: it binds parameters, calls
``execute`` and stores the result.
"""

import asyncio
import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from typing import Any

from ..errors import ConfigurationError, NullReferenceError


class BaseAction(ABC):
    """Abstract base class for executable actions.

    ``execute`` may be a plain method or a coroutine. Blocking plain
    methods are run in a worker thread by the engine.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable name used in logs and error reports."""
        pass

    @abstractmethod
    def execute(self, params: dict[str, Any]) -> Any:
        """Run the action with its bound parameters and return its result."""
        pass

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.execute)

    async def run(self, params: dict[str, Any]) -> Any:
        """Execute off the caller's thread and return the result."""
        if self.is_async:
            return await self.execute(params)
        return await asyncio.to_thread(self.execute, params)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class FunctionAction(BaseAction):
    """Adapts a plain callable taking keyword parameters into an action."""

    def __init__(self, func: Callable[..., Any], name: str | None = None):
        self._func = func
        self._name = name or getattr(func, "__name__", type(func).__name__)

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self._func)

    def execute(self, params: dict[str, Any]) -> Any:
        return self._func(**params)


class ActionRegistry:
    """Lookup table from action identifiers to actions."""

    def __init__(self, actions: dict[str, BaseAction | Callable[..., Any]] | None = None):
        self._actions: dict[str, BaseAction] = {}
        for action_id, action in (actions or {}).items():
            self.register(action_id, action)

    def register(self, action_id: str, action: BaseAction | Callable[..., Any]) -> BaseAction:
        """Register an action, wrapping plain callables in FunctionAction.

        Raises:
            NullReferenceError: If ``action`` is None.
            ConfigurationError: If ``action_id`` is already registered.
        """
        if action is None:
            raise NullReferenceError(f"Cannot register a None action for '{action_id}'")
        if action_id in self._actions:
            raise ConfigurationError(f"Action '{action_id}' is already registered")
        if not isinstance(action, BaseAction):
            action = FunctionAction(action, name=action_id)
        self._actions[action_id] = action
        return action

    def action(self, action_id: str | None = None) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator registering a function under ``action_id`` (default: its name)."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.register(action_id or func.__name__, func)
            return func

        return decorator

    def get(self, action_id: str) -> BaseAction:
        """Return the action registered under ``action_id``.

        Raises:
            ConfigurationError: If no action is registered under that id.
        """
        try:
            return self._actions[action_id]
        except KeyError:
            raise ConfigurationError(f"Unknown action: {action_id}") from None

    def __contains__(self, action_id: object) -> bool:
        return action_id in self._actions

    def __iter__(self) -> Iterator[str]:
        return iter(self._actions)

    def __len__(self) -> int:
        return len(self._actions)
