"""Exception taxonomy for the dialogue engine.

Per-turn failures (RecognitionFailure, ActionExecutionError) leave the
session usable for the next turn. Model and configuration problems are
raised at construction time so that a misconfigured engine never starts.
"""

from enum import Enum
from typing import Any


class ConvoflowError(Exception):
    """Base exception for all engine errors."""


class NullReferenceError(ConvoflowError, TypeError):
    """Raised when a required argument is None."""


class InvalidArgumentError(ConvoflowError, ValueError):
    """Raised when an argument is present but unusable (e.g. an empty id)."""


class ConfigurationError(ConvoflowError):
    """Raised when a configuration is contradictory or cannot be satisfied."""


class ModelValidationError(ConvoflowError):
    """Raised when an execution model violates a structural invariant."""

    def __init__(self, message: str, state: str | None = None):
        super().__init__(message)
        self.state = state


class IllegalStateError(ConvoflowError):
    """Raised when an operation is invalid for the current lifecycle stage."""


class RecognitionFailure(ConvoflowError):
    """Raised when a recognition backend cannot produce an event."""

    def __init__(
        self,
        message: str,
        backend: str,
        status_code: int | None = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.backend = backend
        self.status_code = status_code
        self.retryable = retryable


class ActionErrorKind(str, Enum):
    """Why an action aborted its transition."""

    FAILURE = "failure"
    TIMEOUT = "timeout"


class ActionExecutionError(ConvoflowError):
    """Raised when an action fails while a transition or fallback runs.

    The session keeps its pre-transition state. ``bindings`` holds the
    return variables that were bound before the failing action.
    """

    def __init__(
        self,
        action_name: str,
        kind: ActionErrorKind = ActionErrorKind.FAILURE,
        bindings: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        if kind == ActionErrorKind.TIMEOUT:
            message = f"Action '{action_name}' timed out"
        else:
            message = f"Action '{action_name}' failed: {cause}"
        super().__init__(message)
        self.action_name = action_name
        self.kind = kind
        self.bindings = dict(bindings or {})
        self.cause = cause
