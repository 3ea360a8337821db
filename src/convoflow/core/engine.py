"""Dispatch engine: the control loop of the dialogue runtime.

For each event the engine takes the session's exclusive scope, selects a
transition of the current state (guarded transitions in declaration order,
then the wildcard, then the fallback path), runs the transition's actions in
order while binding their results into the session context, and finally
moves the session to the target state.

Events of one session are processed in submission order. Events of
different sessions run concurrently, bounded by ``Settings.max_workers``.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping
from typing import Any

from ..errors import (
    ActionErrorKind,
    ActionExecutionError,
    IllegalStateError,
    ModelValidationError,
    NullReferenceError,
)
from ..infrastructure.logging_config import get_logger, turn_context
from ..infrastructure.metrics import (
    record_action_execution,
    record_fallback,
    record_transition,
)
from ..models.config import Settings, get_settings
from ..models.events import RecognizedEvent
from ..models.execution import ActionSpec, ExecutionModel, State, Transition
from ..models.turn import TurnOutcome, TurnResult
from ..recognition.factory import get_recognition_pipeline
from ..recognition.pipeline import RecognitionPipeline
from .actions import ActionRegistry, BaseAction
from .model_index import ModelIndex
from .session import InMemorySessionStore, Session

logger = get_logger(__name__)


class DialogueEngine:
    """Executes an execution model against per-user sessions."""

    def __init__(
        self,
        model: ExecutionModel,
        actions: ActionRegistry | Mapping[str, Any] | None = None,
        pipeline: RecognitionPipeline | None = None,
        config: Mapping[str, Any] | None = None,
        settings: Settings | None = None,
    ):
        """Load the model and build the engine's collaborators.

        Args:
            model: The execution model to run.
            actions: Registry (or mapping of id -> action) of the model's actions.
            pipeline: Recognition pipeline; built from ``config`` when omitted.
            config: Recognition configuration used to build the pipeline.
            settings: Engine settings (default: environment settings).

        Raises:
            NullReferenceError: If ``model`` is None.
            ModelValidationError: If the model is invalid or references
                unregistered actions.
            ConfigurationError: If the recognition configuration is invalid.
        """
        if model is None:
            raise NullReferenceError("Cannot create an engine without an execution model")

        self.settings = settings or get_settings()
        self.model_index = ModelIndex(model)
        if isinstance(actions, ActionRegistry):
            self.actions = actions
        else:
            self.actions = ActionRegistry(dict(actions or {}))
        self._check_action_references()

        self.session_store = InMemorySessionStore(
            self.model_index.init_state, on_remove=self._forget_session
        )
        self.pipeline = pipeline or get_recognition_pipeline(self, config or {})

        self._workers = asyncio.Semaphore(self.settings.max_workers)
        self._in_flight: set[asyncio.Task] = set()
        self._is_shutdown = False

        logger.info(
            "Dialogue engine created",
            states=len(model.states),
            actions=len(self.actions),
            backend=self.pipeline.name,
            max_workers=self.settings.max_workers,
        )

    @property
    def model(self) -> ExecutionModel:
        return self.model_index.model

    def _check_action_references(self) -> None:
        for state in self.model.states:
            specs: list[ActionSpec] = [*state.body_actions, *state.fallback_actions]
            for transition in state.transitions:
                specs.extend(transition.actions)
            for spec in specs:
                if spec.action_id not in self.actions:
                    raise ModelValidationError(
                        f"State '{state.name}' references unregistered action '{spec.action_id}'",
                        state=state.name,
                    )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Train the recognition pipeline with the model's intents."""
        self._check_running()
        await self.pipeline.train(self.model_index.all_intents)

    async def shutdown(self) -> None:
        """Stop the engine.

        New submissions are refused, in-flight turns get
        ``shutdown_timeout_seconds`` to finish before being cancelled, then
        the recognition pipeline is shut down and every session released.

        Raises:
            IllegalStateError: If the engine is already shut down.
        """
        if self._is_shutdown:
            raise IllegalStateError("The dialogue engine is already shut down")
        self._is_shutdown = True

        pending = set(self._in_flight)
        pending.discard(asyncio.current_task())
        if pending:
            logger.info("Waiting for in-flight turns", count=len(pending))
            _, still_running = await asyncio.wait(
                pending, timeout=self.settings.shutdown_timeout_seconds
            )
            for task in still_running:
                task.cancel()
            if still_running:
                logger.warning("Cancelled in-flight turns", count=len(still_running))
                await asyncio.gather(*still_running, return_exceptions=True)

        if not self.pipeline.is_shutdown:
            await self.pipeline.shutdown()
        self.session_store.clear()
        logger.info("Dialogue engine shut down")

    def is_shutdown(self) -> bool:
        return self._is_shutdown

    def _check_running(self) -> None:
        if self._is_shutdown:
            raise IllegalStateError("The dialogue engine is shut down")

    async def __aenter__(self) -> DialogueEngine:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if not self._is_shutdown:
            await self.shutdown()

    # =========================================================================
    # Caller-facing API
    # =========================================================================

    def get_or_create_session(self, session_id: str) -> Session:
        """Return the session for ``session_id``, creating it at Init if needed."""
        self._check_running()
        return self.session_store.get_or_create(session_id)

    def _forget_session(self, session_id: str) -> None:
        monitor = self.pipeline.monitor
        if monitor is not None:
            monitor.forget(session_id)

    async def handle_event(self, event: RecognizedEvent, session: Session) -> TurnResult:
        """Dispatch a recognized event and wait for the turn to complete.

        Raises:
            NullReferenceError: If ``event`` or ``session`` is None.
            IllegalStateError: If the engine is shut down.
            ActionExecutionError: If an action fails or times out.
        """
        return await self.submit(event, session)

    def submit(self, event: RecognizedEvent, session: Session) -> asyncio.Task[TurnResult]:
        """Schedule a recognized event without waiting for it.

        Must be called from a running event loop.
        """
        if event is None:
            raise NullReferenceError("Cannot handle a None event")
        if session is None:
            raise NullReferenceError("Cannot handle an event without a session")
        self._check_running()
        return self._spawn(self._process(session, event=event))

    async def handle_raw_input(self, text: str, session: Session) -> TurnResult:
        """Recognize ``text`` and dispatch the resulting event.

        Recognition happens inside the session's exclusive scope, so raw
        inputs of one session keep their order.

        Raises:
            RecognitionFailure: If the recognition backend fails.
        """
        if text is None:
            raise NullReferenceError("Cannot handle a None input")
        if session is None:
            raise NullReferenceError("Cannot handle an input without a session")
        self._check_running()
        return await self._spawn(self._process(session, text=text))

    def _spawn(self, coro: Any) -> asyncio.Task[TurnResult]:
        task = asyncio.ensure_future(coro)
        self._in_flight.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(
                "Turn ended with an error", error_type=type(error).__name__, error=str(error)
            )

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def _process(
        self,
        session: Session,
        event: RecognizedEvent | None = None,
        text: str | None = None,
    ) -> TurnResult:
        async with session.exclusive():
            async with self._workers:
                with turn_context(session_id=session.session_id):
                    if event is None:
                        event = await self.pipeline.recognize(text, session)
                    return await self._dispatch(event, session)

    def select_transition(
        self, state: State, event: RecognizedEvent, context: Mapping[str, Any]
    ) -> Transition | None:
        """Return the transition of ``state`` matching ``event``, if any.

        Guarded transitions are tried in declaration order before the
        wildcard transition.
        """
        for transition in self.model_index.transitions_of(state):
            if transition.matches(event, context):
                return transition
        return None

    async def _dispatch(self, event: RecognizedEvent, session: Session) -> TurnResult:
        start_time = time.perf_counter()
        state = session.current_state
        if state is None:
            raise IllegalStateError(f"Session '{session.session_id}' has no current state")

        bindings: dict[str, Any] = {}
        transition = self.select_transition(state, event, session.context)

        if transition is not None:
            target = transition.target
            await self._run_actions(transition.actions, event, session, bindings)
            await self._run_actions(target.body_actions, event, session, bindings)
            session.current_state = target
            record_transition(state.name, target.name)
            outcome = TurnOutcome.TRANSITION
            logger.info(
                "Transition taken",
                intent=event.name,
                from_state=state.name,
                to_state=target.name,
                wildcard=transition.is_wildcard,
            )
        elif self.model_index.is_fallback_state(state):
            outcome = TurnOutcome.NO_OP
            logger.debug("No transition matched in fallback state", intent=event.name)
        else:
            fallback_actions = state.fallback_actions
            if not fallback_actions and self.model_index.fallback_state is not None:
                fallback_actions = self.model_index.fallback_state.body_actions
            await self._run_actions(fallback_actions, event, session, bindings)
            record_fallback(state.name)
            outcome = TurnOutcome.FALLBACK
            logger.info("No transition matched, fallback", intent=event.name, state=state.name)

        return TurnResult(
            session_id=session.session_id,
            event=event.name,
            from_state=state.name,
            to_state=session.current_state.name,
            outcome=outcome,
            bindings=dict(bindings),
            processing_time_ms=int((time.perf_counter() - start_time) * 1000),
        )

    async def _run_actions(
        self,
        specs: list[ActionSpec],
        event: RecognizedEvent,
        session: Session,
        bindings: dict[str, Any],
    ) -> None:
        """Run ``specs`` in order, binding results into the session context.

        ``bindings`` collects every return variable bound so far and is
        reported in ActionExecutionError when an action fails.
        """
        timeout = self.settings.action_timeout_seconds
        for spec in specs:
            action = self.actions.get(spec.action_id)
            params = spec.bind_parameters(event, session.context)
            start_time = time.perf_counter()
            invocation = self._invoke(action, params, bindings, start_time)
            try:
                if timeout:
                    result = await asyncio.wait_for(invocation, timeout)
                else:
                    result = await invocation
            except asyncio.TimeoutError as e:
                # Only wait_for gets here: errors raised by the action itself,
                # TimeoutError included, are wrapped by _invoke.
                record_action_execution(action.name, "timeout", time.perf_counter() - start_time)
                logger.error("Action timed out", action=action.name, timeout=timeout)
                raise ActionExecutionError(
                    action.name, ActionErrorKind.TIMEOUT, bindings, cause=e
                ) from e

            record_action_execution(action.name, "success", time.perf_counter() - start_time)
            if spec.return_variable:
                session.bind(spec.return_variable, result)
                bindings[spec.return_variable] = result

    async def _invoke(
        self,
        action: BaseAction,
        params: dict[str, Any],
        bindings: dict[str, Any],
        start_time: float,
    ) -> Any:
        try:
            return await action.run(params)
        except Exception as e:
            record_action_execution(action.name, "failure", time.perf_counter() - start_time)
            logger.error("Action failed", action=action.name, error=str(e))
            raise ActionExecutionError(
                action.name, ActionErrorKind.FAILURE, bindings, cause=e
            ) from e

    def __repr__(self) -> str:
        return (
            f"<DialogueEngine states={len(self.model.states)} "
            f"sessions={len(self.session_store)} shutdown={self._is_shutdown}>"
        )
