"""Pytest configuration and shared fixtures."""

import pytest

from convoflow.core import ActionRegistry, DialogueEngine, Session
from convoflow.models import (
    ActionSpec,
    EventParameter,
    ExecutionModel,
    IntentDefinition,
    RecognizedEvent,
    Settings,
    State,
)


@pytest.fixture
def greet_intent():
    """Greeting intent with two training sentences."""
    return IntentDefinition(name="Greet", training_sentences=["hello", "hi"])


@pytest.fixture
def bye_intent():
    """Goodbye intent."""
    return IntentDefinition(name="Bye", training_sentences=["bye", "goodbye"])


@pytest.fixture
def order_intent():
    """Intent with a parameter placeholder."""
    return IntentDefinition(
        name="OrderPizza",
        training_sentences=["i want a {size} pizza"],
        parameters=["size"],
    )


@pytest.fixture
def greeting_model(greet_intent, bye_intent, order_intent):
    """Init -Greet-> Greeted -Bye-> Init, plus a Default_Fallback state."""
    init = State("Init")
    greeted = State("Greeted")
    ordered = State("Ordered")
    fallback = State("Default_Fallback", body_actions=[ActionSpec("apologize", "apology")])

    init.on(greet_intent, greeted, ActionSpec("reply", return_variable="reply"))
    greeted.on(bye_intent, init)
    greeted.on(
        order_intent,
        ordered,
        ActionSpec("order", "order", parameters={"size": EventParameter("size")}),
    )
    ordered.on(bye_intent, init)

    return ExecutionModel(states=[init, greeted, ordered, fallback])


@pytest.fixture
def actions():
    """Action registry matching greeting_model."""
    registry = ActionRegistry()
    registry.register("reply", lambda: "Hi there!")
    registry.register("apologize", lambda: "Sorry, I didn't get that")
    registry.register("order", lambda size: f"{size} pizza ordered")
    return registry


@pytest.fixture
def settings():
    """Settings with short timeouts for tests."""
    return Settings(max_workers=4, action_timeout_seconds=1.0, shutdown_timeout_seconds=1.0)


@pytest.fixture
def engine(greeting_model, actions, settings):
    """Engine over greeting_model with the default regex backend."""
    return DialogueEngine(greeting_model, actions, settings=settings)


@pytest.fixture
def session(engine) -> Session:
    """A fresh session of the engine."""
    return engine.get_or_create_session("test-session")


@pytest.fixture
def make_event():
    """Build a RecognizedEvent from a definition."""

    def _make(definition, **parameters):
        return RecognizedEvent(definition=definition, parameters=parameters)

    return _make
