"""Tests for the model index and model validation."""

import pytest

from convoflow.core.model_index import (
    ModelIndex,
    compute_top_level_intents,
    get_accessed_events,
    get_states_reachable_with_wildcard,
    validate_model,
)
from convoflow.errors import ModelValidationError
from convoflow.models import (
    EventDefinition,
    EventGuard,
    ExecutionModel,
    IntentDefinition,
    PredicateGuard,
    State,
    Transition,
)


class TestTopLevelIntents:
    """Tests for compute_top_level_intents."""

    def test_intents_of_init(self, greeting_model, greet_intent):
        """Test that intents guarding Init transitions are top-level."""
        assert compute_top_level_intents(greeting_model) == {greet_intent}

    def test_follows_wildcard_chain(self):
        """Test that intents reachable through wildcard hops are collected."""
        x = IntentDefinition("X")
        y = IntentDefinition("Y")
        init, a, b, c = State("Init"), State("A"), State("B"), State("C")
        init.otherwise(a)
        a.on(x, c)
        a.otherwise(b)
        b.on(y, c)
        model = ExecutionModel([init, a, b, c])

        assert compute_top_level_intents(model) == {x, y}

    def test_wildcard_cycle_terminates(self):
        """Test that an A <-> B wildcard cycle visits each state once."""
        x = IntentDefinition("X")
        y = IntentDefinition("Y")
        init, a, b = State("Init"), State("A"), State("B")
        init.otherwise(a)
        a.otherwise(b)
        b.otherwise(a)
        a.on(x, init)
        b.on(y, init)
        model = ExecutionModel([init, a, b])

        assert compute_top_level_intents(model) == {x, y}
        assert get_states_reachable_with_wildcard(init) == [init, a, b]

    def test_missing_init_returns_empty(self, greet_intent):
        """Test that a model without Init has no top-level intents."""
        other = State("Other")
        other.on(greet_intent, other)
        assert compute_top_level_intents(ExecutionModel([other])) == set()

    def test_non_intent_events_are_ignored(self):
        """Test that plain events are not reported as intents."""
        tick = EventDefinition("Tick")
        init = State("Init")
        init.on(tick, init)
        assert compute_top_level_intents(ExecutionModel([init])) == set()

    def test_intents_behind_guarded_states_excluded(self, greeting_model, bye_intent):
        """Test that intents only reachable after a guarded hop are not top-level."""
        assert bye_intent not in compute_top_level_intents(greeting_model)


class TestAccessedEvents:
    """Tests for get_accessed_events."""

    def test_walks_composite_guards(self):
        """Test that every EventGuard leaf of a guard tree is found."""
        a, b, c = EventDefinition("A"), EventDefinition("B"), EventDefinition("C")
        guard = (EventGuard(a) & ~EventGuard(b)) | EventGuard(c)
        transition = Transition(guard=guard, target=State("T"))

        assert get_accessed_events(transition) == {a, b, c}

    def test_predicate_guard_accesses_nothing(self):
        """Test that an opaque predicate contributes no events."""
        transition = Transition(guard=PredicateGuard(lambda e, c: True), target=State("T"))
        assert get_accessed_events(transition) == set()

    def test_same_name_definitions_are_distinct(self):
        """Test that dedup is by identity, not by name."""
        first = IntentDefinition("Greet")
        second = IntentDefinition("Greet")
        init = State("Init")
        init.on(first, init)
        init.on(second, init)

        assert len(get_accessed_events(ExecutionModel([init]))) == 2

    def test_whole_model(self, greeting_model, greet_intent, bye_intent, order_intent):
        """Test collecting events of all transitions of a model."""
        assert get_accessed_events(greeting_model) == {greet_intent, bye_intent, order_intent}


class TestValidateModel:
    """Tests for load-time model validation."""

    def test_valid_model(self, greeting_model):
        validate_model(greeting_model)

    def test_missing_init(self):
        """Test that a model without Init is rejected."""
        with pytest.raises(ModelValidationError, match="Init"):
            validate_model(ExecutionModel([State("Other")]))

    def test_duplicate_state_names(self):
        with pytest.raises(ModelValidationError, match="Duplicate"):
            validate_model(ExecutionModel([State("Init"), State("Init")]))

    def test_multiple_wildcards(self):
        """Test that a state with two wildcard transitions is rejected."""
        init, a, b = State("Init"), State("A"), State("B")
        init.otherwise(a)
        init.otherwise(b)

        with pytest.raises(ModelValidationError) as exc_info:
            validate_model(ExecutionModel([init, a, b]))
        assert exc_info.value.state == "Init"

    def test_transition_without_target(self, greet_intent):
        init = State("Init")
        init.add_transition(Transition(guard=EventGuard(greet_intent)))
        with pytest.raises(ModelValidationError, match="no target"):
            validate_model(ExecutionModel([init]))

    def test_target_outside_model(self, greet_intent):
        """Test that a target missing from the state list is rejected."""
        init = State("Init")
        init.on(greet_intent, State("Elsewhere"))
        with pytest.raises(ModelValidationError, match="not part of the model"):
            validate_model(ExecutionModel([init]))

    def test_guardless_non_wildcard(self):
        init = State("Init")
        init.add_transition(Transition(target=init))
        with pytest.raises(ModelValidationError, match="no guard"):
            validate_model(ExecutionModel([init]))


class TestModelIndex:
    """Tests for the ModelIndex value."""

    def test_caches_states(self, greeting_model):
        index = ModelIndex(greeting_model)
        assert index.init_state is greeting_model.get_state("Init")
        assert index.fallback_state is greeting_model.get_state("Default_Fallback")

    def test_all_intents_sorted(self, greeting_model):
        """Test that all_intents is sorted by name."""
        index = ModelIndex(greeting_model)
        assert [i.name for i in index.all_intents] == ["Bye", "Greet", "OrderPizza"]

    def test_transitions_of_puts_wildcard_last(self, greet_intent, bye_intent):
        """Test that the wildcard comes after guarded transitions."""
        init, a = State("Init"), State("A")
        wildcard = init.otherwise(a)
        greet = init.on(greet_intent, a)
        bye = init.on(bye_intent, a)
        index = ModelIndex(ExecutionModel([init, a]))

        assert index.transitions_of(init) == [greet, bye, wildcard]

    def test_refresh_after_model_change(self, greeting_model):
        """Test that refresh() picks up transitions added after indexing."""
        index = ModelIndex(greeting_model)
        extra = IntentDefinition("Help")
        index.init_state.on(extra, index.init_state)

        assert extra not in index.top_level_intents
        index.refresh()
        assert extra in index.top_level_intents

    def test_invalid_model_rejected(self):
        with pytest.raises(ModelValidationError):
            ModelIndex(ExecutionModel([]))

    def test_validation_can_be_skipped(self):
        index = ModelIndex(ExecutionModel([]), validate=False)
        assert index.init_state is None
        assert index.top_level_intents == set()
