"""
Tests for the spec model: provenance lattice, transition keys and JSON shape.
"""

import itertools

import pytest

from gremlin.core.spec.predicates import (
    AndPredicate,
    ComparisonOp,
    ComparisonPredicate,
    IncrementAction,
    InStatePredicate,
    LiteralPredicate,
    LiteralValue,
    VariableValue,
    action_from_dict,
    predicate_from_dict,
)
from gremlin.core.spec.types import (
    ElementRef,
    EventType,
    Provenance,
    Spec,
    State,
    StateMetadata,
    Transition,
    TransitionEvent,
    TransitionKey,
    create_spec,
)


class TestProvenance:

    def test_join_of_different_sources_is_both(self):
        assert Provenance.AST.join(Provenance.SESSION) is Provenance.BOTH

    def test_join_is_idempotent(self):
        for p in Provenance:
            assert p.join(p) is p

    def test_both_absorbs(self):
        for p in Provenance:
            assert Provenance.BOTH.join(p) is Provenance.BOTH
            assert p.join(Provenance.BOTH) is Provenance.BOTH

    def test_join_is_commutative_and_associative(self):
        for a, b, c in itertools.product(Provenance, repeat=3):
            assert a.join(b) is b.join(a)
            assert a.join(b).join(c) is a.join(b.join(c))


def test_transition_keys_do_not_collide_on_separator():
    first = TransitionKey("a->b", "c")
    second = TransitionKey("a", "b->c")
    assert first != second
    assert len({first, second}) == 2
    # Only the display id is ambiguous
    assert first.as_id() == second.as_id()


def test_element_describe_prefers_test_id():
    element = ElementRef(test_id="add-to-cart", text="Add", css_selector="#add")
    assert element.describe() == "add-to-cart"
    assert ElementRef(text="Add").describe() == "Add"
    assert ElementRef().describe() is None


def _sample_spec() -> Spec:
    spec = create_spec("shop", "web")
    spec.states = [
        State(
            id="cart",
            name="cart",
            invariants=[InStatePredicate("cart")],
            observed_count=2,
            metadata=StateMetadata(source=Provenance.BOTH, route="/cart", params=[]),
        ),
        State(id="index", name="index", observed_count=1,
              metadata=StateMetadata(source=Provenance.AST, route="/")),
    ]
    spec.initial_state = "index"
    spec.transitions = [
        Transition(
            id="index->cart",
            from_state="index",
            to_state="cart",
            event=TransitionEvent(type=EventType.TAP, element=ElementRef(test_id="cart-btn")),
            guard=AndPredicate([
                LiteralPredicate(True),
                ComparisonPredicate(VariableValue("items"), ComparisonOp.GT, LiteralValue(0)),
            ]),
            action=IncrementAction("visits", 1),
            frequency=3,
        ),
    ]
    return spec


def test_spec_json_uses_camel_case_and_from_to_keys():
    data = _sample_spec().to_dict(encode_json=True)

    assert data["initialState"] == "index"
    assert data["schemaVersion"] == 1
    assert data["states"][0]["observedCount"] == 2
    assert data["states"][0]["metadata"]["source"] == "both"

    transition = data["transitions"][0]
    assert transition["from"] == "index"
    assert transition["to"] == "cart"
    assert transition["event"]["element"]["testId"] == "cart-btn"
    assert transition["guard"]["type"] == "and"
    assert transition["guard"]["operands"][1]["op"] == ">"
    assert transition["action"] == {"variable": "visits", "by": 1, "type": "increment"}


def test_spec_round_trips_through_json():
    spec = _sample_spec()
    restored = Spec.from_json(spec.to_json())

    assert restored == spec
    assert restored.transitions[0].guard.operands[1].op is ComparisonOp.GT
    assert restored.states[0].provenance is Provenance.BOTH


def test_in_state_predicate_accepts_camel_case_key():
    assert predicate_from_dict({"type": "in_state", "stateId": "cart"}) == InStatePredicate("cart")


def test_unknown_predicate_and_action_tags_are_rejected():
    with pytest.raises(ValueError):
        predicate_from_dict({"type": "eventually"})
    with pytest.raises(ValueError):
        action_from_dict({"type": "teleport"})
