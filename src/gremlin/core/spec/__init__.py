"""
Spec Model Package

State machine types, provenance lattice and predicate/action expressions.
"""

from .types import (
    SCHEMA_VERSION,
    ElementRef,
    EventType,
    Property,
    PropertyType,
    Provenance,
    Spec,
    SpecMetadata,
    State,
    StateMetadata,
    Transition,
    TransitionEvent,
    TransitionKey,
    TransitionMetadata,
    Variable,
    VariableType,
    create_spec,
    create_state,
    create_transition,
)
from .predicates import (
    ComparisonOp,
    LiteralPredicate,
    predicate_from_dict,
    action_from_dict,
)

__all__ = [
    'SCHEMA_VERSION', 'ElementRef', 'EventType', 'Property', 'PropertyType',
    'Provenance', 'Spec', 'SpecMetadata', 'State', 'StateMetadata',
    'Transition', 'TransitionEvent', 'TransitionKey', 'TransitionMetadata',
    'Variable', 'VariableType', 'create_spec', 'create_state',
    'create_transition', 'ComparisonOp', 'LiteralPredicate',
    'predicate_from_dict', 'action_from_dict',
]
