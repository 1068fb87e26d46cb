"""
Spec Model

Canonical data types for the inferred state machine ("spec"): states,
transitions, variables and properties, plus the provenance lattice used when
routes and sessions are merged. Pure data; the analysis package owns the
behaviour.

All types serialise with dataclasses-json using camelCase keys so the
persisted spec matches the JSON consumed by the test emitters.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

from dataclasses_json import LetterCase, config, dataclass_json

from .predicates import (
    Action,
    Predicate,
    action_from_dict,
    predicate_from_dict,
    predicates_from_list,
)


SCHEMA_VERSION = 1


class Provenance(Enum):
    """Where a state or transition was discovered."""
    AST = "ast"
    SESSION = "session"
    BOTH = "both"

    def join(self, other: 'Provenance') -> 'Provenance':
        """
        Least upper bound on the lattice AST, SESSION < BOTH.

        Commutative, associative and idempotent, so folding observations in
        any order gives the same result.
        """
        if self is other:
            return self
        return Provenance.BOTH


class EventType(Enum):
    """Event that can trigger a transition."""
    TAP = "tap"
    DOUBLE_TAP = "double_tap"
    LONG_PRESS = "long_press"
    SWIPE = "swipe"
    SCROLL = "scroll"
    INPUT = "input"
    SUBMIT = "submit"
    NAVIGATION = "navigation"
    BACK = "back"
    APP_BACKGROUND = "app_background"
    APP_FOREGROUND = "app_foreground"
    NETWORK_RESPONSE = "network_response"
    TIMEOUT = "timeout"


class VariableType(Enum):
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


class PropertyType(Enum):
    INVARIANT = "invariant"
    EVENTUALLY = "eventually"
    ALWAYS = "always"
    NEVER = "never"
    LEADS_TO = "leads_to"


class TransitionKey(NamedTuple):
    """
    Deduplication key for transitions: the ordered pair of normalized
    screen names. Tuple equality avoids collisions between names that
    contain a joining substring such as ``->``.
    """
    from_screen: str
    to_screen: str

    def as_id(self) -> str:
        return f"{self.from_screen}->{self.to_screen}"


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class ElementRef:
    """Reference to a UI element, most specific identifier first."""
    test_id: Optional[str] = None
    accessibility_label: Optional[str] = None
    text: Optional[str] = None
    type: Optional[str] = None
    css_selector: Optional[str] = None
    xpath: Optional[str] = None
    coordinates: Optional[Dict[str, float]] = None

    def describe(self) -> Optional[str]:
        """Return the best available identifier for this element."""
        for candidate in (self.test_id, self.accessibility_label, self.text,
                          self.css_selector, self.xpath):
            if candidate:
                return candidate
        return None


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class TransitionEvent:
    type: EventType
    element: Optional[ElementRef] = None
    data: Optional[Dict[str, Any]] = None


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Variable:
    id: str
    name: str
    type: VariableType
    initial_value: Any = None
    description: Optional[str] = None


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Property:
    id: str
    name: str
    natural_language: str
    type: PropertyType
    predicate: Predicate = field(metadata=config(decoder=predicate_from_dict))
    verified: Optional[bool] = None
    counterexample: Optional[List[str]] = None


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class StateMetadata:
    source: Provenance
    route: Optional[str] = None
    params: Optional[List[str]] = None


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class State:
    """A semantic application state, usually one screen."""
    id: str
    name: str
    description: Optional[str] = None
    invariants: List[Predicate] = field(
        default_factory=list,
        metadata=config(decoder=predicates_from_list),
    )
    observed_count: int = 0
    avg_duration: Optional[float] = None
    metadata: Optional[StateMetadata] = None

    @property
    def provenance(self) -> Optional[Provenance]:
        return self.metadata.source if self.metadata else None


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class TransitionMetadata:
    source: Provenance


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Transition:
    """Directed edge between two state ids, labelled with its trigger."""
    id: str
    from_state: str = field(metadata=config(field_name="from"))
    to_state: str = field(metadata=config(field_name="to"))
    event: TransitionEvent
    guard: Optional[Predicate] = field(
        default=None,
        metadata=config(decoder=predicate_from_dict),
    )
    action: Optional[Action] = field(
        default=None,
        metadata=config(decoder=action_from_dict),
    )
    frequency: int = 0
    avg_duration: Optional[float] = None
    metadata: Optional[TransitionMetadata] = None

    @property
    def provenance(self) -> Optional[Provenance]:
        return self.metadata.source if self.metadata else None


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class SpecMetadata:
    created_at: str
    updated_at: str
    session_count: int = 0
    platform: str = "cross-platform"
    app_versions: List[str] = field(default_factory=list)


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Spec:
    """The inferred state machine for one application."""
    name: str
    metadata: SpecMetadata
    schema_version: int = SCHEMA_VERSION
    variables: List[Variable] = field(default_factory=list)
    states: List[State] = field(default_factory=list)
    initial_state: str = "initial"
    transitions: List[Transition] = field(default_factory=list)
    properties: List[Property] = field(default_factory=list)

    def get_state(self, state_id: str) -> Optional[State]:
        for state in self.states:
            if state.id == state_id:
                return state
        return None

    def state_index(self) -> Dict[str, State]:
        return {state.id: state for state in self.states}

    def outgoing(self, state_id: str) -> List[Transition]:
        """Transitions leaving ``state_id``, in spec order."""
        return [t for t in self.transitions if t.from_state == state_id]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_spec(name: str, platform: str = "cross-platform") -> Spec:
    """Create an empty spec with fresh timestamps."""
    now = utc_now_iso()
    return Spec(
        name=name,
        metadata=SpecMetadata(created_at=now, updated_at=now, platform=platform),
    )


def create_state(state_id: str, name: str) -> State:
    return State(id=state_id, name=name)


def create_transition(transition_id: str, from_state: str, to_state: str,
                      event: TransitionEvent) -> Transition:
    return Transition(id=transition_id, from_state=from_state, to_state=to_state, event=event)
