"""
Flow Analyzer

Asks a chat-completion model to infer a semantic state machine from recorded
sessions. Sessions are rendered as a readable timeline, the model answers
with an ``ExtractedSpec`` JSON document, and that document is converted into
a ``Spec``.

Unlike the merger, this pass can name semantic states (``cart_empty`` vs
``cart_with_items``) rather than one state per screen, at the cost of being
non-deterministic.
"""

import json
import logging
from typing import Any, Dict, Optional, Sequence

import openai

from ..core.session.types import (
    AppStateEvent,
    ElementInfo,
    ErrorEvent,
    InputEvent,
    NavigationEvent,
    NetworkEvent,
    ScrollEvent,
    Session,
    SessionEvent,
    SwipeEvent,
    TapEvent,
)
from ..core.spec.predicates import LiteralPredicate
from ..core.spec.types import (
    ElementRef,
    EventType,
    Property,
    PropertyType,
    Spec,
    State,
    Transition,
    TransitionEvent,
    Variable,
    VariableType,
    create_spec,
)
from ..utils.error_handler import AnalyzerResponseError, GremlinError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"
DEFAULT_MAX_TOKENS = 8192

DEFAULT_VARIABLE_VALUES = {
    VariableType.BOOLEAN: False,
    VariableType.NUMBER: 0,
    VariableType.STRING: "",
}

SYSTEM_PROMPT = (
    "You are an expert at analyzing user behavior data to infer application "
    "state machines. You answer with JSON only."
)

EXTRACTED_SPEC_SCHEMA = """interface ExtractedSpec {
  states: Array<{ id: string; name: string; description: string; isTerminal: boolean }>;
  transitions: Array<{
    id: string;
    from: string;       // state id
    to: string;         // state id
    event: string;      // e.g. "tap:checkout-btn"
    guard?: string;     // natural language condition
    frequency: number;  // how many sessions had this transition
  }>;
  initialState: string;
  variables: Array<{ name: string; type: "boolean" | "number" | "string"; description: string }>;
  properties: Array<{
    name: string;
    description: string;
    type: "invariant" | "never" | "eventually" | "leads_to";
  }>;
  insights: string[];
}"""


# ----------------------------------------------------------------------------
# Prompt construction
# ----------------------------------------------------------------------------

def _element_label(session: Session, index: Optional[int]) -> Optional[str]:
    if index is None or not 0 <= index < len(session.elements):
        return None
    element: ElementInfo = session.elements[index]
    name = element.test_id or element.accessibility_label or element.text or 'unknown'
    return f"{name} ({element.type})"


def format_event(session: Session, event: SessionEvent, elapsed_ms: float) -> str:
    """One timeline line for a recorded event."""
    time_str = f"[{elapsed_ms / 1000:.1f}s]"
    data = event.data

    if isinstance(data, TapEvent):
        target = _element_label(session, data.element_index) or f"({data.x}, {data.y})"
        return f"{time_str} {data.kind.upper()}: {target}"
    if isinstance(data, SwipeEvent):
        return f"{time_str} SWIPE: {data.direction} ({data.duration}ms)"
    if isinstance(data, ScrollEvent):
        return f"{time_str} SCROLL: deltaY={data.delta_y}"
    if isinstance(data, InputEvent):
        target = _element_label(session, data.element_index) or 'unknown'
        value = '***' if data.masked else data.value
        return f'{time_str} INPUT: {target} = "{value}"'
    if isinstance(data, NavigationEvent):
        return f"{time_str} NAVIGATE: {data.nav_type} → {data.screen}"
    if isinstance(data, NetworkEvent):
        return f"{time_str} NETWORK: {data.method} {data.url} ({data.phase})"
    if isinstance(data, ErrorEvent):
        return f"{time_str} ERROR: {data.message}"
    if isinstance(data, AppStateEvent):
        return f"{time_str} APP_STATE: {data.state}"
    return f"{time_str} {getattr(data, 'kind', None) or 'event'}".rstrip()


def format_sessions_for_prompt(sessions: Sequence[Session]) -> str:
    """Render sessions as numbered, timestamped event timelines."""
    lines = []

    for number, session in enumerate(sessions, start=1):
        header = session.header
        lines.append(f"### Session {number}")
        lines.append(f"Device: {header.device.platform} {header.device.os_version}".rstrip())
        lines.append(f"App: {header.app.name} v{header.app.version}")
        lines.append("")
        lines.append("Events:")

        elapsed = 0.0
        for event in session.events:
            elapsed += event.dt
            lines.append(f"  {format_event(session, event, elapsed)}")

        lines.append("")

    return "\n".join(lines)


def build_extraction_prompt(sessions_text: str) -> str:
    """Full user prompt asking for an ``ExtractedSpec`` JSON document."""
    return f"""Given the following user session recordings, extract a formal state machine specification.

## Sessions Data

{sessions_text}

## Your Task

1. **States**: identify meaningful application states. Prefer semantic states
   (e.g. "cart_empty" vs "cart_with_items") over one state per screen.
2. **Transitions**: the trigger event (tap, input, navigation), source and
   destination states, and any guard condition.
3. **Initial State**: the state the app starts in.
4. **Variables**: values that track state (e.g. isLoggedIn, cartItemCount).
5. **Properties**: invariants in natural language, e.g. "Cannot checkout with
   an empty cart".

## Output Format

Respond with a JSON object matching this TypeScript interface:

```typescript
{EXTRACTED_SPEC_SCHEMA}
```

Capture the general behavior model rather than over-fitting to these exact
sessions. Output ONLY the JSON, no other text."""


# ----------------------------------------------------------------------------
# Response parsing
# ----------------------------------------------------------------------------

def parse_ai_response(response_text: str) -> Dict[str, Any]:
    """
    Parse model output into an ``ExtractedSpec`` dictionary.

    Markdown code fences around the JSON are removed.

    Raises:
        AnalyzerResponseError: if the text is not a JSON object
    """
    cleaned_text = (response_text or "").strip()

    if cleaned_text.startswith('```json'):
        cleaned_text = cleaned_text[7:]
    elif cleaned_text.startswith('```'):
        cleaned_text = cleaned_text[3:]
    if cleaned_text.endswith('```'):
        cleaned_text = cleaned_text[:-3]
    cleaned_text = cleaned_text.strip()

    try:
        data = json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        logger.error(f"Response text: {cleaned_text[:500]}...")
        raise AnalyzerResponseError(f"Failed to parse analyzer response as JSON: {e}") from e

    if not isinstance(data, dict):
        raise AnalyzerResponseError(f"Expected a JSON object, got {type(data).__name__}")

    return data


def parse_event(event_str: str) -> TransitionEvent:
    """
    Parse an event string such as ``tap:checkout-btn``.

    The target becomes a test-id element, except for navigation events where
    it names the destination screen. Unknown event types are read as taps.
    """
    event_type_str, _, target = (event_str or "").partition(":")

    try:
        event_type = EventType(event_type_str.strip().lower())
    except ValueError:
        logger.debug(f"Unknown event type '{event_type_str}', treating as tap")
        event_type = EventType.TAP

    target = target.strip()
    if event_type is EventType.NAVIGATION:
        return TransitionEvent(type=event_type, data={'screen': target} if target else None)
    return TransitionEvent(type=event_type, element=ElementRef(test_id=target) if target else None)


def _enum_or_default(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


def convert_to_spec(extracted: Dict[str, Any], app_name: str, platform: str,
                    session_count: int) -> Spec:
    """
    Convert an ``ExtractedSpec`` dictionary into a ``Spec``.

    Guards are kept as literal ``true`` predicates (the natural-language text
    is not parsed). Variables start at their type's default value.
    """
    spec = create_spec(app_name, platform)
    spec.metadata.session_count = session_count

    for raw in extracted.get('states') or []:
        if not isinstance(raw, dict) or not raw.get('id'):
            logger.warning(f"⚠️ Skipping analyzer state without id: {raw!r}")
            continue
        spec.states.append(State(
            id=str(raw['id']),
            name=str(raw.get('name') or raw['id']),
            description=raw.get('description'),
        ))

    for index, raw in enumerate(extracted.get('transitions') or []):
        if not isinstance(raw, dict) or not raw.get('from') or not raw.get('to'):
            logger.warning(f"⚠️ Skipping analyzer transition without endpoints: {raw!r}")
            continue
        spec.transitions.append(Transition(
            id=f"t{index}",
            from_state=str(raw['from']),
            to_state=str(raw['to']),
            event=parse_event(raw.get('event', '')),
            guard=LiteralPredicate(value=True) if raw.get('guard') else None,
            frequency=int(raw.get('frequency') or 0),
        ))

    for index, raw in enumerate(extracted.get('variables') or []):
        if not isinstance(raw, dict) or not raw.get('name'):
            continue
        variable_type = _enum_or_default(VariableType, raw.get('type'), VariableType.STRING)
        spec.variables.append(Variable(
            id=f"var_{index}",
            name=raw['name'],
            type=variable_type,
            initial_value=DEFAULT_VARIABLE_VALUES.get(variable_type),
            description=raw.get('description'),
        ))

    for index, raw in enumerate(extracted.get('properties') or []):
        if not isinstance(raw, dict) or not raw.get('name'):
            continue
        spec.properties.append(Property(
            id=f"prop_{index}",
            name=raw['name'],
            natural_language=raw.get('description', ''),
            type=_enum_or_default(PropertyType, raw.get('type'), PropertyType.INVARIANT),
            predicate=LiteralPredicate(value=True),
        ))

    initial_state = extracted.get('initialState')
    if initial_state:
        spec.initial_state = str(initial_state)
    elif spec.states:
        spec.initial_state = spec.states[0].id

    for insight in extracted.get('insights') or []:
        logger.info(f"💡 {insight}")

    return spec


# ----------------------------------------------------------------------------
# Analyzer
# ----------------------------------------------------------------------------

class FlowAnalyzer:
    """Extracts a spec from sessions with an OpenAI chat-completion model."""

    def __init__(self, api_key: Optional[str] = None, model: str = DEFAULT_MODEL,
                 max_tokens: int = DEFAULT_MAX_TOKENS, client: Any = None):
        """
        Initialize the analyzer.

        Args:
            api_key: OpenAI API key, used when no client is given
            model: Chat-completion model name
            max_tokens: Completion token limit
            client: Pre-built client exposing ``chat.completions.create``
        """
        if client is None:
            if not api_key:
                raise GremlinError("OPENAI_API_KEY is required for flow analysis")
            client = openai.OpenAI(api_key=api_key)
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    def analyze_flows(self, sessions: Sequence[Session], app_name: str = "app",
                      platform: str = "cross-platform") -> Spec:
        """
        Infer a spec from recorded sessions.

        Raises:
            GremlinError: if the completion request fails
            AnalyzerResponseError: if the response is empty or not valid JSON
        """
        logger.info(f"🧠 Analyzing {len(sessions)} sessions with {self.model}...")
        prompt = build_extraction_prompt(format_sessions_for_prompt(sessions))

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.2,
                max_tokens=self.max_tokens,
            )
        except openai.OpenAIError as e:
            logger.error(f"❌ Flow analysis request failed: {e}")
            raise GremlinError(f"Flow analysis request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AnalyzerResponseError("Analyzer returned an empty response")

        spec = convert_to_spec(parse_ai_response(content), app_name, platform, len(sessions))
        logger.info(
            f"✅ Extracted {len(spec.states)} states and {len(spec.transitions)} transitions"
        )
        return spec


def analyze_flows(sessions: Sequence[Session], api_key: Optional[str] = None,
                  app_name: str = "app", platform: str = "cross-platform",
                  model: str = DEFAULT_MODEL, client: Any = None) -> Spec:
    """Infer a spec from sessions (see ``FlowAnalyzer.analyze_flows``)."""
    return FlowAnalyzer(api_key=api_key, model=model, client=client).analyze_flows(
        sessions, app_name=app_name, platform=platform
    )
