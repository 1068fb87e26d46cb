"""
Fuzz Test Generation

Generates chaos tests from a merged spec to stress the inferred state
machine. Five strategies are available:

- random_walk: plausible but unplanned traversals
- boundary_abuse: adversarial strings against an input element
- sequence_mutation: a common flow with one perturbation
- back_button_chaos: forward navigation followed by history pops
- rapid_fire: the most frequent action repeated in quick succession

All randomness comes from one ``random.Random`` created per ``generate()``
call and passed to every strategy, so the same (spec, options, seed) always
yields identical tests.
"""

import logging
import math
import random
import string
from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from dataclasses_json import LetterCase, dataclass_json

from ..config.analysis import FuzzConfig
from ..core.spec.types import ElementRef, EventType, Spec, State, Transition

logger = logging.getLogger(__name__)


class FuzzStrategy(Enum):
    """Supported fuzzing strategies."""
    RANDOM_WALK = "random_walk"
    BOUNDARY_ABUSE = "boundary_abuse"
    SEQUENCE_MUTATION = "sequence_mutation"
    BACK_BUTTON_CHAOS = "back_button_chaos"
    RAPID_FIRE = "rapid_fire"


class StepType(Enum):
    """Action performed by one fuzz step."""
    TAP = "tap"
    DOUBLE_TAP = "double_tap"
    LONG_PRESS = "long_press"
    SWIPE = "swipe"
    SCROLL = "scroll"
    INPUT = "input"
    SUBMIT = "submit"
    NAVIGATE = "navigate"
    BACK = "back"
    WAIT = "wait"
    UNHANDLED = "unhandled"


UNHANDLED_NAVIGATION = "unhandled: requires manual navigation wiring"
PLACEHOLDER_INPUT_TARGET = "input-placeholder"
NAME_ALPHABET = string.ascii_lowercase + string.digits

STEP_TYPE_BY_EVENT = {
    EventType.TAP: StepType.TAP,
    EventType.DOUBLE_TAP: StepType.DOUBLE_TAP,
    EventType.LONG_PRESS: StepType.LONG_PRESS,
    EventType.SWIPE: StepType.SWIPE,
    EventType.SCROLL: StepType.SCROLL,
    EventType.INPUT: StepType.INPUT,
    EventType.SUBMIT: StepType.SUBMIT,
    EventType.BACK: StepType.BACK,
}

# Events that can be replayed without knowing which element fired them
ELEMENTLESS_EVENTS = {EventType.SWIPE, EventType.SCROLL, EventType.BACK}

# (label, payload) pairs used by boundary_abuse
ADVERSARIAL_INPUTS: List[Tuple[str, str]] = [
    ("script injection", '<script>alert("xss")</script>'),
    ("image onerror injection", '<img src=x onerror=alert(1)>'),
    ("javascript URL", "javascript:alert(1)"),
    ("SQL injection", "'; DROP TABLE users; --"),
    ("SQL tautology", "' OR '1'='1"),
    ("null byte", "\u0000"),
    ("encoded null byte", "%00"),
    ("empty string", ""),
    ("whitespace only", "   "),
    ("tabs only", "\t\t\t"),
    ("right-to-left override", "\u202e"),
    ("zero-width joiner", "a\u200db"),
    ("template injection", "{{7*7}}"),
    ("expression injection", "${7*7}"),
    ("multiline string", "line one\nline two\nline three"),
    ("CRLF injection", "\r\n\r\n"),
    ("path traversal", "../../../etc/passwd"),
    ("very long string", "A" * 10000),
    ("unicode text", "你好世界 א ב ג"),
    ("emoji", "🔥💩🎉👻🤖"),
]

ADVERSARIAL_STRINGS = tuple(value for _, value in ADVERSARIAL_INPUTS)

BUG_CATEGORIES = {
    FuzzStrategy.RANDOM_WALK: ["state machine violations", "unexpected crashes"],
    FuzzStrategy.BOUNDARY_ABUSE: [
        "input validation", "XSS", "injection", "buffer overflow", "unicode handling",
    ],
    FuzzStrategy.SEQUENCE_MUTATION: [
        "race conditions", "state machine violations", "missing validation",
    ],
    FuzzStrategy.BACK_BUTTON_CHAOS: [
        "navigation bugs", "history management", "state restoration",
    ],
    FuzzStrategy.RAPID_FIRE: ["race conditions", "double submission", "debounce bugs"],
}


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class FuzzStep:
    """Individual fuzz step."""
    type: StepType
    description: str = ""
    target: Optional[str] = None
    value: Optional[str] = None
    comment: Optional[str] = None
    state: Optional[str] = None
    transition: Optional[str] = None
    element: Optional[ElementRef] = None
    delay_ms: Optional[int] = None


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class FuzzTest:
    """Complete fuzz test definition."""
    name: str
    strategy: FuzzStrategy
    description: str
    steps: List[FuzzStep] = field(default_factory=list)
    expected_outcome: str = "unknown"  # pass, fail, unknown
    bug_categories: List[str] = field(default_factory=list)


@dataclass
class FuzzOptions:
    """Options for one fuzz generation run."""
    num_tests: int = 10
    strategies: Optional[Sequence[Union[str, FuzzStrategy]]] = None
    seed: Optional[int] = None
    include_comments: bool = True
    base_url: str = "http://localhost:3000"
    config: FuzzConfig = field(default_factory=FuzzConfig)


def resolve_strategies(names: Optional[Sequence[Union[str, FuzzStrategy]]]) -> List[FuzzStrategy]:
    """
    Map requested strategy names to strategies, preserving order.

    ``None`` or an empty list selects every strategy. Any unknown name makes
    the whole request fall back to every strategy.
    """
    if not names:
        return list(FuzzStrategy)

    resolved: List[FuzzStrategy] = []
    for name in names:
        try:
            strategy = name if isinstance(name, FuzzStrategy) else FuzzStrategy(name)
        except ValueError:
            logger.warning(f"⚠️ Unknown fuzz strategy '{name}', falling back to all strategies")
            return list(FuzzStrategy)
        if strategy not in resolved:
            resolved.append(strategy)

    return resolved


class FuzzTestGenerator:
    """
    Generate fuzz tests from a spec.

    The seed is fixed when the generator is created (drawn and logged if the
    options do not carry one); every ``generate()`` call starts a fresh
    ``random.Random`` from it.
    """

    def __init__(self, spec: Spec, options: Optional[FuzzOptions] = None):
        self.spec = spec
        self.options = options or FuzzOptions()
        self.config = self.options.config

        if self.options.seed is None:
            self.seed = random.SystemRandom().randrange(2 ** 32)
            logger.info(f"🎲 No fuzz seed given, using seed {self.seed}")
        else:
            self.seed = self.options.seed

        self._strategies: Dict[FuzzStrategy, Callable[[random.Random], FuzzTest]] = {
            FuzzStrategy.RANDOM_WALK: self._random_walk,
            FuzzStrategy.BOUNDARY_ABUSE: self._boundary_abuse,
            FuzzStrategy.SEQUENCE_MUTATION: self._sequence_mutation,
            FuzzStrategy.BACK_BUTTON_CHAOS: self._back_button_chaos,
            FuzzStrategy.RAPID_FIRE: self._rapid_fire,
        }

    def generate(self) -> List[FuzzTest]:
        """
        Generate fuzz tests.

        Tests are split across the viable requested strategies in order,
        ``ceil(num_tests / len(viable))`` each until ``num_tests`` is reached.

        Returns:
            The generated tests; empty when the spec supports no strategy
        """
        rng = random.Random(self.seed)
        requested = resolve_strategies(self.options.strategies)

        viable = []
        for strategy in requested:
            if self.is_viable(strategy):
                viable.append(strategy)
            else:
                logger.warning(f"⚠️ Strategy {strategy.value} is not viable for spec '{self.spec.name}', skipping")

        if not viable:
            logger.warning(f"⚠️ No viable fuzz strategies for spec '{self.spec.name}'")
            return []

        num_tests = max(self.options.num_tests, 0)
        per_strategy = math.ceil(num_tests / len(viable))
        tests: List[FuzzTest] = []
        used_names: set = set()

        for strategy in viable:
            count = min(per_strategy, num_tests - len(tests))
            for _ in range(count):
                test = self._strategies[strategy](rng)
                test.name = self._unique_name(strategy, rng, used_names)
                tests.append(test)

        if not self.options.include_comments:
            for test in tests:
                self._strip_comments(test)

        logger.info(
            f"✅ Generated {len(tests)} fuzz tests "
            f"({', '.join(s.value for s in viable)}) with seed {self.seed}"
        )
        return tests

    def is_viable(self, strategy: FuzzStrategy) -> bool:
        """Whether the spec has enough structure for ``strategy``."""
        if strategy is FuzzStrategy.SEQUENCE_MUTATION:
            return bool(self.spec.outgoing(self._initial_state_id()))
        if strategy is FuzzStrategy.RAPID_FIRE:
            return bool(self.spec.transitions)
        return bool(self.spec.states)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _random_walk(self, rng: random.Random) -> FuzzTest:
        steps: List[FuzzStep] = []
        current = self._initial_state_id()
        step_count = rng.randint(*self.config.walk_steps)

        for _ in range(step_count):
            outgoing = self.spec.outgoing(current)
            if not outgoing or rng.random() < self.config.navigate_probability:
                state = rng.choice(self.spec.states)
                steps.append(self._navigate_step(state))
                current = state.id
                continue

            transition = rng.choice(outgoing)
            steps.append(self._transition_step(
                transition, f"Random action: {transition.event.type.value}"
            ))
            current = transition.to_state

        return FuzzTest(
            name="",
            strategy=FuzzStrategy.RANDOM_WALK,
            description=f"Random walk through the state machine with {len(steps)} steps",
            steps=steps,
            expected_outcome="pass",
            bug_categories=list(BUG_CATEGORIES[FuzzStrategy.RANDOM_WALK]),
        )

    def _boundary_abuse(self, rng: random.Random) -> FuzzTest:
        element = self._first_input_element()
        target = element.describe() if element else None
        comment = None
        if not target:
            target = PLACEHOLDER_INPUT_TARGET
            comment = "placeholder target: no input element recorded"

        sample_size = min(self.config.boundary_inputs, len(ADVERSARIAL_INPUTS))
        steps: List[FuzzStep] = []
        for label, payload in rng.sample(ADVERSARIAL_INPUTS, sample_size):
            steps.append(FuzzStep(
                type=StepType.INPUT,
                description=f"Adversarial input: {label}",
                target=target,
                value=payload,
                comment=comment,
                element=element,
            ))
            steps.append(FuzzStep(
                type=StepType.SUBMIT,
                description="Submit adversarial input",
                target=target,
                element=element,
            ))

        return FuzzTest(
            name="",
            strategy=FuzzStrategy.BOUNDARY_ABUSE,
            description=f"Input validation with {sample_size} adversarial strings against {target}",
            steps=steps,
            bug_categories=list(BUG_CATEGORIES[FuzzStrategy.BOUNDARY_ABUSE]),
        )

    def _sequence_mutation(self, rng: random.Random) -> FuzzTest:
        flow = self.common_flow()
        steps = [self._transition_step(t, f"Execute {t.event.type.value}") for t in flow]

        mutations = ["duplicate", "substitute"]
        if len(steps) > 1:
            mutations = ["delete", "duplicate", "swap", "substitute"]
        mutation = rng.choice(mutations)

        if mutation == "delete":
            index = rng.randrange(len(steps))
            del steps[index]
        elif mutation == "duplicate":
            index = rng.randrange(len(steps))
            steps.insert(index + 1, replace(steps[index], comment="mutation: duplicated step"))
        elif mutation == "swap":
            first, second = sorted(rng.sample(range(len(steps)), 2))
            steps[first], steps[second] = steps[second], steps[first]
        else:
            index = rng.randrange(len(steps))
            steps[index] = self._unrelated_step(flow, rng)

        return FuzzTest(
            name="",
            strategy=FuzzStrategy.SEQUENCE_MUTATION,
            description=f"Common flow of {len(flow)} steps with one mutation: {mutation}",
            steps=steps,
            bug_categories=list(BUG_CATEGORIES[FuzzStrategy.SEQUENCE_MUTATION]),
        )

    def _back_button_chaos(self, rng: random.Random) -> FuzzTest:
        steps: List[FuzzStep] = []
        current = self._initial_state_id()
        forward = rng.randint(*self.config.back_prefix_steps)

        for _ in range(forward):
            outgoing = self.spec.outgoing(current)
            if not outgoing:
                state = rng.choice(self.spec.states)
                steps.append(self._navigate_step(state))
                current = state.id
                continue

            transition = rng.choice(outgoing)
            steps.append(self._transition_step(
                transition, f"Navigate forward: {transition.event.type.value}"
            ))
            current = transition.to_state

        presses = rng.randint(*self.config.back_presses)
        for press in range(presses):
            steps.append(FuzzStep(
                type=StepType.BACK,
                description=f"Press back button ({press + 1}/{presses})",
            ))

        return FuzzTest(
            name="",
            strategy=FuzzStrategy.BACK_BUTTON_CHAOS,
            description=f"Navigate forward {forward} steps then press back {presses} times",
            steps=steps,
            bug_categories=list(BUG_CATEGORIES[FuzzStrategy.BACK_BUTTON_CHAOS]),
        )

    def _rapid_fire(self, rng: random.Random) -> FuzzTest:
        # max() keeps the first transition among equal frequencies
        target = max(self.spec.transitions, key=lambda t: t.frequency)

        steps = [
            self._transition_step(t, f"Navigate to {self._state_name(t.to_state)}")
            for t in self.path_to(self._initial_state_id(), target.from_state)
        ]

        clicks = rng.randint(*self.config.rapid_clicks)
        for click in range(clicks):
            step = self._transition_step(target, f"Rapid repeat {click + 1}/{clicks}")
            step.delay_ms = self.config.rapid_delay_ms
            steps.append(step)

        return FuzzTest(
            name="",
            strategy=FuzzStrategy.RAPID_FIRE,
            description=f"Trigger {target.id} {clicks} times in quick succession",
            steps=steps,
            bug_categories=list(BUG_CATEGORIES[FuzzStrategy.RAPID_FIRE]),
        )

    # ------------------------------------------------------------------
    # Graph helpers
    # ------------------------------------------------------------------

    def common_flow(self) -> List[Transition]:
        """
        Greedy most-frequent path from the initial state.

        Follows the highest-frequency unused outgoing transition (spec order
        breaks ties) until a dead end or the configured length.
        """
        ranked = sorted(self.spec.transitions, key=lambda t: t.frequency, reverse=True)
        flow: List[Transition] = []
        used_ids = set()
        current = self._initial_state_id()

        while len(flow) < self.config.max_flow_length:
            candidates = [t for t in ranked if t.from_state == current and t.id not in used_ids]
            if not candidates:
                break
            transition = candidates[0]
            flow.append(transition)
            used_ids.add(transition.id)
            current = transition.to_state

        return flow

    def path_to(self, source: str, destination: str) -> List[Transition]:
        """Shortest transition path by BFS, or [] when unreachable or equal."""
        if source == destination:
            return []

        queue = deque([(source, [])])
        visited = {source}
        while queue:
            state_id, path = queue.popleft()
            for transition in self.spec.outgoing(state_id):
                if transition.to_state in visited:
                    continue
                next_path = path + [transition]
                if transition.to_state == destination:
                    return next_path
                visited.add(transition.to_state)
                queue.append((transition.to_state, next_path))

        return []

    def _initial_state_id(self) -> str:
        if self.spec.get_state(self.spec.initial_state) is None and self.spec.states:
            return self.spec.states[0].id
        return self.spec.initial_state

    def _state_name(self, state_id: str) -> str:
        state = self.spec.get_state(state_id)
        return state.name if state else state_id

    def _first_input_element(self) -> Optional[ElementRef]:
        for transition in self.spec.transitions:
            if transition.event.type is EventType.INPUT and transition.event.element is not None:
                return transition.event.element
        return None

    # ------------------------------------------------------------------
    # Step construction
    # ------------------------------------------------------------------

    def _transition_step(self, transition: Transition, description: str) -> FuzzStep:
        """Convert a spec transition into a replayable step."""
        event = transition.event
        element = event.element
        target = element.describe() if element else None
        value = None
        if event.data and isinstance(event.data.get("value"), str):
            value = event.data["value"]

        step = FuzzStep(
            type=StepType.UNHANDLED,
            description=description,
            target=target,
            value=value,
            state=transition.from_state,
            transition=transition.id,
            element=element,
        )

        if event.type is EventType.NAVIGATION:
            if target:
                # A recorded element that caused navigation is replayed as a tap
                step.type = StepType.TAP
            else:
                step.comment = UNHANDLED_NAVIGATION
            return step

        step_type = STEP_TYPE_BY_EVENT.get(event.type)
        if step_type is None:
            step.comment = f"unhandled: {event.type.value} events cannot be replayed"
        elif not target and event.type not in ELEMENTLESS_EVENTS:
            step.comment = f"unhandled: no element recorded for {event.type.value}"
        else:
            step.type = step_type

        return step

    def _navigate_step(self, state: State) -> FuzzStep:
        return FuzzStep(
            type=StepType.NAVIGATE,
            description=f"Jump to {state.name} without a recorded trigger",
            state=state.id,
            comment="synthetic navigation for uninstrumented screens",
        )

    def _unrelated_step(self, flow: List[Transition], rng: random.Random) -> FuzzStep:
        flow_ids = {t.id for t in flow}
        others = [t for t in self.spec.transitions if t.id not in flow_ids]
        if others:
            step = self._transition_step(rng.choice(others), "Substituted unrelated action")
        else:
            step = FuzzStep(type=StepType.BACK, description="Substituted back navigation")
        if step.type is not StepType.UNHANDLED:
            step.comment = "mutation: substituted step"
        return step

    def _unique_name(self, strategy: FuzzStrategy, rng: random.Random, used: set) -> str:
        while True:
            suffix = "".join(rng.choice(NAME_ALPHABET) for _ in range(self.config.name_suffix_length))
            name = f"{strategy.value}_{suffix}"
            if name not in used:
                used.add(name)
                return name

    @staticmethod
    def _strip_comments(test: FuzzTest):
        for step in test.steps:
            if step.comment and not step.comment.startswith("unhandled:"):
                step.comment = None


def generate_fuzz_tests(spec: Spec, options: Optional[FuzzOptions] = None) -> List[FuzzTest]:
    """Generate fuzz tests for a spec (see ``FuzzTestGenerator.generate``)."""
    return FuzzTestGenerator(spec, options).generate()
