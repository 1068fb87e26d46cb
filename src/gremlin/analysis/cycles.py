"""
Cycle Detector

Finds contiguous, exactly repeating runs of screens in each session's
navigation trace (e.g. ``home -> products -> home -> products``) and
aggregates them across sessions into named cycle patterns.

This is a pattern-repeat detector over the observed linear trace, not a
cycle search over the transition graph.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union

from dataclasses_json import LetterCase, dataclass_json

from ..config.analysis import CycleDetectorConfig
from ..core.session.types import ErrorEvent, NavigationEvent, Session, parse_session
from ..utils.error_handler import IssueLog
from .normalizer import normalize_screen_name

logger = logging.getLogger(__name__)


class CycleType(Enum):
    NAVIGATION = "navigation"
    STATE = "state"
    ERROR = "error"


class CycleClassification(Enum):
    NORMAL = "normal"
    SUSPICIOUS = "suspicious"
    BUG = "bug"


CLASSIFICATION_BY_TYPE = {
    CycleType.NAVIGATION: CycleClassification.NORMAL,
    CycleType.STATE: CycleClassification.SUSPICIOUS,
    CycleType.ERROR: CycleClassification.BUG,
}


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class CycleInfo:
    """A repeating navigation pattern aggregated across sessions."""
    type: CycleType
    path: List[str]
    frequency: int
    avg_iterations: float
    max_iterations: int
    classification: CycleClassification
    session_ids: List[str] = field(default_factory=list)
    example_timestamps: List[float] = field(default_factory=list)


@dataclass
class CycleOccurrence:
    """One detected repetition inside one session."""
    path: Tuple[str, ...]
    iterations: int
    session_id: str
    timestamp: float
    has_errors: bool


@dataclass
class NavigationTrace:
    """Normalized screens of one session with their timestamps."""
    screens: List[str] = field(default_factory=list)
    timestamps: List[float] = field(default_factory=list)
    error_screens: Set[str] = field(default_factory=set)


class CycleDetector:
    """
    Detect repeating navigation patterns in recorded sessions.

    Pattern lengths and the repetition threshold come from
    ``CycleDetectorConfig`` and are heuristics.
    """

    def __init__(self, config: Optional[CycleDetectorConfig] = None):
        self.config = config or CycleDetectorConfig()
        self.issues = IssueLog()

    def detect(self, sessions: Sequence[Union[Session, Dict[str, Any]]]) -> List[CycleInfo]:
        """
        Detect cycles across sessions.

        Args:
            sessions: Recorded sessions (``Session`` or recorder JSON); only
                navigation and error events are read

        Returns:
            Cycle patterns, most frequent first
        """
        self.issues = IssueLog()
        groups: Dict[Tuple[str, ...], List[CycleOccurrence]] = {}

        for index, session in enumerate(sessions):
            if not isinstance(session, Session):
                try:
                    session = parse_session(session)
                except (AttributeError, TypeError, ValueError) as e:
                    self.issues.record('malformed_session', str(e), f"session #{index}")
                    continue
            for occurrence in self.detect_in_session(session):
                groups.setdefault(occurrence.path, []).append(occurrence)

        cycles = [self._aggregate(path, group) for path, group in groups.items()]
        cycles.sort(key=lambda c: c.frequency, reverse=True)

        logger.info(f"🔁 Detected {len(cycles)} cycle patterns in {len(sessions)} sessions")
        return cycles

    def detect_in_session(self, session: Session) -> List[CycleOccurrence]:
        """Find repeating runs in one session's trace."""
        trace = build_navigation_trace(session)
        screens = trace.screens
        occurrences = []

        start = 0
        while start < len(screens):
            match = self.find_repetition(screens, start)
            if match is None:
                start += 1
                continue

            pattern, iterations = match
            occurrences.append(CycleOccurrence(
                path=pattern,
                iterations=iterations,
                session_id=session.header.session_id,
                timestamp=trace.timestamps[start],
                has_errors=any(screen in trace.error_screens for screen in pattern),
            ))
            # Skip the matched span so the same run is not reported again
            # from a shifted start
            start += len(pattern) * iterations

        return occurrences

    def find_repetition(self, screens: Sequence[str],
                        start: int) -> Optional[Tuple[Tuple[str, ...], int]]:
        """
        Smallest pattern starting at ``start`` that repeats back to back.

        Returns:
            ``(pattern, iterations)`` or None when no pattern length within
            the configured range repeats often enough
        """
        min_length = self.config.min_pattern_length
        max_length = self.config.max_pattern_length

        for length in range(min_length, max_length + 1):
            if start + length > len(screens):
                break

            pattern = tuple(screens[start:start + length])
            iterations = 1
            position = start + length
            while (position + length <= len(screens)
                   and tuple(screens[position:position + length]) == pattern):
                iterations += 1
                position += length

            if iterations >= self.config.min_repetitions:
                return pattern, iterations

        return None

    def _aggregate(self, path: Tuple[str, ...], group: List[CycleOccurrence]) -> CycleInfo:
        iterations = [o.iterations for o in group]
        avg_iterations = sum(iterations) / len(iterations) if iterations else 0.0
        cycle_type = classify_cycle(path, any(o.has_errors for o in group))

        return CycleInfo(
            type=cycle_type,
            path=list(path),
            frequency=len(group),
            avg_iterations=int(avg_iterations * 10 + 0.5) / 10,
            max_iterations=max(iterations) if iterations else 0,
            classification=CLASSIFICATION_BY_TYPE[cycle_type],
            session_ids=list(dict.fromkeys(o.session_id for o in group)),
            example_timestamps=[o.timestamp for o in group[:self.config.max_example_timestamps]],
        )


def build_navigation_trace(session: Session) -> NavigationTrace:
    """
    Ordered normalized screens of a session.

    A screen is an error screen when an error event follows a navigation to
    it before the next navigation.
    """
    trace = NavigationTrace()
    timestamp = session.header.start_time

    for event in session.events:
        timestamp += event.dt
        data = event.data

        if isinstance(data, NavigationEvent) and data.screen.strip():
            trace.screens.append(normalize_screen_name(data.screen))
            trace.timestamps.append(timestamp)
        elif isinstance(data, ErrorEvent) and trace.screens:
            trace.error_screens.add(trace.screens[-1])

    return trace


def classify_cycle(path: Sequence[str], has_errors: bool) -> CycleType:
    """
    Classify a cycle pattern, highest precedence first:
    errors seen -> ERROR; a screen repeated inside one copy -> STATE;
    otherwise NAVIGATION.
    """
    if has_errors:
        return CycleType.ERROR
    if len(set(path)) < len(path):
        return CycleType.STATE
    return CycleType.NAVIGATION


def detect_cycles(sessions: Sequence[Union[Session, Dict[str, Any]]],
                  config: Optional[CycleDetectorConfig] = None) -> List[CycleInfo]:
    """Detect cycles across sessions (see ``CycleDetector.detect``)."""
    return CycleDetector(config).detect(sessions)
