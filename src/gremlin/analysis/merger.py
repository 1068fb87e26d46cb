"""
Spec Merger

Combines statically discovered routes with navigation observed in recorded
sessions into one spec. Every state and transition carries its provenance
(``ast``, ``session`` or ``both``); states carry observation counts and
average dwell time, transitions carry observation frequency.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

from ..core.routes import Route
from ..core.session.types import (
    NavigationEvent,
    Session,
    UnrecognizedEvent,
    parse_session,
)
from ..core.spec.types import (
    EventType,
    Provenance,
    Spec,
    State,
    StateMetadata,
    Transition,
    TransitionEvent,
    TransitionKey,
    TransitionMetadata,
    create_spec,
    create_state,
    create_transition,
    utc_now_iso,
)
from ..utils.error_handler import IssueLog
from .normalizer import normalize_screen_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavigationObservation:
    """One observed change of screen inside a session."""
    from_screen: str
    to_screen: str
    timestamp: float
    session_id: str

    @property
    def key(self) -> TransitionKey:
        return TransitionKey(self.from_screen, self.to_screen)


class SpecMerger:
    """
    Merge AST routes and session data into a provenance-tagged spec.

    Each call to ``merge`` recomputes everything from its inputs; nothing
    accumulates across calls. Malformed records are skipped and recorded in
    ``self.issues``.
    """

    def __init__(self, platform: str = "cross-platform", app_name: str = "app"):
        self.platform = platform
        self.app_name = app_name
        self.issues = IssueLog()

        # Working maps, reset by merge()
        self._states: Dict[str, State] = {}
        self._transitions: Dict[TransitionKey, Transition] = {}
        self._transition_ids: Dict[str, TransitionKey] = {}
        self._observed_counts: Dict[str, int] = {}
        self._dwell_times: Dict[str, List[float]] = {}

    def merge(self, routes: Sequence[Union[Route, Dict[str, Any]]],
              sessions: Sequence[Union[Session, Dict[str, Any]]]) -> Spec:
        """
        Build a spec from routes and sessions.

        Args:
            routes: Statically discovered routes (``Route`` or extractor JSON)
            sessions: Recorded sessions (``Session`` or recorder JSON)

        Returns:
            A new spec; the caller owns it
        """
        self._reset()
        spec = create_spec(self.app_name, self.platform)

        parsed_routes = self._parse_routes(routes)
        parsed_sessions = self._parse_sessions(sessions)

        logger.info(f"🔀 Merging {len(parsed_routes)} routes with {len(parsed_sessions)} sessions")

        self._seed_from_routes(parsed_routes)

        for session in parsed_sessions:
            for observation in self._walk_session(session):
                self._record_observation(observation)

        self._finalize_states()

        spec.states = list(self._states.values())
        spec.transitions = list(self._transitions.values())
        spec.initial_state = self._select_initial_state(parsed_routes)
        spec.metadata.session_count = len(parsed_sessions)
        spec.metadata.app_versions = sorted({
            session.header.app.version for session in parsed_sessions
        })
        spec.metadata.updated_at = utc_now_iso()

        logger.info(
            f"✅ Merged spec '{spec.name}': {len(spec.states)} states, "
            f"{len(spec.transitions)} transitions, initial state '{spec.initial_state}'"
        )
        if self.issues:
            logger.info(f"Skipped {len(self.issues)} malformed records: {self.issues.count_by_type()}")

        return spec

    def _reset(self):
        self.issues = IssueLog()
        self._states = {}
        self._transitions = {}
        self._transition_ids = {}
        self._observed_counts = {}
        self._dwell_times = {}

    # ------------------------------------------------------------------
    # Input parsing
    # ------------------------------------------------------------------

    def _parse_routes(self, routes: Sequence[Union[Route, Dict[str, Any]]]) -> List[Route]:
        parsed = []
        for index, route in enumerate(routes or []):
            if isinstance(route, Route):
                parsed.append(route)
                continue
            try:
                parsed.append(Route.from_dict(route))
            except (AttributeError, TypeError, ValueError) as e:
                self.issues.record('malformed_route', str(e), f"route #{index}")
        return parsed

    def _parse_sessions(self, sessions: Sequence[Union[Session, Dict[str, Any]]]) -> List[Session]:
        parsed = []
        for index, session in enumerate(sessions or []):
            if isinstance(session, Session):
                parsed.append(session)
                continue
            try:
                parsed.append(parse_session(session))
            except (AttributeError, TypeError, ValueError) as e:
                self.issues.record('malformed_session', str(e), f"session #{index}")
        return parsed

    # ------------------------------------------------------------------
    # States from routes
    # ------------------------------------------------------------------

    def _seed_from_routes(self, routes: List[Route]):
        for route in routes:
            screen = normalize_screen_name(route.path)
            if screen in self._states:
                logger.debug(f"Route {route.path} collapses into existing state '{screen}'")
                continue

            state = create_state(screen, screen)
            state.metadata = StateMetadata(
                source=Provenance.AST,
                route=route.path,
                params=list(route.params),
            )
            self._states[screen] = state

    # ------------------------------------------------------------------
    # Session traversal
    # ------------------------------------------------------------------

    def _walk_session(self, session: Session) -> List[NavigationObservation]:
        """
        Visit the session's navigation events in order.

        Counts one visit per change of screen (the entry screen included),
        collects dwell times and returns the observed screen changes.
        Re-navigation to the current screen is not a visit.
        """
        observations = []
        session_id = session.header.session_id
        timestamp = session.header.start_time
        current_screen: Optional[str] = None
        arrived_at = timestamp

        for index, event in enumerate(session.events):
            timestamp += event.dt
            data = event.data

            if isinstance(data, UnrecognizedEvent):
                issue_type = 'malformed_navigation' if data.kind == 'navigation' else 'unrecognized_event'
                self.issues.record(issue_type, data.reason, f"{session_id} event #{index}",
                                   {'kind': data.kind})
                continue

            if not isinstance(data, NavigationEvent):
                continue

            if not data.screen.strip():
                self.issues.record('empty_screen', 'navigation without a screen name',
                                   f"{session_id} event #{index}")
                continue

            screen = normalize_screen_name(data.screen)
            if screen == current_screen:
                continue

            self._visit(screen)
            if current_screen is not None:
                self._dwell_times.setdefault(current_screen, []).append(timestamp - arrived_at)
                observations.append(NavigationObservation(
                    from_screen=current_screen,
                    to_screen=screen,
                    timestamp=timestamp,
                    session_id=session_id,
                ))

            current_screen = screen
            arrived_at = timestamp

        end_time = session.header.end_time
        if current_screen is not None and end_time is not None and end_time >= arrived_at:
            self._dwell_times.setdefault(current_screen, []).append(end_time - arrived_at)

        return observations

    def _visit(self, screen: str):
        state = self._states.get(screen)
        if state is None:
            state = create_state(screen, screen)
            state.metadata = StateMetadata(source=Provenance.SESSION)
            self._states[screen] = state
        else:
            state.metadata.source = state.metadata.source.join(Provenance.SESSION)

        self._observed_counts[screen] = self._observed_counts.get(screen, 0) + 1

    def _record_observation(self, observation: NavigationObservation):
        key = observation.key
        transition = self._transitions.get(key)

        if transition is None:
            transition = create_transition(
                self._unique_transition_id(key),
                key.from_screen,
                key.to_screen,
                TransitionEvent(type=EventType.NAVIGATION, data={'screen': key.to_screen}),
            )
            transition.metadata = TransitionMetadata(source=Provenance.SESSION)
            self._transitions[key] = transition

        transition.frequency += 1

    def _unique_transition_id(self, key: TransitionKey) -> str:
        candidate = key.as_id()
        suffix = 2
        while candidate in self._transition_ids:
            candidate = f"{key.as_id()}#{suffix}"
            suffix += 1
        self._transition_ids[candidate] = key
        return candidate

    # ------------------------------------------------------------------
    # Finalisation
    # ------------------------------------------------------------------

    def _finalize_states(self):
        for screen, state in self._states.items():
            state.observed_count = self._observed_counts.get(screen, 0)
            durations = self._dwell_times.get(screen)
            if durations:
                state.avg_duration = sum(durations) / len(durations)

    def _select_initial_state(self, routes: List[Route]) -> str:
        """
        Most observed state, ties broken by first-encountered order.

        This is a heuristic for the start screen, not a guarantee. Without
        any observations the first route (or first state) is used.
        """
        best: Optional[State] = None
        for state in self._states.values():
            if best is None or state.observed_count > best.observed_count:
                best = state

        if best is not None and best.observed_count > 0:
            return best.id
        if routes:
            return normalize_screen_name(routes[0].path)
        if best is not None:
            return best.id
        return "initial"


def merge_specs(routes: Sequence[Union[Route, Dict[str, Any]]],
                sessions: Sequence[Union[Session, Dict[str, Any]]],
                platform: str = "cross-platform",
                app_name: str = "app") -> Spec:
    """Merge routes and sessions into a spec (see ``SpecMerger.merge``)."""
    return SpecMerger(platform=platform, app_name=app_name).merge(routes, sessions)
