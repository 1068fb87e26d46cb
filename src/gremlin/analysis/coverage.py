"""
Coverage Analysis

Compares the statically known (route) states of a merged spec with what the
recorded sessions actually reached. Read-only over the spec.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from dataclasses_json import LetterCase, config, dataclass_json

from ..core.spec.types import Provenance, Spec, State

logger = logging.getLogger(__name__)


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class StateInfo:
    id: str
    name: str
    observed_count: int
    route: Optional[str] = None


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class TransitionInfo:
    from_state: str = field(metadata=config(field_name="from"))
    to_state: str = field(metadata=config(field_name="to"))
    frequency: int = 0


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class CoverageSummary:
    total_states: int
    total_transitions: int
    states_with_observations: int
    avg_observations_per_state: int
    most_visited_state: Optional[StateInfo] = None
    least_visited_state: Optional[StateInfo] = None


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class CoverageInfo:
    """Coverage of route states by observed sessions."""
    total_ast_states: int
    observed_states: int
    coverage_percentage: int
    summary: CoverageSummary
    unreached_states: List[StateInfo] = field(default_factory=list)
    unexpected_states: List[StateInfo] = field(default_factory=list)
    unexpected_flows: List[TransitionInfo] = field(default_factory=list)


def _round_half_up(value: float) -> int:
    """Round non-negative values the way report readers expect (2.5 -> 3)."""
    return int(value + 0.5)


def _state_info(state: State) -> StateInfo:
    return StateInfo(
        id=state.id,
        name=state.name,
        observed_count=state.observed_count,
        route=state.metadata.route if state.metadata else None,
    )


def calculate_coverage(spec: Spec) -> CoverageInfo:
    """
    Calculate coverage information for a merged spec.

    - AST states are those with provenance ``ast`` or ``both``
    - unreached states are AST states never observed
    - unexpected states exist only in sessions
    - unexpected flows touch at least one session-only state

    Args:
        spec: Spec produced by the merger; it is not modified

    Returns:
        A new ``CoverageInfo`` value
    """
    ast_states = [
        s for s in spec.states
        if s.provenance in (Provenance.AST, Provenance.BOTH)
    ]
    session_only = [s for s in spec.states if s.provenance is Provenance.SESSION]
    observed = [s for s in spec.states if s.observed_count > 0]

    total_ast_states = len(ast_states)
    observed_ast_states = sum(1 for s in ast_states if s.observed_count > 0)
    coverage_percentage = (
        _round_half_up(100 * observed_ast_states / total_ast_states)
        if total_ast_states > 0 else 0
    )

    by_id = spec.state_index()
    session_only_ids = {s.id for s in session_only}
    unexpected_flows = []
    for transition in spec.transitions:
        if transition.from_state in session_only_ids or transition.to_state in session_only_ids:
            from_state = by_id.get(transition.from_state)
            to_state = by_id.get(transition.to_state)
            unexpected_flows.append(TransitionInfo(
                from_state=from_state.name if from_state else transition.from_state,
                to_state=to_state.name if to_state else transition.to_state,
                frequency=transition.frequency,
            ))

    total_observations = sum(s.observed_count for s in observed)
    avg_observations = (
        _round_half_up(total_observations / len(observed)) if observed else 0
    )

    # sorted() is stable, so ties keep first-encountered order
    ranked = sorted(observed, key=lambda s: s.observed_count, reverse=True)

    coverage = CoverageInfo(
        total_ast_states=total_ast_states,
        observed_states=observed_ast_states,
        coverage_percentage=coverage_percentage,
        unreached_states=[_state_info(s) for s in ast_states if s.observed_count == 0],
        unexpected_states=[_state_info(s) for s in session_only],
        unexpected_flows=unexpected_flows,
        summary=CoverageSummary(
            total_states=len(spec.states),
            total_transitions=len(spec.transitions),
            states_with_observations=len(observed),
            avg_observations_per_state=avg_observations,
            most_visited_state=_state_info(ranked[0]) if ranked else None,
            least_visited_state=_state_info(ranked[-1]) if ranked else None,
        ),
    )

    logger.debug(
        f"Coverage {coverage_percentage}% ({observed_ast_states}/{total_ast_states}), "
        f"{len(session_only)} unexpected states"
    )
    return coverage
