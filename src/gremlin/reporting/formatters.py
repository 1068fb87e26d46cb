"""
Report Formatters

Plain-text reports for coverage and cycle analysis results, suitable for a
terminal or a CI log.
"""

from typing import List

from ..analysis.coverage import CoverageInfo
from ..analysis.cycles import CycleInfo, CycleType

MAX_LISTED_FLOWS = 10
RULE = "=" * 70

CYCLE_ICONS = {
    CycleType.ERROR: "🔴",
    CycleType.STATE: "🔄",
    CycleType.NAVIGATION: "🔁",
}


def format_coverage_report(coverage: CoverageInfo) -> str:
    """Format coverage info as a readable report."""
    summary = coverage.summary
    lines = [RULE, "🎯 COVERAGE REPORT", RULE]

    lines.append(
        f"Coverage: {coverage.coverage_percentage}% "
        f"({coverage.observed_states}/{coverage.total_ast_states} states)"
    )
    lines.append(
        f"Total States: {summary.total_states} "
        f"({coverage.total_ast_states} from routes, {len(coverage.unexpected_states)} unexpected)"
    )
    lines.append(f"Total Transitions: {summary.total_transitions}")
    lines.append(f"Avg Observations per State: {summary.avg_observations_per_state}")

    if summary.most_visited_state:
        state = summary.most_visited_state
        lines.append(f"Most Visited: {state.name} ({state.observed_count} times)")
    if summary.least_visited_state:
        state = summary.least_visited_state
        lines.append(f"Least Visited: {state.name} ({state.observed_count} times)")

    if coverage.unreached_states:
        lines.append("")
        lines.append(f"⚠️  Unreached States ({len(coverage.unreached_states)}):")
        for state in coverage.unreached_states:
            route = f" [{state.route}]" if state.route else ""
            lines.append(f"  • {state.name}{route}")
    else:
        lines.append("")
        lines.append("✅ All route states were reached")

    if coverage.unexpected_states:
        lines.append("")
        lines.append(f"⚠️  Unexpected States ({len(coverage.unexpected_states)}):")
        for state in coverage.unexpected_states:
            lines.append(f"  • {state.name} (observed {state.observed_count} times)")

    if coverage.unexpected_flows:
        lines.append("")
        lines.append(f"⚠️  Unexpected Flows ({len(coverage.unexpected_flows)}):")
        for flow in coverage.unexpected_flows[:MAX_LISTED_FLOWS]:
            lines.append(f"  • {flow.from_state} → {flow.to_state} ({flow.frequency}x)")
        if len(coverage.unexpected_flows) > MAX_LISTED_FLOWS:
            lines.append(f"  ... and {len(coverage.unexpected_flows) - MAX_LISTED_FLOWS} more")

    lines.append(RULE)
    return "\n".join(lines)


def format_cycles_report(cycles: List[CycleInfo]) -> str:
    """Format detected cycles as a readable report."""
    if not cycles:
        return "No cycles detected."

    lines = [RULE, f"🔁 DETECTED CYCLES ({len(cycles)})", RULE]

    for cycle in cycles:
        lines.append(
            f"{CYCLE_ICONS[cycle.type]} {cycle.type.value.upper()} "
            f"[{cycle.classification.value}]: {' → '.join(cycle.path)}"
        )
        lines.append(f"   Frequency: {cycle.frequency} occurrences")
        lines.append(f"   Iterations: avg={cycle.avg_iterations}, max={cycle.max_iterations}")
        lines.append(f"   Sessions: {len(cycle.session_ids)} unique session(s)")
        lines.append("")

    lines.append(RULE)
    return "\n".join(lines)
