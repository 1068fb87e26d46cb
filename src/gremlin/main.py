#!/usr/bin/env python3
"""
Gremlin - Spec Inference Pipeline

Command-line entry point: merge routes and recorded sessions into a spec,
report coverage and navigation cycles, generate seeded fuzz tests, and run
model-assisted flow extraction.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .analysis.coverage import calculate_coverage
from .analysis.cycles import detect_cycles
from .analysis.flow_analyzer import FlowAnalyzer
from .analysis.merger import SpecMerger
from .config.analysis import CycleDetectorConfig, FuzzConfig
from .config.settings import GremlinConfig
from .core.spec.types import Spec
from .core.storage import load_routes, load_sessions, load_spec, save_spec
from .generators.fuzz import FuzzOptions, FuzzTestGenerator
from .generators.playwright import fuzz_tests_to_playwright
from .reporting.formatters import format_coverage_report, format_cycles_report
from .utils.error_handler import GremlinError

logger = logging.getLogger(__name__)

console = Console()


def configure_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def print_spec_summary(spec: Spec):
    """Print states and transitions of a spec as tables."""
    states = Table(title=f"States of '{spec.name}'")
    states.add_column("State")
    states.add_column("Source")
    states.add_column("Route")
    states.add_column("Observed", justify="right")
    for state in spec.states:
        states.add_row(
            escape(state.id) + (" (initial)" if state.id == spec.initial_state else ""),
            state.provenance.value if state.provenance else "-",
            escape((state.metadata.route if state.metadata else None) or "-"),
            str(state.observed_count),
        )
    console.print(states)

    transitions = Table(title="Transitions")
    transitions.add_column("From")
    transitions.add_column("To")
    transitions.add_column("Event")
    transitions.add_column("Frequency", justify="right")
    for transition in spec.transitions:
        transitions.add_row(
            escape(transition.from_state),
            escape(transition.to_state),
            transition.event.type.value,
            str(transition.frequency),
        )
    console.print(transitions)


def _spec_path(args: argparse.Namespace, config: GremlinConfig) -> str:
    return args.spec or config.get_paths().get("spec")


# ----------------------------------------------------------------------------
# Subcommands
# ----------------------------------------------------------------------------

def cmd_merge(args: argparse.Namespace, config: GremlinConfig) -> int:
    app = config.get_app_config()
    routes = load_routes(args.routes) if args.routes else []
    sessions = load_sessions(args.sessions) if args.sessions else []

    merger = SpecMerger(
        platform=args.platform or app.get("platform", "cross-platform"),
        app_name=args.app_name or app.get("name", "app"),
    )
    spec = merger.merge(routes, sessions)

    output = save_spec(spec, args.output or _spec_path(args, config))
    print_spec_summary(spec)
    if merger.issues:
        console.print(f"[yellow]⚠️ Skipped {len(merger.issues)} malformed records[/yellow]")
    console.print(f"💾 Spec written to {output}")
    return 0


def cmd_coverage(args: argparse.Namespace, config: GremlinConfig) -> int:
    spec = load_spec(_spec_path(args, config))
    coverage = calculate_coverage(spec)

    if args.json:
        console.print_json(coverage.to_json())
    else:
        console.print(format_coverage_report(coverage), markup=False, highlight=False)

    if args.fail_under is not None and coverage.coverage_percentage < args.fail_under:
        console.print(
            f"[red]❌ Coverage {coverage.coverage_percentage}% is below {args.fail_under}%[/red]"
        )
        return 1
    return 0


def cmd_cycles(args: argparse.Namespace, config: GremlinConfig) -> int:
    sessions = load_sessions(args.sessions)
    detector_config = CycleDetectorConfig.strict() if args.strict else CycleDetectorConfig()
    cycles = detect_cycles(sessions, detector_config)

    if args.json:
        console.print_json(json.dumps([cycle.to_dict(encode_json=True) for cycle in cycles]))
    else:
        console.print(format_cycles_report(cycles), markup=False, highlight=False)
    return 0


def cmd_fuzz(args: argparse.Namespace, config: GremlinConfig) -> int:
    fuzz_settings = config.get_fuzz_config()
    spec = load_spec(_spec_path(args, config))

    strategies = (
        [name.strip() for name in args.strategies.split(",") if name.strip()]
        if args.strategies else config.get_fuzz_strategies()
    )
    seed = args.seed if args.seed is not None else fuzz_settings.get("seed")
    include_comments = fuzz_settings.get("include_comments", True) and not args.no_comments
    base_url = args.base_url or config.get_app_config().get("base_url", "http://localhost:3000")

    options = FuzzOptions(
        num_tests=args.count if args.count is not None else fuzz_settings.get("count", 10),
        strategies=strategies,
        seed=seed,
        include_comments=include_comments,
        base_url=base_url,
        config=FuzzConfig.for_quick_smoke() if args.quick else FuzzConfig(),
    )
    generator = FuzzTestGenerator(spec, options)
    tests = generator.generate()

    if not tests:
        console.print("[yellow]⚠️ No fuzz tests generated: the spec has no viable strategies[/yellow]")
        return 0

    output = Path(args.output or config.get_paths().get("fuzz_output"))
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(
        fuzz_tests_to_playwright(spec, tests, base_url=base_url, include_comments=include_comments),
        encoding='utf-8',
    )

    table = Table(title=f"Fuzz tests (seed {generator.seed})")
    table.add_column("Name")
    table.add_column("Strategy")
    table.add_column("Steps", justify="right")
    for test in tests:
        table.add_row(test.name, test.strategy.value, str(len(test.steps)))
    console.print(table)
    console.print(f"🧪 Wrote {len(tests)} fuzz tests to {output}")
    return 0


def cmd_analyze(args: argparse.Namespace, config: GremlinConfig) -> int:
    analyzer_config = config.get_analyzer_config()
    app = config.get_app_config()
    sessions = load_sessions(args.sessions)

    analyzer = FlowAnalyzer(
        api_key=analyzer_config.get("api_key"),
        model=args.model or analyzer_config.get("model", "gpt-4o"),
        max_tokens=analyzer_config.get("max_tokens", 8192),
    )
    spec = analyzer.analyze_flows(
        sessions,
        app_name=args.app_name or app.get("name", "app"),
        platform=app.get("platform", "cross-platform"),
    )

    output = save_spec(spec, args.output or _spec_path(args, config))
    print_spec_summary(spec)
    console.print(f"💾 Spec written to {output}")
    return 0


COMMANDS = {
    "merge": cmd_merge,
    "coverage": cmd_coverage,
    "cycles": cmd_cycles,
    "fuzz": cmd_fuzz,
    "analyze": cmd_analyze,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gremlin-cli",
        description="Gremlin - infer app state machines from routes and recorded sessions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Merge extracted routes with recorded sessions
  gremlin-cli merge --routes routes.json --sessions sessions/

  # Coverage of route states, failing CI below 80%
  gremlin-cli coverage --fail-under 80

  # Reproducible fuzz tests
  gremlin-cli fuzz --count 15 --seed 42 --strategies random_walk,rapid_fire
        """,
    )
    parser.add_argument('--config', default='gremlin.yml',
                        help='Path to gremlin.yml (default: gremlin.yml)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', required=True)

    merge = subparsers.add_parser('merge', help='Merge routes and sessions into a spec')
    merge.add_argument('--routes', help='Routes JSON file from a route extractor')
    merge.add_argument('--sessions', help='Session JSON file or directory of session files')
    merge.add_argument('--output', '-o', help='Where to write the spec')
    merge.add_argument('--spec', help=argparse.SUPPRESS)
    merge.add_argument('--app-name', help='App name stored in the spec')
    merge.add_argument('--platform', choices=['web', 'ios', 'android', 'cross-platform'],
                       help='Platform stored in the spec')

    coverage = subparsers.add_parser('coverage', help='Report route coverage of a spec')
    coverage.add_argument('--spec', help='Spec JSON file')
    coverage.add_argument('--json', action='store_true', help='Print coverage as JSON')
    coverage.add_argument('--fail-under', type=int,
                          help='Exit with status 1 when coverage is below this percentage')

    cycles = subparsers.add_parser('cycles', help='Detect repeating navigation patterns')
    cycles.add_argument('--sessions', required=True,
                        help='Session JSON file or directory of session files')
    cycles.add_argument('--json', action='store_true', help='Print cycles as JSON')
    cycles.add_argument('--strict', action='store_true',
                        help='Only report short patterns repeated at least three times')

    fuzz = subparsers.add_parser('fuzz', help='Generate Playwright fuzz tests from a spec')
    fuzz.add_argument('--spec', help='Spec JSON file')
    fuzz.add_argument('--count', type=int, help='Number of tests to generate')
    fuzz.add_argument('--strategies', help='Comma-separated strategy names (default: all)')
    fuzz.add_argument('--seed', type=int, help='Seed for reproducible generation')
    fuzz.add_argument('--base-url', help='URL opened before every test')
    fuzz.add_argument('--output', '-o', help='Where to write the Playwright file')
    fuzz.add_argument('--no-comments', action='store_true', help='Omit explanatory comments')
    fuzz.add_argument('--quick', action='store_true', help='Shorter sequences for smoke runs')

    analyze = subparsers.add_parser('analyze', help='Extract a spec from sessions with a model')
    analyze.add_argument('--sessions', required=True,
                         help='Session JSON file or directory of session files')
    analyze.add_argument('--output', '-o', help='Where to write the spec')
    analyze.add_argument('--spec', help=argparse.SUPPRESS)
    analyze.add_argument('--model', help='Chat-completion model (default from gremlin.yml)')
    analyze.add_argument('--app-name', help='App name stored in the spec')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the gremlin CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = GremlinConfig(args.config)
        return COMMANDS[args.command](args, config)
    except (GremlinError, yaml.YAMLError) as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        logger.debug("Command failed", exc_info=True)
        return 1
    except KeyboardInterrupt:
        console.print("\n🛑 Interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
