"""
Gremlin - state machine inference for recorded user sessions

Merges statically extracted routes with recorded sessions into a
provenance-tagged spec, measures how much of the route space sessions
reach, finds repeating navigation patterns, and generates reproducible fuzz
tests from the spec.
"""

__version__ = "0.1.0"

from .analysis import calculate_coverage, detect_cycles, merge_specs, normalize_screen_name
from .generators import FuzzOptions, generate_fuzz_tests

__all__ = [
    '__version__',
    'calculate_coverage',
    'detect_cycles',
    'merge_specs',
    'normalize_screen_name',
    'FuzzOptions',
    'generate_fuzz_tests',
]
