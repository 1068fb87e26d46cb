"""
Analysis Package

- Screen-name normalization
- Route + session merging with provenance
- Coverage of route states by sessions
- Repeating-pattern (cycle) detection
- Model-assisted flow extraction
"""

from .normalizer import normalize_screen_name
from .merger import SpecMerger, merge_specs
from .coverage import CoverageInfo, CoverageSummary, StateInfo, TransitionInfo, calculate_coverage
from .cycles import CycleClassification, CycleDetector, CycleInfo, CycleType, detect_cycles

__all__ = [
    'normalize_screen_name',
    'SpecMerger', 'merge_specs',
    'CoverageInfo', 'CoverageSummary', 'StateInfo', 'TransitionInfo', 'calculate_coverage',
    'CycleClassification', 'CycleDetector', 'CycleInfo', 'CycleType', 'detect_cycles',
]
