"""
Analysis Configuration

Tunable thresholds for cycle detection and fuzz generation. The defaults are
heuristics; none of them is a correctness constraint.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass
class CycleDetectorConfig:
    """Configuration for repeating-pattern detection in navigation traces."""
    min_pattern_length: int = 2
    max_pattern_length: int = 10
    min_repetitions: int = 2
    max_example_timestamps: int = 3

    def __post_init__(self):
        if self.min_pattern_length < 1:
            raise ValueError("min_pattern_length must be at least 1")
        if self.max_pattern_length < self.min_pattern_length:
            raise ValueError("max_pattern_length must be >= min_pattern_length")
        if self.min_repetitions < 2:
            raise ValueError("min_repetitions must be at least 2")

    @classmethod
    def strict(cls) -> 'CycleDetectorConfig':
        """Only report short loops that repeat at least three times."""
        return cls(max_pattern_length=5, min_repetitions=3)


@dataclass
class FuzzConfig:
    """Step ranges and probabilities used by the fuzz strategies."""
    walk_steps: Tuple[int, int] = (3, 15)
    navigate_probability: float = 0.15
    boundary_inputs: int = 5
    max_flow_length: int = 10
    back_prefix_steps: Tuple[int, int] = (2, 4)
    back_presses: Tuple[int, int] = (1, 3)
    rapid_clicks: Tuple[int, int] = (10, 20)
    rapid_delay_ms: int = 50
    name_suffix_length: int = 6

    def __post_init__(self):
        for name in ('walk_steps', 'back_prefix_steps', 'back_presses', 'rapid_clicks'):
            low, high = getattr(self, name)
            if low < 0 or high < low:
                raise ValueError(f"{name} must be a non-negative (low, high) range")
        if not 0.0 <= self.navigate_probability <= 1.0:
            raise ValueError("navigate_probability must be within [0, 1]")
        if self.name_suffix_length < 1:
            raise ValueError("name_suffix_length must be at least 1")

    @classmethod
    def for_quick_smoke(cls) -> 'FuzzConfig':
        """Shorter sequences for fast CI smoke runs."""
        return cls(
            walk_steps=(3, 6),
            boundary_inputs=3,
            rapid_clicks=(5, 8),
        )
