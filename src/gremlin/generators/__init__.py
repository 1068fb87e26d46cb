"""
Test generators: seeded fuzz tests and their Playwright rendering.
"""

from .fuzz import (
    ADVERSARIAL_STRINGS,
    FuzzOptions,
    FuzzStep,
    FuzzStrategy,
    FuzzTest,
    FuzzTestGenerator,
    StepType,
    generate_fuzz_tests,
    resolve_strategies,
)
from .playwright import fuzz_tests_to_playwright

__all__ = [
    'ADVERSARIAL_STRINGS',
    'FuzzOptions',
    'FuzzStep',
    'FuzzStrategy',
    'FuzzTest',
    'FuzzTestGenerator',
    'StepType',
    'generate_fuzz_tests',
    'resolve_strategies',
    'fuzz_tests_to_playwright',
]
