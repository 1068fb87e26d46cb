"""
Configuration Management

- Analysis thresholds (cycle detection, fuzz generation)
- Project settings from gremlin.yml and the environment
"""

from .analysis import CycleDetectorConfig, FuzzConfig
from .settings import (
    DEFAULT_FUZZ_OUTPUT,
    DEFAULT_PLAYWRIGHT_OUTPUT,
    DEFAULT_SPEC_PATH,
    GremlinConfig,
)

__all__ = [
    'CycleDetectorConfig', 'FuzzConfig',
    'GremlinConfig', 'DEFAULT_SPEC_PATH', 'DEFAULT_FUZZ_OUTPUT',
    'DEFAULT_PLAYWRIGHT_OUTPUT',
]
