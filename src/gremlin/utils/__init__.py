"""
Utils package: input-issue tracking and boundary exceptions.
"""

from .error_handler import (
    AnalyzerResponseError,
    GremlinError,
    InputIssue,
    IssueLog,
    SpecLoadError,
)

__all__ = [
    'AnalyzerResponseError', 'GremlinError', 'InputIssue', 'IssueLog',
    'SpecLoadError',
]
