"""
Error Handling Utility

Records malformed input records that the analysis pipeline skips, and
defines the exceptions raised at the file/network boundary. Core analysis
functions never raise for a single bad record; they log it here and move on.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class GremlinError(Exception):
    """Base class for errors raised at the I/O boundary."""


class SpecLoadError(GremlinError):
    """A spec, session or route file could not be read or parsed."""


class AnalyzerResponseError(GremlinError):
    """The completion service returned output that is not a usable spec."""


@dataclass
class InputIssue:
    """A skipped input record."""
    issue_type: str
    message: str
    source: str
    context: Dict[str, Any] = field(default_factory=dict)
    severity: str = 'medium'  # low, medium, high


class IssueLog:
    """
    Collects skipped-record issues for one pipeline run.

    Severity is derived from the issue type so callers only state what
    happened. Each recorded issue is logged at warning level (debug for low
    severity issues).
    """

    SEVERITY_RULES = {
        'high': ['malformed_session', 'malformed_route'],
        'medium': ['malformed_navigation', 'empty_screen'],
        'low': ['unrecognized_event'],
    }

    def __init__(self):
        self.issues: List[InputIssue] = []

    def record(self, issue_type: str, message: str, source: str,
               context: Optional[Dict[str, Any]] = None) -> InputIssue:
        """Record and log one skipped record."""
        issue = InputIssue(
            issue_type=issue_type,
            message=message,
            source=source,
            context=context or {},
            severity=self._categorize_severity(issue_type),
        )
        self.issues.append(issue)

        if issue.severity == 'low':
            logger.debug(f"Skipped [{issue_type}] in {source}: {message}")
        else:
            logger.warning(f"⚠️ Skipped [{issue_type}] in {source}: {message}")

        return issue

    def _categorize_severity(self, issue_type: str) -> str:
        for severity, issue_types in self.SEVERITY_RULES.items():
            if issue_type in issue_types:
                return severity
        return 'medium'

    def count_by_type(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for issue in self.issues:
            counts[issue.issue_type] = counts.get(issue.issue_type, 0) + 1
        return counts

    def get_summary(self) -> Dict[str, Any]:
        """Summary suitable for a report or log line."""
        return {
            'total_issues': len(self.issues),
            'by_type': self.count_by_type(),
            'high_severity': sum(1 for issue in self.issues if issue.severity == 'high'),
        }

    def __len__(self) -> int:
        return len(self.issues)
