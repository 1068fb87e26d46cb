"""
Reporting Package

Plain-text formatters for coverage and cycle analysis results.
"""

from .formatters import format_coverage_report, format_cycles_report

__all__ = ['format_coverage_report', 'format_cycles_report']
