"""
Observability layer for the OVAL refresh pipeline.

Main exports:
- RunMetrics: Tracks metrics for a refresh run
- QualityChecker: Runs data quality checks on the stored closure
- QualityCheckResult: Result of a quality check
- RunReporter: Generates Markdown reports
"""
from .metrics import RunMetrics
from .quality_checks import QualityChecker, QualityCheckResult
from .reporter import RunReporter

__all__ = [
    "RunMetrics",
    "QualityChecker",
    "QualityCheckResult",
    "RunReporter",
]
