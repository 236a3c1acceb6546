"""
Observability layer for the scanner.

Main exports:
- ScanMetrics: Tracks metrics for a single scan
- ScanReporter: Generates Markdown reports
"""
from .metrics import ScanMetrics
from .reporter import ScanReporter

__all__ = [
    "ScanMetrics",
    "ScanReporter",
]
