"""
Install-time vulnerability gate for Bun projects.

Classifies OSV vulnerabilities for the packages being installed into
fatal / warn advisories and applies operator policy on top.

Usage:
    from advisory_gate import SecurityScanner, ScannerConfig

    scanner = SecurityScanner(ScannerConfig())
    advisories = scanner.scan([{"name": "event-stream", "version": "3.3.6"}])
"""
from .config import ScannerConfig, load_config
from .decisioning import PolicyConfig, RuleEngine, apply_policy, build_advisories, detect_drift
from .models import (
    Advisory,
    DependencyCoordinate,
    LEVEL_FATAL,
    LEVEL_WARN,
    PackageFinding,
    VulnerabilityRecord,
)
from .scanner import SecurityScanner

__version__ = "0.1.0"

__all__ = [
    "Advisory",
    "DependencyCoordinate",
    "LEVEL_FATAL",
    "LEVEL_WARN",
    "PackageFinding",
    "PolicyConfig",
    "RuleEngine",
    "ScannerConfig",
    "SecurityScanner",
    "VulnerabilityRecord",
    "apply_policy",
    "build_advisories",
    "detect_drift",
    "load_config",
]
