"""
Metrics collection for scanner runs.

This module provides ScanMetrics, a dataclass that tracks observability
metrics for a single scan including:
- Counts of packages scanned, findings and advisories produced
- Advisory level distribution after policy
- Which classification rules fired and how often
- Policy escalations and downgrades
- Source health and errors encountered
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Any, Optional
from collections import defaultdict

from ..models import Advisory


@dataclass
class ScanMetrics:
    """
    Metrics for a single scan.

    Serializable with to_dict() so it can be logged or attached to a report.
    """
    run_id: str
    started_at: datetime
    completed_at: Optional[datetime] = None

    # Core counts
    packages_scanned: int = 0
    findings_total: int = 0
    advisories_total: int = 0
    errors: int = 0

    # Final advisory level distribution
    level_counts: Dict[str, int] = field(default_factory=dict)

    # Key: rule reason code (e.g., "FATAL_LABEL"), Value: count
    rules_fired: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    # Policy effects
    escalated: int = 0
    downgraded: int = 0
    drift_detected: bool = False

    # Key: source_id, Value: dict with health status
    source_health: Dict[str, Dict] = field(default_factory=dict)

    error_messages: List[Dict] = field(default_factory=list)

    def record_rule_fired(self, reason_code: str):
        self.rules_fired[reason_code] += 1

    def record_policy(self, before: List[Advisory], after: List[Advisory]):
        """
        Count level changes made by the policy transform.

        Args:
            before: Advisories as classified (plus drift)
            after: Same advisories after policy, in the same order
        """
        for original, final in zip(before, after):
            if original.level == final.level:
                continue
            if final.level == "fatal":
                self.escalated += 1
            else:
                self.downgraded += 1

    def record_advisories(self, advisories: List[Advisory]):
        self.advisories_total = len(advisories)
        counts: Dict[str, int] = defaultdict(int)
        for advisory in advisories:
            counts[advisory.level] += 1
        self.level_counts = dict(counts)

    def record_error(self, error: str, context: Dict = None):
        """
        Record an error encountered during the scan.

        Args:
            error: Error message
            context: Optional dict with additional context (e.g., stage)
        """
        self.errors += 1
        self.error_messages.append({
            "type": "error",
            "message": error,
            "context": context or {}
        })

    @property
    def blocked(self) -> bool:
        return self.level_counts.get("fatal", 0) > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to a JSON-serializable dictionary."""
        return {
            "run_id": self.run_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "packages_scanned": self.packages_scanned,
            "findings_total": self.findings_total,
            "advisories_total": self.advisories_total,
            "errors": self.errors,
            "level_counts": self.level_counts,
            "rules_fired": dict(self.rules_fired),
            "escalated": self.escalated,
            "downgraded": self.downgraded,
            "drift_detected": self.drift_detected,
            "source_health": self.source_health,
            "error_messages": self.error_messages
        }
