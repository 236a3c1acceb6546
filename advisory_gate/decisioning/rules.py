"""
Rule definitions for package severity classification.

Each rule evaluates one package finding and returns a decision if the
rule conditions are met, or None if the rule doesn't apply. Textual labels
curated by the advisory database outrank numeric scores, and any fatal
signal outranks every warn signal.
"""
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..models import LEVEL_FATAL, LEVEL_WARN, PackageFinding


LABEL_CRITICAL = "CRITICAL"
LABEL_HIGH = "HIGH"
LABEL_MODERATE = "MODERATE"
LABEL_LOW = "LOW"

FATAL_LABELS = {LABEL_CRITICAL, LABEL_HIGH}
WARN_LABELS = {LABEL_MODERATE, LABEL_LOW}

# CVSS base score thresholds, both inclusive
FATAL_SCORE_THRESHOLD = 7.0
WARN_SCORE_THRESHOLD = 4.0


@dataclass
class SeverityDecision:
    """Result of applying a rule to a package finding."""
    level: str  # fatal | warn
    reason_code: str
    evidence: Dict[str, Any]
    explanation: str


def collect_severity_labels(finding: PackageFinding) -> List[str]:
    """Upper-cased textual labels across every vulnerability of the finding."""
    labels = []
    for vuln in finding.vulnerabilities:
        label = getattr(vuln, "severity_label", None)
        if isinstance(label, str) and label.strip():
            labels.append(label.strip().upper())
    return labels


def _parse_score(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    return score if math.isfinite(score) else None


def find_max_numeric_severity(finding: PackageFinding) -> Optional[float]:
    """
    Highest numeric score from group hints and per-vulnerability scores.

    Unparseable or missing scores are absent, not zero. A CVSS vector that
    was scored on ingest contributes its base score.
    """
    scores: List[float] = []

    for group in finding.groups or []:
        score = _parse_score(getattr(group, "max_severity", None))
        if score is not None:
            scores.append(score)

    for vuln in finding.vulnerabilities:
        for entry in getattr(vuln, "severity", None) or []:
            score = _parse_score(getattr(entry, "score", None))
            if score is None:
                score = _parse_score(getattr(entry, "base_score", None))
            if score is not None:
                scores.append(score)

    return max(scores) if scores else None


class SeverityRule(ABC):
    """Base class for all classification rules."""

    def __init__(self, rule_id: str, priority: int, reason_code: str):
        self.rule_id = rule_id
        self.priority = priority
        self.reason_code = reason_code

    @abstractmethod
    def evaluate(self, finding: PackageFinding) -> Optional[SeverityDecision]:
        """
        Evaluate the rule against a package finding.

        Returns SeverityDecision if rule applies, None otherwise.
        """
        pass

    def _matching_ids(self, finding: PackageFinding, labels: set) -> List[str]:
        return [
            vuln.id for vuln in finding.vulnerabilities
            if isinstance(vuln.severity_label, str)
            and vuln.severity_label.strip().upper() in labels
        ]


class FatalLabelRule(SeverityRule):
    """S0: any vulnerability labelled CRITICAL or HIGH."""

    def __init__(self):
        super().__init__("S0", 0, "FATAL_LABEL")

    def evaluate(self, finding: PackageFinding) -> Optional[SeverityDecision]:
        labels = collect_severity_labels(finding)
        matched = sorted(set(labels) & FATAL_LABELS)

        if matched:
            return SeverityDecision(
                level=LEVEL_FATAL,
                reason_code=self.reason_code,
                evidence={
                    'labels': matched,
                    'vulnerability_ids': self._matching_ids(finding, FATAL_LABELS)
                },
                explanation=f"Labelled {', '.join(matched)} by the advisory database."
            )

        return None


class FatalScoreRule(SeverityRule):
    """S1: highest numeric score at or above 7.0."""

    def __init__(self):
        super().__init__("S1", 1, "FATAL_SCORE")

    def evaluate(self, finding: PackageFinding) -> Optional[SeverityDecision]:
        max_score = find_max_numeric_severity(finding)

        if max_score is not None and max_score >= FATAL_SCORE_THRESHOLD:
            return SeverityDecision(
                level=LEVEL_FATAL,
                reason_code=self.reason_code,
                evidence={
                    'max_score': max_score,
                    'threshold': FATAL_SCORE_THRESHOLD
                },
                explanation=f"Severity score {max_score:.1f} is at or above {FATAL_SCORE_THRESHOLD:.1f}."
            )

        return None


class WarnLabelRule(SeverityRule):
    """S2: any vulnerability labelled MODERATE or LOW."""

    def __init__(self):
        super().__init__("S2", 2, "WARN_LABEL")

    def evaluate(self, finding: PackageFinding) -> Optional[SeverityDecision]:
        labels = collect_severity_labels(finding)
        matched = sorted(set(labels) & WARN_LABELS)

        if matched:
            return SeverityDecision(
                level=LEVEL_WARN,
                reason_code=self.reason_code,
                evidence={
                    'labels': matched,
                    'vulnerability_ids': self._matching_ids(finding, WARN_LABELS)
                },
                explanation=f"Labelled {', '.join(matched)} by the advisory database."
            )

        return None


class WarnScoreRule(SeverityRule):
    """S3: highest numeric score at or above 4.0."""

    def __init__(self):
        super().__init__("S3", 3, "WARN_SCORE")

    def evaluate(self, finding: PackageFinding) -> Optional[SeverityDecision]:
        max_score = find_max_numeric_severity(finding)

        if max_score is not None and max_score >= WARN_SCORE_THRESHOLD:
            return SeverityDecision(
                level=LEVEL_WARN,
                reason_code=self.reason_code,
                evidence={
                    'max_score': max_score,
                    'threshold': WARN_SCORE_THRESHOLD
                },
                explanation=f"Severity score {max_score:.1f} is at or above {WARN_SCORE_THRESHOLD:.1f}."
            )

        return None


def get_default_rules() -> List[SeverityRule]:
    """
    Get the default rule chain in priority order.

    Rules are evaluated in order (lowest priority number first).
    First rule that matches determines the advisory level. There is no
    fallback rule: a finding that matches nothing produces no advisory.
    """
    return [
        FatalLabelRule(),  # S0 (priority 0): CRITICAL/HIGH label
        FatalScoreRule(),  # S1 (priority 1): score >= 7.0
        WarnLabelRule(),   # S2 (priority 2): MODERATE/LOW label
        WarnScoreRule(),   # S3 (priority 3): score >= 4.0
    ]
