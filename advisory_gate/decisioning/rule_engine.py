"""
Rule engine that classifies package findings against a rule chain.

The engine applies rules in priority order (lowest first) and returns
the first matching decision. Classification is deterministic and never
raises: a rule that fails is logged and skipped.
"""
from typing import List, Dict, Any, Optional
import logging

from ..models import PackageFinding
from .rules import SeverityRule, SeverityDecision, get_default_rules


logger = logging.getLogger(__name__)


class RuleEngine:
    """
    Deterministic rule engine for advisory level decisions.

    Rules are evaluated in priority order (0 is highest priority).
    First rule that matches determines the advisory level.
    """

    def __init__(self, rules: Optional[List[SeverityRule]] = None):
        """
        Initialize the rule engine.

        Args:
            rules: List of rules to evaluate. If None, uses default rules.
        """
        self.rules = sorted(rules or get_default_rules(), key=lambda r: r.priority)

    def decide(self, finding: PackageFinding) -> Optional[SeverityDecision]:
        """
        Apply rule chain to a package finding.

        Args:
            finding: Vulnerabilities collected for one coordinate

        Returns:
            SeverityDecision from the first matching rule, or None when no
            rule matches (informational or unscored vulnerabilities)
        """
        package = _package_label(finding)

        for rule in self.rules:
            try:
                decision = rule.evaluate(finding)
                if decision:
                    logger.debug(
                        f"Package {package}: Rule {rule.rule_id} matched -> {decision.level}"
                    )
                    decision.evidence['applied_rule'] = rule.rule_id
                    return decision

            except Exception as e:
                logger.error(
                    f"Error evaluating rule {rule.rule_id} for package {package}: {e}",
                    exc_info=True
                )
                continue

        logger.debug(f"Package {package}: no rule matched")
        return None

    def classify(self, finding: PackageFinding) -> Optional[str]:
        """Return the advisory level for a finding, or None for no advisory."""
        decision = self.decide(finding)
        return decision.level if decision else None

    def decide_batch(self, findings: List[PackageFinding]) -> List[Optional[SeverityDecision]]:
        """
        Apply rule chain to multiple findings.

        Returns:
            List of decisions (or None) in same order as input
        """
        return [self.decide(finding) for finding in findings]

    def explain_decision(self, finding: PackageFinding) -> Dict[str, Any]:
        """
        Get detailed explanation of decision process.

        Args:
            finding: Package finding to classify

        Returns:
            Dictionary with decision, matching rule, and evaluation trace
        """
        trace = []
        matched_decision = None

        for rule in self.rules:
            try:
                decision = rule.evaluate(finding)
                trace.append({
                    'rule_id': rule.rule_id,
                    'priority': rule.priority,
                    'matched': decision is not None,
                    'result': decision.level if decision else None
                })

                if decision and matched_decision is None:
                    matched_decision = decision
                    decision.evidence['applied_rule'] = rule.rule_id

            except Exception as e:
                trace.append({
                    'rule_id': rule.rule_id,
                    'priority': rule.priority,
                    'matched': False,
                    'error': str(e)
                })

        return {
            'package': _package_label(finding),
            'decision': matched_decision,
            'evaluation_trace': trace,
            'total_rules_evaluated': len(trace)
        }


def _package_label(finding: PackageFinding) -> str:
    coordinate = getattr(finding, 'coordinate', None)
    if coordinate is None:
        return 'unknown'
    return f"{coordinate.name}@{coordinate.version}"
