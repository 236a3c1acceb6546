"""
Advisory decisioning layer.

Provides deterministic severity classification using a priority-ordered
rule chain, advisory construction, operator policy, and lockfile drift
detection.
"""
from .rules import SeverityRule, SeverityDecision, get_default_rules
from .rule_engine import RuleEngine
from .advisory_builder import build_advisories, select_primary_vulnerability, select_reference_url
from .policy import PolicyConfig, apply_policy
from .drift import coordinate_keys, detect_drift
from .explainer import AdvisoryExplainer


__all__ = [
    'SeverityRule',
    'SeverityDecision',
    'RuleEngine',
    'AdvisoryExplainer',
    'PolicyConfig',
    'apply_policy',
    'build_advisories',
    'coordinate_keys',
    'detect_drift',
    'get_default_rules',
    'select_primary_vulnerability',
    'select_reference_url',
]
