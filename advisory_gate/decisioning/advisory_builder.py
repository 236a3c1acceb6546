"""
Builds host-facing advisories from classified package findings.

One advisory per finding that classifies to a level. The first vulnerability
in source order supplies the description and reference link.
"""
from typing import Callable, List, Optional

from ..models import Advisory, PackageFinding, Reference, VulnerabilityRecord


Classifier = Callable[[PackageFinding], Optional[str]]

# Reference types in order of preference
REFERENCE_PRIORITY = ("ADVISORY", "WEB")


def build_advisories(findings: List[PackageFinding], classify: Classifier) -> List[Advisory]:
    """
    Convert package findings into advisories.

    Findings that classify to None are skipped. Output order follows the
    input order.
    """
    advisories: List[Advisory] = []

    for finding in findings:
        level = classify(finding)
        if not level:
            continue

        primary = select_primary_vulnerability(finding)
        advisories.append(Advisory(
            level=level,
            package=finding.coordinate.name,
            url=select_reference_url(primary.references or []) if primary else None,
            description=_describe(primary),
        ))

    return advisories


def select_primary_vulnerability(finding: PackageFinding) -> Optional[VulnerabilityRecord]:
    """First vulnerability of the finding, or None when there are none."""
    if not finding.vulnerabilities:
        return None
    return finding.vulnerabilities[0]


def select_reference_url(references: List[Reference]) -> Optional[str]:
    """Pick the first ADVISORY link, else the first WEB link, else the first link."""
    for ref_type in REFERENCE_PRIORITY:
        for ref in references:
            if ref.type == ref_type and ref.url:
                return ref.url

    for ref in references:
        if ref.url:
            return ref.url

    return None


def _describe(primary: Optional[VulnerabilityRecord]) -> Optional[str]:
    if primary is None:
        return None
    if primary.summary is not None:
        return primary.summary
    return primary.details
