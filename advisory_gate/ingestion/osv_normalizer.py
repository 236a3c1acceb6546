"""
Normalization of OSV payloads into domain models.

OSV documents reach us from two places (REST vulnerability details and
osv-scanner JSON output) with small schema differences. Everything is
folded into VulnerabilityRecord / PackageFinding here so the decisioning
layer sees a single canonical shape:
- database_specific.severity and databaseSpecific.severity -> severity_label
- groups[].max_severity and groups[].maxSeverity -> max_severity
- CVSS v3 vectors -> SeverityScore.base_score
"""
import logging
from typing import Any, Dict, List, Optional

from cvss import CVSS3
from cvss.exceptions import CVSSError

from ..models import (
    DependencyCoordinate,
    ECOSYSTEM_NPM,
    PackageFinding,
    Reference,
    SeverityScore,
    VulnerabilityGroup,
    VulnerabilityRecord,
)

logger = logging.getLogger(__name__)

CVSS_V3_PREFIX = "CVSS:3"


def normalize_vulnerability(raw: Dict[str, Any]) -> Optional[VulnerabilityRecord]:
    """
    Transform a raw OSV vulnerability document to a VulnerabilityRecord.

    Missing or malformed optional fields become None / empty lists. Returns
    None only when the payload is not a mapping.
    """
    if not isinstance(raw, dict):
        return None

    return VulnerabilityRecord(
        id=str(raw.get("id") or ""),
        summary=_text(raw.get("summary")),
        details=_text(raw.get("details")),
        severity=_severity_scores(raw.get("severity")),
        references=_references(raw.get("references")),
        severity_label=_severity_label(raw),
        aliases=[a for a in _list(raw.get("aliases")) if isinstance(a, str)],
    )


def normalize_group(raw: Dict[str, Any]) -> Optional[VulnerabilityGroup]:
    if not isinstance(raw, dict):
        return None

    max_severity = raw.get("max_severity", raw.get("maxSeverity"))
    return VulnerabilityGroup(
        ids=[i for i in _list(raw.get("ids")) if isinstance(i, str)],
        max_severity=str(max_severity) if max_severity not in (None, "") else None,
        aliases=[a for a in _list(raw.get("aliases")) if isinstance(a, str)],
    )


def parse_scan_results(body: Dict[str, Any]) -> List[PackageFinding]:
    """
    Convert an osv-scanner results body into package findings.

    Expected shape: {"results": [{"source": {...}, "packages": [...]}]}.
    Packages without vulnerabilities are dropped.
    """
    findings: List[PackageFinding] = []

    for result in _list(body.get("results")):
        if not isinstance(result, dict):
            continue
        for package in _list(result.get("packages")):
            finding = _package_finding(package)
            if finding is not None and finding.vulnerabilities:
                findings.append(finding)

    return findings


def _package_finding(raw: Any) -> Optional[PackageFinding]:
    if not isinstance(raw, dict):
        return None

    package_info = raw.get("package")
    if not isinstance(package_info, dict):
        package_info = {}
    name = package_info.get("name")
    version = package_info.get("version")
    if not isinstance(name, str) or not name or not isinstance(version, str) or not version:
        logger.warning(f"Skipping osv-scanner package without name/version: {str(package_info)[:200]}")
        return None

    coordinate = DependencyCoordinate(
        name=name,
        version=version,
        ecosystem=package_info.get("ecosystem") or ECOSYSTEM_NPM,
        purl=package_info.get("purl"),
    )

    vulnerabilities = [
        record for record in (normalize_vulnerability(v) for v in _list(raw.get("vulnerabilities")))
        if record is not None
    ]
    groups = [
        group for group in (normalize_group(g) for g in _list(raw.get("groups")))
        if group is not None
    ]

    return PackageFinding(coordinate=coordinate, vulnerabilities=vulnerabilities, groups=groups)


def _list(value: Any) -> List[Any]:
    """Malformed collection fields are treated as empty."""
    return value if isinstance(value, list) else []


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _severity_label(raw: Dict[str, Any]) -> Optional[str]:
    for key in ("databaseSpecific", "database_specific"):
        specific = raw.get(key)
        if isinstance(specific, dict):
            label = specific.get("severity")
            if isinstance(label, str) and label.strip():
                return label.strip().upper()
    return None


def _severity_scores(entries: Any) -> List[SeverityScore]:
    scores: List[SeverityScore] = []
    for entry in _list(entries):
        if not isinstance(entry, dict):
            continue
        score = entry.get("score")
        if score is None:
            continue
        score = str(score)
        scores.append(SeverityScore(
            type=str(entry.get("type") or ""),
            score=score,
            base_score=cvss_base_score(score),
        ))
    return scores


def cvss_base_score(vector: str) -> Optional[float]:
    """Base score for a CVSS v3.x vector, None for anything else."""
    if not vector.startswith(CVSS_V3_PREFIX):
        return None
    try:
        return float(CVSS3(vector).base_score)
    except (CVSSError, ValueError) as e:
        logger.debug(f"Unable to score CVSS vector {vector}: {e}")
        return None


def _references(entries: Any) -> List[Reference]:
    references: List[Reference] = []
    for entry in _list(entries):
        if not isinstance(entry, dict):
            continue
        url = entry.get("url")
        if not isinstance(url, str) or not url:
            continue
        references.append(Reference(type=str(entry.get("type") or ""), url=url))
    return references
