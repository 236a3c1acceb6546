"""
Domain models shared by ingestion, decisioning and orchestration.

These dataclasses are the canonical format every vulnerability source must
produce. Source-specific schemas (OSV REST, osv-scanner JSON, bun.lock) are
normalized into them at the ingestion boundary so the decisioning layer only
ever sees one shape.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


LEVEL_FATAL = "fatal"  # blocks the install unconditionally
LEVEL_WARN = "warn"    # host decides (prompt on TTY, block otherwise)
ADVISORY_LEVELS = (LEVEL_FATAL, LEVEL_WARN)

ECOSYSTEM_NPM = "npm"


@dataclass(frozen=True)
class DependencyCoordinate:
    """One resolved package instance."""
    name: str
    version: str
    ecosystem: str = ECOSYSTEM_NPM
    purl: Optional[str] = None

    @property
    def key(self) -> str:
        """Canonical "name@version" form used for set comparisons."""
        return f"{self.name}@{self.version}"


@dataclass
class SeverityScore:
    type: str
    score: str                          # plain number or CVSS vector
    base_score: Optional[float] = None  # computed from CVSS vectors on ingest


@dataclass
class Reference:
    type: str
    url: str


@dataclass
class VulnerabilityRecord:
    """
    One vulnerability entry from the vulnerability source.

    severity_label is the single canonical textual severity field; legacy
    spellings are folded into it by the OSV normalizer.
    """
    id: str
    summary: Optional[str] = None
    details: Optional[str] = None
    severity: List[SeverityScore] = field(default_factory=list)
    references: List[Reference] = field(default_factory=list)
    severity_label: Optional[str] = None  # CRITICAL | HIGH | MODERATE | LOW | other
    aliases: List[str] = field(default_factory=list)


@dataclass
class VulnerabilityGroup:
    """Pre-aggregated hint emitted by osv-scanner for related vulnerabilities."""
    ids: List[str]
    max_severity: Optional[str] = None
    aliases: List[str] = field(default_factory=list)


@dataclass
class PackageFinding:
    """All vulnerabilities discovered for one coordinate."""
    coordinate: DependencyCoordinate
    vulnerabilities: List[VulnerabilityRecord] = field(default_factory=list)
    groups: List[VulnerabilityGroup] = field(default_factory=list)


@dataclass
class Advisory:
    """User-facing output unit returned to the host installer."""
    level: str  # fatal | warn
    package: str
    url: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "package": self.package,
            "url": self.url,
            "description": self.description,
        }
