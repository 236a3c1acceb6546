"""
Shared pytest fixtures for scanner tests.

Factories keep test setup short and make the interesting field of each
vulnerability obvious at the call site.
"""
from typing import List, Optional

import pytest

from advisory_gate.errors import OsvSourceError
from advisory_gate.ingestion.base_adapter import BaseAdapter
from advisory_gate.models import (
    DependencyCoordinate,
    PackageFinding,
    Reference,
    SeverityScore,
    VulnerabilityGroup,
    VulnerabilityRecord,
)


def make_vuln(
    vuln_id: str = "GHSA-test-0001",
    label: Optional[str] = None,
    scores: Optional[List[str]] = None,
    summary: Optional[str] = None,
    details: Optional[str] = None,
    references: Optional[List[tuple]] = None,
) -> VulnerabilityRecord:
    return VulnerabilityRecord(
        id=vuln_id,
        summary=summary,
        details=details,
        severity=[SeverityScore(type="CVSS_V3", score=s) for s in scores or []],
        references=[Reference(type=t, url=u) for t, u in references or []],
        severity_label=label,
    )


def make_finding(
    name: str = "pkg-name",
    version: str = "1.0.0",
    vulnerabilities: Optional[List[VulnerabilityRecord]] = None,
    group_scores: Optional[List[Optional[str]]] = None,
) -> PackageFinding:
    return PackageFinding(
        coordinate=DependencyCoordinate(name=name, version=version),
        vulnerabilities=vulnerabilities or [],
        groups=[VulnerabilityGroup(ids=[], max_severity=s) for s in group_scores or []],
    )


class StubAdapter(BaseAdapter):
    """Vulnerability source returning canned findings or raising an error."""

    def __init__(self, findings=None, error: Optional[Exception] = None):
        super().__init__({})
        self.source_id = "stub"
        self.findings = findings or []
        self.error = error
        self.calls = []

    def scan(self, coordinates):
        self.calls.append(list(coordinates))
        if self.error is not None:
            self._record_failure(self.error)
            raise self.error
        self._record_success(self.findings)
        return list(self.findings)


@pytest.fixture
def event_stream_finding():
    """The event-stream 3.3.6 compromise as OSV reports it."""
    return make_finding(
        name="event-stream",
        version="3.3.6",
        vulnerabilities=[
            make_vuln(
                vuln_id="GHSA-mh6f-8j2x-4483",
                label="CRITICAL",
                summary="Critical severity vulnerability that affects event-stream and flatmap-stream",
                references=[("ADVISORY", "https://github.com/advisories/GHSA-mh6f-8j2x-4483")],
            )
        ],
    )


@pytest.fixture
def moderate_finding():
    return make_finding(
        name="minimist",
        version="1.2.0",
        vulnerabilities=[
            make_vuln(
                vuln_id="GHSA-vh95-rmgr-6w4m",
                label="MODERATE",
                summary="Prototype Pollution in minimist",
                references=[("WEB", "https://github.com/substack/minimist/commit/63e7ed05")],
            )
        ],
    )


@pytest.fixture
def lock_document():
    """Decoded bun.lock with two resolved packages."""
    return {
        "lockfileVersion": 1,
        "workspaces": {"": {"name": "app"}},
        "packages": {
            "event-stream": ["event-stream@3.3.6", "", {}, "sha512-abc"],
            "minimist": ["minimist@1.2.0", "", {}, "sha512-def"],
        },
    }


@pytest.fixture
def host_packages():
    return [
        {"name": "event-stream", "version": "3.3.6"},
        {"name": "minimist", "version": "1.2.0"},
    ]


@pytest.fixture
def failing_adapter():
    return StubAdapter(error=OsvSourceError("HTTP 503: upstream unavailable"))
