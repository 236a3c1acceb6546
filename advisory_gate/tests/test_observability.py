"""
Tests for scan metrics and the Markdown reporter.
"""
from datetime import datetime, timedelta

import pytest

from advisory_gate.models import Advisory, LEVEL_FATAL, LEVEL_WARN
from advisory_gate.observability import ScanMetrics, ScanReporter


@pytest.fixture
def metrics():
    started = datetime(2024, 1, 15, 10, 0, 0)
    m = ScanMetrics(run_id="run_20240115_100000", started_at=started)
    m.completed_at = started + timedelta(seconds=2.5)
    m.packages_scanned = 12
    m.findings_total = 2
    m.record_rule_fired("FATAL_LABEL")
    m.record_rule_fired("WARN_SCORE")
    m.record_rule_fired("FATAL_LABEL")
    m.source_health["osv_api"] = {"healthy": True, "records": 2, "error": None}
    return m


@pytest.fixture
def advisories():
    return [
        Advisory(level=LEVEL_FATAL, package="event-stream",
                 url="https://github.com/advisories/GHSA-mh6f-8j2x-4483",
                 description="Critical severity vulnerability " * 5),
        Advisory(level=LEVEL_WARN, package="minimist"),
    ]


class TestScanMetrics:
    """Test metric bookkeeping."""

    def test_record_advisories(self, metrics, advisories):
        metrics.record_advisories(advisories)

        assert metrics.advisories_total == 2
        assert metrics.level_counts == {"fatal": 1, "warn": 1}
        assert metrics.blocked

    def test_not_blocked_without_fatal(self, metrics):
        metrics.record_advisories([Advisory(level=LEVEL_WARN, package="x")])

        assert not metrics.blocked

    def test_record_policy(self, metrics):
        before = [Advisory(level=LEVEL_WARN, package="a"), Advisory(level=LEVEL_FATAL, package="b")]
        after = [Advisory(level=LEVEL_FATAL, package="a"), Advisory(level=LEVEL_FATAL, package="b")]

        metrics.record_policy(before, after)

        assert metrics.escalated == 1
        assert metrics.downgraded == 0

    def test_to_dict(self, metrics):
        metrics.record_error("boom", {"error_type": "OsvSourceError"})

        data = metrics.to_dict()

        assert data["rules_fired"] == {"FATAL_LABEL": 2, "WARN_SCORE": 1}
        assert data["errors"] == 1
        assert data["started_at"] == "2024-01-15T10:00:00"
        assert data["error_messages"][0]["context"]["error_type"] == "OsvSourceError"


class TestScanReporter:
    """Test Markdown report rendering."""

    def test_report_sections(self, metrics, advisories):
        metrics.record_advisories(advisories)

        report = ScanReporter().generate_report(metrics, advisories)

        assert "# Dependency Scan Report" in report
        assert "**Verdict:** BLOCK" in report
        assert "**Duration:** 2.5 seconds" in report
        assert "## Advisories" in report
        assert "## Rules Fired" in report
        assert "## Source Health" in report
        assert "event-stream" in report

    def test_long_descriptions_shortened(self, metrics, advisories):
        report = ScanReporter().generate_report(metrics, advisories)

        assert "Critical severity vulnerability " * 5 not in report
        assert "..." in report

    def test_clean_report_omits_advisories(self, metrics):
        report = ScanReporter().generate_report(metrics, [])

        assert "**Verdict:** ALLOW" in report
        assert "## Advisories" not in report

    def test_save_report(self, metrics, tmp_path):
        reporter = ScanReporter()

        path = reporter.save_report("# report", tmp_path / "out", metrics.run_id)

        assert path.name == "scan_report_run_20240115_100000.md"
        assert path.read_text(encoding="utf-8") == "# report"
