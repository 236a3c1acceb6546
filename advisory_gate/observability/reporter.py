"""
Generate human-readable scan reports in Markdown format.

This module provides ScanReporter, which renders ScanMetrics and the final
advisory list as a Markdown document.

Report sections:
- Header with run metadata (ID, timestamp, duration, verdict)
- Summary table with core metrics
- Advisories table (level, package, description, link)
- Rules fired and their frequency
- Source health status
"""
from datetime import datetime
from typing import List
from pathlib import Path
from tabulate import tabulate

from ..models import Advisory
from .metrics import ScanMetrics

DESCRIPTION_WIDTH = 80


class ScanReporter:
    """
    Generates Markdown reports from scan metrics and advisories.

    Reports render as plain text in a terminal and as tables on GitHub.
    """

    def generate_report(self, metrics: ScanMetrics, advisories: List[Advisory]) -> str:
        """
        Generate full scan report in Markdown format.

        Args:
            metrics: ScanMetrics object from a completed scan
            advisories: Final advisories returned to the host

        Returns:
            Markdown-formatted report as string
        """
        lines = []

        lines.append("# Dependency Scan Report")
        lines.append(f"**Run ID:** {metrics.run_id}")
        lines.append(f"**Started:** {metrics.started_at.isoformat()}")
        if metrics.completed_at:
            duration = (metrics.completed_at - metrics.started_at).total_seconds()
            lines.append(f"**Duration:** {duration:.1f} seconds")
        lines.append(f"**Verdict:** {'BLOCK' if metrics.blocked else 'ALLOW'}")
        lines.append("")

        lines.append("## Summary")
        summary_data = [
            ["Packages Scanned", metrics.packages_scanned],
            ["Findings", metrics.findings_total],
            ["Advisories", metrics.advisories_total],
            ["Fatal", metrics.level_counts.get("fatal", 0)],
            ["Warn", metrics.level_counts.get("warn", 0)],
            ["Escalated", metrics.escalated],
            ["Downgraded", metrics.downgraded],
            ["Lockfile Drift", "yes" if metrics.drift_detected else "no"],
            ["Errors", metrics.errors],
        ]
        lines.append(tabulate(summary_data, headers=["Metric", "Value"], tablefmt="github"))
        lines.append("")

        if advisories:
            lines.append("## Advisories")
            advisory_data = [
                [a.level, a.package, _shorten(a.description), a.url or ""]
                for a in advisories
            ]
            lines.append(tabulate(advisory_data, headers=["Level", "Package", "Description", "URL"], tablefmt="github"))
            lines.append("")

        if metrics.rules_fired:
            lines.append("## Rules Fired")
            rules_data = [[k, v] for k, v in sorted(metrics.rules_fired.items())]
            lines.append(tabulate(rules_data, headers=["Rule", "Count"], tablefmt="github"))
            lines.append("")

        if metrics.source_health:
            lines.append("## Source Health")
            health_data = []
            for source, health in metrics.source_health.items():
                status = "✓" if health.get("healthy", False) else "✗"
                health_data.append([status, source, health.get("records", 0), health.get("error") or ""])
            lines.append(tabulate(health_data, headers=["Status", "Source", "Findings", "Error"], tablefmt="github"))
            lines.append("")

        return "\n".join(lines)

    def save_report(self, report: str, output_dir: Path, run_id: str = None) -> Path:
        """
        Save report to file named after the run (or a timestamp).

        Args:
            report: Markdown report content
            output_dir: Directory to save report in
            run_id: Optional run identifier used in the file name

        Returns:
            Path to saved report file
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        suffix = run_id or datetime.utcnow().strftime("%Y%m%d-%H%M%S")
        filepath = output_dir / f"scan_report_{suffix}.md"
        filepath.write_text(report, encoding="utf-8")
        return filepath


def _shorten(text, width: int = DESCRIPTION_WIDTH) -> str:
    if not text:
        return ""
    text = " ".join(str(text).split())
    return text if len(text) <= width else text[:width - 3] + "..."
