"""
Generate human-readable reports in Markdown format.

RunReporter turns RunMetrics and quality check results into a Markdown run
report, and renders lookup results as a table for the query command.

Report sections:
- Header with run metadata (ID, timestamp, duration)
- Summary table with refresh counts
- Per-target status
- Data quality check results

Design decisions:
- Uses tabulate for table formatting (GitHub-flavored)
- Reports saved with timestamp for historical tracking
- Run metrics saved alongside as JSON (RunMetrics.to_dict)
"""
import json
from datetime import datetime
from pathlib import Path
from typing import List

from tabulate import tabulate

from storage.models import Definition

from .metrics import RunMetrics
from .quality_checks import QualityCheckResult


class RunReporter:
    """Generates Markdown reports from refresh run metrics."""

    def generate_report(
        self,
        metrics: RunMetrics,
        quality_results: List[QualityCheckResult]
    ) -> str:
        """
        Generate full run report in Markdown format.

        Args:
            metrics: RunMetrics object from completed run
            quality_results: List of quality check results

        Returns:
            Markdown-formatted report as string
        """
        lines = []

        lines.append("# OVAL Refresh Report")
        lines.append(f"**Run ID:** {metrics.run_id}")
        lines.append(f"**Started:** {metrics.started_at.isoformat()}")
        if metrics.completed_at:
            duration = (metrics.completed_at - metrics.started_at).total_seconds()
            lines.append(f"**Duration:** {duration:.1f} seconds")
        lines.append("")

        lines.append("## Summary")
        summary_data = [
            ["Targets", metrics.targets_total],
            ["Refreshed", metrics.refreshed],
            ["Skipped (same timestamp)", metrics.skipped],
            ["Failed", metrics.failed],
            ["Definitions Stored", metrics.definitions_stored],
            ["Errors", metrics.errors],
        ]
        lines.append(tabulate(summary_data, headers=["Metric", "Value"], tablefmt="github"))
        lines.append("")

        if metrics.target_health:
            lines.append("## Targets")
            target_data = []
            for target, health in sorted(metrics.target_health.items()):
                status = "✓" if health.get("status") != "failed" else "✗"
                target_data.append([
                    status,
                    target,
                    health.get("status"),
                    health.get("file") or "",
                    health.get("definitions", 0),
                    health.get("error") or "",
                ])
            lines.append(tabulate(
                target_data,
                headers=["", "Target", "Status", "File", "Definitions", "Error"],
                tablefmt="github",
            ))
            lines.append("")

        lines.append("## Data Quality Checks")
        quality_data = []
        for qr in quality_results:
            status = "✓" if qr.passed else "✗"
            quality_data.append([status, qr.check_name, qr.message])
        lines.append(tabulate(quality_data, headers=["Status", "Check", "Details"], tablefmt="github"))
        lines.append("")

        return "\n".join(lines)

    def render_definitions(self, definitions: List[Definition]) -> str:
        """Render lookup results as one table row per definition."""
        rows = []
        for d in definitions:
            rows.append([
                d.definition_id,
                d.title,
                d.severity,
                ", ".join(d.cve_ids),
                ", ".join(f"{p.name} {p.version}".strip() for p in d.affected_packs),
            ])
        return tabulate(rows, headers=["Definition", "Title", "Severity", "CVEs", "Packages"], tablefmt="github")

    def save_report(self, report: str, output_dir: Path) -> Path:
        """
        Save report to file with timestamp.

        Returns:
            Path to saved report file
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.utcnow().strftime("%Y%m%d-%H%M%S")
        filepath = output_dir / f"refresh-report-{timestamp}.md"
        filepath.write_text(report)
        return filepath

    def save_metrics(self, metrics: RunMetrics, output_dir: Path) -> Path:
        """
        Save the run metrics as JSON next to the Markdown report.

        Returns:
            Path to saved metrics file
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        filepath = output_dir / f"refresh-metrics-{metrics.run_id}.json"
        filepath.write_text(json.dumps(metrics.to_dict(), indent=2))
        return filepath
