"""Markdown scan report generator with Jinja2 templates.

Renders a normalized ScanResult as a markdown report: summary with score and
per-bucket counts, then findings grouped by severity bucket, with remediation
guidance deduplicated by check id.
"""

from datetime import datetime, timezone
from pathlib import Path

import structlog
from jinja2 import Environment, FileSystemLoader

from secure_engine.core.models import NormalizedFinding, ScanResult, SeverityBucket
from secure_engine.core.output import format_duration, format_timestamp
from secure_engine.core.scoring import score_rating
from secure_engine.core.severity import BUCKET_ORDER, classify

logger = structlog.get_logger()

BUCKET_TITLES = {
    SeverityBucket.VULNERABLE: "Vulnerable",
    SeverityBucket.MODERATE: "Moderate",
    SeverityBucket.INFO: "Informational",
}


class ReportGenerator:
    """Generate markdown scan reports.

    Produces reports with:
    - Summary with security score, rating and scan information
    - Findings grouped by severity bucket, most severe first
    - Remediation guidance, one entry per distinct check
    """

    def __init__(self, template_dir: str | None = None):
        """Initialize report generator with Jinja2 templates.

        Args:
            template_dir: Path to template directory (defaults to ./templates/)
        """
        if template_dir is None:
            template_dir = str(Path(__file__).parent / "templates")
        self.env = Environment(loader=FileSystemLoader(template_dir))

        self.env.globals["render_finding"] = self._render_finding

    def generate(self, result: ScanResult) -> str:
        """Generate a markdown report for one scan result.

        Args:
            result: Normalized, scored scan result

        Returns:
            Markdown report string

        Example:
            >>> generator = ReportGenerator()
            >>> report = generator.generate(result)
        """
        buckets = classify(result.findings)
        sections = [
            {
                "title": BUCKET_TITLES[bucket],
                "count_key": bucket.count_key,
                "findings": buckets[bucket],
            }
            for bucket in BUCKET_ORDER
        ]

        context = {
            "result": result,
            "generated": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC"),
            "rating": score_rating(result.security_score),
            "scan_date": format_timestamp(result.scan_timestamp),
            "duration": format_duration(result.scan_duration_seconds),
            "counts": result.severity_count,
            "sections": sections,
            "remediation": self._remediation(result.findings),
        }

        logger.debug("report_rendering", scan_id=result.scan_id, findings=len(result.findings))
        template = self.env.get_template("scan_report.md.j2")
        return template.render(**context)

    def _remediation(self, findings: list[NormalizedFinding]) -> list[dict]:
        """One remediation entry per check id that carries a solution."""
        seen: dict[str, dict] = {}
        for finding in findings:
            if not finding.solution or finding.id in seen:
                continue
            seen[finding.id] = {
                "check_id": finding.id,
                "title": finding.message or finding.id,
                "solution": finding.solution,
                "reference": finding.reference,
            }
        return list(seen.values())

    def _render_finding(self, finding: NormalizedFinding) -> str:
        """Render a single finding as a markdown block.

        Args:
            finding: Finding to render

        Returns:
            Markdown string for the finding
        """
        lines = [f"#### {finding.message or finding.id}", ""]
        lines.append(f"- **Check:** `{finding.id}`")
        if finding.location is not None:
            lines.append(f"- **Location:** `{finding.location}`")
        if finding.url:
            lines.append(f"- **URL:** {finding.url}")
        if finding.engine_severity:
            lines.append(f"- **Engine severity:** {finding.engine_severity}")
        if finding.cwe_id:
            lines.append(f"- **CWE:** {finding.cwe_id}")
        if finding.confidence:
            lines.append(f"- **Confidence:** {finding.confidence}")
        if finding.description:
            lines.extend(["", finding.description])
        if finding.evidence:
            lines.extend(["", "```", finding.evidence, "```"])
        return "\n".join(lines)
