"""Plain-text rendering of scan results for terminal output.

Provides:
- format_duration: Seconds as "Xm Ys"
- format_timestamp: Datetime or ISO string, "N/A" when invalid
- risk_level / format_risk: Display band and label for a 0-1 risk severity
- format_finding: One finding as an indented block
- format_scan_result: Full result with score, scan info and findings
- format_history_page: History page as a table
"""

from datetime import datetime

from secure_engine.core.models import (
    HistoryPage,
    NormalizedFinding,
    ScanResult,
    SeverityBucket,
)
from secure_engine.core.scoring import score_rating
from secure_engine.core.severity import classify

NOT_AVAILABLE = "N/A"

BUCKET_LABELS = {
    SeverityBucket.VULNERABLE: "Vulnerabilities",
    SeverityBucket.MODERATE: "Warnings",
    SeverityBucket.INFO: "Info",
}

BUCKET_MARKERS = {
    SeverityBucket.VULNERABLE: "[ERROR]",
    SeverityBucket.MODERATE: "[WARNING]",
    SeverityBucket.INFO: "[INFO]",
}


def format_duration(seconds: float | None) -> str:
    """Format a duration as minutes and seconds.

    Example:
        >>> format_duration(125.4)
        '2m 5s'
        >>> format_duration(None)
        'N/A'
    """
    if seconds is None or isinstance(seconds, bool) or seconds != seconds:
        return NOT_AVAILABLE
    minutes = int(seconds // 60)
    remaining = round(seconds % 60)
    if remaining == 60:
        minutes, remaining = minutes + 1, 0
    return f"{minutes}m {remaining}s"


def format_timestamp(value: datetime | str | None, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
    """Format a timestamp, returning "N/A" for missing or unparsable values."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return NOT_AVAILABLE
    if not isinstance(value, datetime):
        return NOT_AVAILABLE
    return value.strftime(fmt)


def risk_level(risk_severity: float) -> str:
    """Band a 0-1 risk severity: error (>= 0.8), warning (>= 0.5), info."""
    if risk_severity >= 0.8:
        return "error"
    if risk_severity >= 0.5:
        return "warning"
    return "info"


def format_risk(risk_severity: float) -> str:
    return f"Risk: {risk_severity * 100:.0f}%"


def format_finding(finding: NormalizedFinding) -> str:
    """Format one finding with its location or URL and optional details."""
    marker = BUCKET_MARKERS[finding.severity_bucket]
    lines = [f"{marker} {finding.message or finding.id}"]

    if finding.location is not None:
        lines.append(f"    Location: {finding.location}")
    if finding.url:
        lines.append(f"    URL: {finding.url}")
    lines.append(f"    Check ID: {finding.id}")

    if finding.engine_severity and finding.engine_severity.lower() != finding.severity_raw.lower():
        lines.append(f"    Engine severity: {finding.engine_severity}")
    if finding.risk_severity is not None:
        lines.append(
            f"    {format_risk(finding.risk_severity)} ({risk_level(finding.risk_severity)})"
        )
    if finding.exploitability:
        lines.append(f"    Exploitability: {finding.exploitability}")
    if finding.impact:
        lines.append(f"    Impact: {finding.impact}")
    if finding.cwe_id:
        lines.append(f"    CWE: {finding.cwe_id}")
    if finding.detected_at is not None:
        lines.append(f"    Detected: {format_timestamp(finding.detected_at)}")
    if finding.description:
        lines.append(f"    {finding.description}")
    if finding.solution:
        lines.append(f"    Solution: {finding.solution}")
    return "\n".join(lines)


def format_scan_result(result: ScanResult) -> str:
    """Format a scan result with visual section separators.

    Args:
        result: Normalized, scored scan result

    Returns:
        Multi-line string for terminal output
    """
    output = []
    output.append("=" * 60)
    output.append(
        f"Security Score: {result.security_score}/10 ({score_rating(result.security_score)})"
    )
    output.append("=" * 60)
    output.append(f"Target: {result.target_descriptor or NOT_AVAILABLE}")
    output.append(f"Scan Type: {result.scan_kind.value}")
    output.append(f"Scan ID: {result.scan_id}")
    output.append(f"Date: {format_timestamp(result.scan_timestamp, '%Y-%m-%d')}")
    output.append(f"Time: {format_timestamp(result.scan_timestamp, '%H:%M:%S')}")
    output.append(f"Duration: {format_duration(result.scan_duration_seconds)}")

    counts = result.severity_count
    output.append("")
    output.append(
        " | ".join(
            f"{counts.for_bucket(bucket)} {label}" for bucket, label in BUCKET_LABELS.items()
        )
    )

    buckets = classify(result.findings)
    if result.findings:
        output.append("")
        output.append("Detailed Findings:")
        for bucket in BUCKET_LABELS:
            for finding in buckets[bucket]:
                output.append(format_finding(finding))
    else:
        output.append("\nNo findings reported.")

    output.append("=" * 60)
    return "\n".join(output)


def format_history_page(page: HistoryPage) -> str:
    """Format a history page as a fixed-width table with a page footer."""
    if not page.entries:
        return "No scans found."

    lines = [f"{'ID':<38} {'Target':<30} {'Scanned':<19} {'Score':>6} {'E/W/I':>10} {'Status':<10}"]
    for entry in page.entries:
        counts = entry.severity_count
        lines.append(
            f"{entry.id:<38} "
            f"{entry.target_descriptor[:30]:<30} "
            f"{format_timestamp(entry.scan_timestamp):<19} "
            f"{entry.security_score:>6.1f} "
            f"{f'{counts.ERROR}/{counts.WARNING}/{counts.INFO}':>10} "
            f"{entry.scan_status:<10}"
        )
    lines.append(
        f"\nPage {page.page_index + 1} of {max(page.page_count, 1)} "
        f"({page.total_count} scans)"
    )
    return "\n".join(lines)
