"""Tests for plain-text output formatting."""

from datetime import datetime

import pytest

from secure_engine.core.models import (
    FindingLocation,
    HistoryPage,
    NormalizedFinding,
    ScanKind,
)
from secure_engine.core.normalizer import parse_history_entry, parse_scan_result
from secure_engine.core.output import (
    format_duration,
    format_finding,
    format_history_page,
    format_risk,
    format_scan_result,
    format_timestamp,
    risk_level,
)


@pytest.mark.parametrize(
    "seconds,expected",
    [(125.4, "2m 5s"), (0, "0m 0s"), (59.6, "1m 0s"), (3600, "60m 0s"), (None, "N/A")],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_format_timestamp():
    assert format_timestamp(datetime(2024, 5, 1, 12, 30)) == "2024-05-01 12:30:00"
    assert format_timestamp("2024-05-01T12:30:00Z", "%Y-%m-%d") == "2024-05-01"
    assert format_timestamp("yesterday") == "N/A"
    assert format_timestamp(None) == "N/A"


@pytest.mark.parametrize("value,level", [(0.9, "error"), (0.8, "error"), (0.5, "warning"), (0.2, "info")])
def test_risk_level(value, level):
    assert risk_level(value) == level


def test_format_risk():
    assert format_risk(0.756) == "Risk: 76%"


def test_format_finding_sast():
    finding = NormalizedFinding(
        id="rule.eval",
        scan_kind=ScanKind.SAST,
        severity_raw="error",
        message="Detected use of eval()",
        location=FindingLocation(path="app.py", start_line=10, end_line=12),
        risk_severity=0.9,
        solution="Avoid eval",
    )

    text = format_finding(finding)

    assert text.startswith("[ERROR] Detected use of eval()")
    assert "Location: app.py:10-12" in text
    assert "Risk: 90% (error)" in text
    assert "Solution: Avoid eval" in text


def test_format_finding_dast_shows_engine_severity():
    finding = NormalizedFinding(
        id="10038",
        scan_kind=ScanKind.DAST,
        severity_raw="warning",
        engine_severity="Medium",
        message="CSP header not set",
        url="https://example.com/",
    )

    text = format_finding(finding)

    assert text.startswith("[WARNING] CSP header not set")
    assert "URL: https://example.com/" in text
    assert "Engine severity: Medium" in text


def test_format_scan_result(sast_payload):
    result = parse_scan_result(sast_payload, ScanKind.SAST)

    text = format_scan_result(result)

    assert "Security Score: 6.5/10 (fair)" in text
    assert "Target: app.zip" in text
    assert "Duration: 2m 5s" in text
    assert "1 Vulnerabilities | 1 Warnings | 1 Info" in text
    assert text.index("[ERROR]") < text.index("[WARNING]") < text.index("[INFO]")


def test_format_scan_result_without_findings():
    result = parse_scan_result({}, ScanKind.SAST, target="clean.zip")

    text = format_scan_result(result)

    assert "No findings reported." in text
    assert "Duration: N/A" in text


def test_format_history_page():
    entries = [
        parse_history_entry({"id": "scan-1", "file_name": "a.zip", "security_score": 8}),
        parse_history_entry({"id": "scan-2", "target_url": "https://example.com"}),
    ]
    page = HistoryPage(entries=entries, offset=0, limit=2, total_count=5)

    text = format_history_page(page)

    assert "scan-1" in text
    assert "https://example.com" in text
    assert "Page 1 of 3 (5 scans)" in text


def test_format_empty_history_page():
    assert format_history_page(HistoryPage()) == "No scans found."
