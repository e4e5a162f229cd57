"""Tests for markdown report generation and export."""

from pathlib import Path

import pytest

from secure_engine.core.errors import ValidationError
from secure_engine.core.models import ScanKind
from secure_engine.core.normalizer import parse_scan_result
from secure_engine.core.reporting import ReportGenerator, export_html, save_dast_report


@pytest.fixture
def sast_result(sast_payload):
    return parse_scan_result(sast_payload, ScanKind.SAST)


@pytest.fixture
def dast_result(dast_payload):
    return parse_scan_result(dast_payload, ScanKind.DAST)


def test_report_has_summary(sast_result):
    report = ReportGenerator().generate(sast_result)

    assert "# Security Scan Report" in report
    assert "**Target:** app.zip" in report
    assert "**Security score: 6.5/10** (fair)" in report
    assert "| Vulnerabilities (ERROR) | 1 |" in report


def test_report_groups_findings_by_bucket(sast_result):
    report = ReportGenerator().generate(sast_result)

    vulnerable = report.index("### Vulnerable (1)")
    moderate = report.index("### Moderate (1)")
    info = report.index("### Informational (1)")
    assert vulnerable < moderate < info
    assert "`src/app.py:10-12`" in report


def test_report_remediation_section(sast_result):
    report = ReportGenerator().generate(sast_result)

    assert "## Remediation" in report
    assert "Avoid eval on user input" in report


def test_report_dast_details(dast_result):
    report = ReportGenerator().generate(dast_result)

    assert "**Scan type:** DAST" in report
    assert "- **URL:** https://example.com/search?q=x" in report
    assert "- **CWE:** 79" in report
    assert "- **Engine severity:** High" in report


def test_report_without_findings():
    result = parse_scan_result({}, ScanKind.SAST, target="clean.zip")

    report = ReportGenerator().generate(result)

    assert "No findings were reported for this scan." in report
    assert "## Findings" not in report


def test_export_html(sast_result, tmp_path):
    report = ReportGenerator().generate(sast_result)
    output = tmp_path / "report.html"

    path = export_html(report, str(output))

    html = Path(path).read_text(encoding="utf-8")
    assert html.startswith("<!DOCTYPE html>")
    assert "<table>" in html
    assert "Security Scan Report" in html


def test_save_dast_report_writes_engine_html_unmodified(dast_result, tmp_path):
    output = tmp_path / "zap.html"

    save_dast_report(dast_result, str(output))

    assert output.read_text(encoding="utf-8") == "<html><body>ZAP report</body></html>"


def test_save_dast_report_without_html(sast_result, tmp_path):
    with pytest.raises(ValidationError):
        save_dast_report(sast_result, str(tmp_path / "none.html"))
