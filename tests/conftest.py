"""Shared payload fixtures modelled on real scan service responses."""

import pytest


@pytest.fixture
def sast_payload():
    """SAST result as returned by POST /scan/upload."""
    return {
        "scan_id": "sast-001",
        "file_name": "app.zip",
        "scan_timestamp": "2024-05-01T12:30:00Z",
        "scan_duration": 125.4,
        "security_score": 6.45,
        "severity_count": {"ERROR": 1, "WARNING": 1, "INFO": 1},
        "vulnerabilities": [
            {
                "check_id": "python.lang.security.audit.eval-detected",
                "path": "src/app.py",
                "start": {"line": 10},
                "end": {"line": 12},
                "extra": {
                    "message": "Detected use of eval()",
                    "severity": "ERROR",
                    "solution": "Avoid eval on user input",
                },
                "risk_severity": 0.9,
            },
            {
                "check_id": "python.flask.debug-enabled",
                "path": "src/server.py",
                "start": {"line": 3},
                "end": {"line": 3},
                "extra": {"message": "Flask debug mode enabled", "severity": "WARNING"},
            },
            {
                "check_id": "generic.comment.todo",
                "path": "README.md",
                "start": {"line": 1},
                "end": {"line": 1},
                "extra": {"message": "TODO comment", "severity": "INFO"},
            },
        ],
    }


@pytest.fixture
def dast_payload():
    """DAST result as returned by POST /scan/dast (ZAP-style alerts)."""
    return {
        "target_url": "https://example.com",
        "vulnerabilities": [
            {
                "pluginid": "40012",
                "name": "Cross Site Scripting (Reflected)",
                "risk": "High",
                "description": "Reflected XSS in the q parameter",
                "solution": "Encode output",
                "cweid": "79",
                "wascid": "8",
                "evidence": "<script>alert(1)</script>",
                "confidence": "Medium",
                "url": "https://example.com/search?q=x",
            },
            {
                "pluginid": "10038",
                "name": "Content Security Policy Header Not Set",
                "risk": "Medium",
                "url": "https://example.com/",
            },
            {
                "pluginid": "10096",
                "name": "Timestamp Disclosure",
                "risk": "Informational",
            },
        ],
        "scan_metadata": {
            "scan_type": "DAST",
            "scan_duration": 61,
            "scan_date": "2024-05-02T08:00:00+00:00",
            "report_html": "<html><body>ZAP report</body></html>",
        },
    }
