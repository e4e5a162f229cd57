"""Scan report generation.

Provides:
- ReportGenerator: Markdown reports from Jinja2 templates
- export_html: Markdown to styled HTML
- save_dast_report: Engine-provided DAST HTML report passthrough
"""

from secure_engine.core.reporting.export import export_html, save_dast_report
from secure_engine.core.reporting.generator import ReportGenerator

__all__ = ["ReportGenerator", "export_html", "save_dast_report"]
