"""Report file export.

Converts markdown scan reports to styled HTML documents, and saves the
HTML report a DAST engine attaches to its result.
"""

from pathlib import Path

import markdown
import structlog

from secure_engine.core.errors import ValidationError
from secure_engine.core.models import ScanResult

logger = structlog.get_logger()


def export_html(markdown_content: str, output_path: str) -> str:
    """Export markdown report to styled HTML document.

    Tables, fenced code and a TOC are enabled; the body is wrapped in a
    minimal styled page.

    Args:
        markdown_content: Markdown report string
        output_path: Path to write HTML file

    Returns:
        Path to written HTML file

    Example:
        >>> report_md = ReportGenerator().generate(result)
        >>> html_path = export_html(report_md, "/tmp/report.html")
    """
    html_body = markdown.markdown(
        markdown_content,
        extensions=["tables", "fenced_code", "toc"],
    )

    html_document = f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Security Scan Report</title>
    <style>
        body {{
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Arial, sans-serif;
            line-height: 1.6;
            max-width: 960px;
            margin: 0 auto;
            padding: 20px;
            color: #333;
        }}
        h1 {{ border-bottom: 3px solid #3498db; padding-bottom: 10px; }}
        h2 {{ border-bottom: 2px solid #95a5a6; padding-bottom: 8px; }}
        table {{ border-collapse: collapse; width: 100%; margin: 20px 0; }}
        th, td {{ border: 1px solid #ddd; padding: 10px; text-align: left; }}
        th {{ background-color: #34495e; color: white; }}
        pre {{ background-color: #2c3e50; color: #ecf0f1; padding: 12px; overflow-x: auto; }}
        code {{ font-family: "Courier New", monospace; }}
    </style>
</head>
<body>
{html_body}
</body>
</html>
"""

    Path(output_path).write_text(html_document, encoding="utf-8")
    logger.info("report_exported", path=output_path, format="html")
    return output_path


def save_dast_report(result: ScanResult, output_path: str) -> str:
    """Write the engine-provided HTML report of a DAST result as-is.

    Raises:
        ValidationError: The result carries no HTML report
    """
    if not result.report_html:
        raise ValidationError("Scan result has no engine HTML report")
    Path(output_path).write_text(result.report_html, encoding="utf-8")
    logger.info("report_exported", path=output_path, format="engine_html", scan_id=result.scan_id)
    return output_path
