"""AsyncClick CLI for the scan service.

Provides user-facing commands:
- upload: Upload a file for SAST scanning and show the result
- dast: Run a DAST scan against a URL and show the result
- show: Load a past scan by id and show it
- history: Page through past scans
"""

from pathlib import Path

import asyncclick as click
import structlog

from secure_engine.client.service import ScanServiceClient
from secure_engine.core.config import load_config
from secure_engine.core.errors import SecureEngineError
from secure_engine.core.models import PendingFile, ScanResult, SessionPhase, SessionState
from secure_engine.core.output import format_history_page, format_scan_result
from secure_engine.core.reporting import ReportGenerator, export_html, save_dast_report
from secure_engine.history.paginator import HistoryPaginator
from secure_engine.session.controller import ScanSessionController

logger = structlog.get_logger()


def init_client() -> ScanServiceClient:
    """Build the scan service client from environment configuration."""
    return ScanServiceClient.from_config(load_config())


def _controller(client) -> ScanSessionController:
    return ScanSessionController(client, policy=load_config().scoring_policy())


def write_report(result: ScanResult, path: str) -> str:
    """Write a markdown report, or an HTML report when ``path`` ends in .html."""
    report_md = ReportGenerator().generate(result)
    if Path(path).suffix.lower() in (".html", ".htm"):
        return export_html(report_md, path)
    Path(path).write_text(report_md, encoding="utf-8")
    return path


def _finish(ctx, state: SessionState, report: str | None) -> None:
    """Print the session outcome; exit 1 if it ended in ERROR."""
    if state.phase == SessionPhase.ERROR or state.current_result is None:
        click.echo(f"\n[-] {state.last_error or 'Scan failed'}")
        ctx.exit(1)

    result = state.current_result
    click.echo(format_scan_result(result))
    if report:
        click.echo(f"[+] Report written to {write_report(result, report)}")


@click.group()
@click.pass_context
async def cli(ctx):
    """Secure Engine - SAST/DAST scan client"""
    ctx.ensure_object(dict)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--report", "-r", default=None, help="Write a report (.md or .html)")
@click.pass_context
async def upload(ctx, file: str, report: str | None):
    """Upload a file for SAST scanning.

    Examples:
        secure-engine upload app.zip
        secure-engine upload app.zip --report report.html
    """
    controller = _controller(init_client())

    try:
        controller.select_file(PendingFile.from_path(file))
    except SecureEngineError as e:
        click.echo(f"[-] {e}")
        ctx.exit(1)

    click.echo(f"[*] Uploading {file} for SAST scan...")
    state = await controller.start_sast_scan()
    _finish(ctx, state, report)


@cli.command()
@click.argument("url")
@click.option("--report", "-r", default=None, help="Write a report (.md or .html)")
@click.option("--engine-report", default=None, help="Save the engine's own HTML report")
@click.pass_context
async def dast(ctx, url: str, report: str | None, engine_report: str | None):
    """Run a DAST scan against a target URL.

    Examples:
        secure-engine dast https://example.com
        secure-engine dast https://example.com --engine-report zap.html
    """
    controller = _controller(init_client())

    click.echo(f"[*] Running DAST scan against {url}...")
    try:
        state = await controller.start_dast_scan(url)
    except SecureEngineError as e:
        click.echo(f"[-] {e}")
        ctx.exit(1)

    _finish(ctx, state, report)

    if engine_report:
        try:
            save_dast_report(state.current_result, engine_report)
        except SecureEngineError as e:
            click.echo(f"[!] {e}")
        else:
            click.echo(f"[+] Engine report saved to {engine_report}")


@cli.command()
@click.argument("scan_id")
@click.option("--report", "-r", default=None, help="Write a report (.md or .html)")
@click.pass_context
async def show(ctx, scan_id: str, report: str | None):
    """Show a past scan by id.

    Example:
        secure-engine show 3f2b8c1e-...
    """
    controller = _controller(init_client())

    try:
        state = await controller.select_history_entry(scan_id)
    except SecureEngineError as e:
        click.echo(f"[-] {e}")
        ctx.exit(1)

    _finish(ctx, state, report)


@cli.command()
@click.option("--page", "-p", default=1, type=click.IntRange(min=1), help="Page number (1-based)")
@click.option("--page-size", "-n", default=None, type=click.IntRange(min=1), help="Rows per page")
@click.pass_context
async def history(ctx, page: int, page_size: int | None):
    """List past scans, newest first.

    Examples:
        secure-engine history
        secure-engine history --page 2 --page-size 20
    """
    config = load_config()
    paginator = HistoryPaginator(
        init_client(), page_size=config.history_page_size, policy=config.scoring_policy()
    )

    try:
        history_page = await paginator.get_page(page - 1, page_size)
    except SecureEngineError as e:
        click.echo(f"[-] Error loading history: {e}")
        ctx.exit(1)

    click.echo(format_history_page(history_page))
    if history_page.has_next:
        click.echo(f"[*] Next page: secure-engine history --page {page + 1}")


if __name__ == "__main__":
    cli()
