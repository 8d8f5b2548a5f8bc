"""
Command Line Interface for artifact quota reclamation.
"""

import asyncio
from typing import List, Optional

import structlog
import typer
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.traceback import Traceback

from ..config import Settings, build_config, format_size, load_settings
from ..errors import ReclaimError
from ..integrations.github import GitHubActionsClient
from ..log import configure_logging
from ..reclaim.pipeline import ReclaimResult, run_reclaim

app = typer.Typer(help="Artifact Quota - keep workflow artifact storage under a limit")
console = Console()
err_console = Console(stderr=True)
logger = structlog.get_logger()


async def _reclaim(settings: Settings) -> ReclaimResult:
    config = build_config(settings)
    async with GitHubActionsClient(config.token, api_url=config.api_url) as client:
        return await run_reclaim(config, client)


def _render_result(result: ReclaimResult) -> None:
    report = result.report
    summary = (
        f"Pending upload: {format_size(result.estimate.size)} ({result.estimate.mode})\n"
        f"Current artifacts: {format_size(result.quota.existing_size)} "
        f"in {len(result.inventory)} artifacts\n"
        f"Limit: {format_size(result.quota.limit)}\n"
        f"Deleted: {report.deleted_count} artifacts, {format_size(report.deleted_size)} freed\n"
        f"Available: {format_size(result.available_headroom)}"
    )
    rprint(Panel.fit(summary, title="Artifact Quota", style="bold green"))

    grouped = report.by_run()
    if not grouped:
        return

    table = Table(title="Deleted Artifacts", show_header=True, header_style="bold magenta")
    table.add_column("Run", style="cyan")
    table.add_column("Workflow", style="yellow")
    table.add_column("Artifacts")
    table.add_column("Size", style="green")
    for run_id, artifacts in grouped.items():
        table.add_row(
            str(run_id),
            str(artifacts[0].workflow_id or "-"),
            ", ".join(a.name for a in artifacts),
            format_size(sum(a.size for a in artifacts)),
        )
    console.print(table)


def _report_failure(error: BaseException, fail_on_error: bool) -> None:
    err_console.print(Traceback.from_exception(type(error), error, error.__traceback__))
    if fail_on_error:
        raise typer.Exit(code=1)
    logger.error("reclaim_failed", error=str(error), error_type=type(error).__name__)


@app.command()
def reclaim(
    limit: Optional[str] = typer.Option(None, help="Storage limit, e.g. '1GB'"),
    request_size: Optional[str] = typer.Option(None, help="Declared size of the upload"),
    reserved_size: Optional[str] = typer.Option(None, help="Fixed size to reserve instead of measuring"),
    upload_path: Optional[List[str]] = typer.Option(None, help="Path to measure (repeatable)"),
    remove_direction: Optional[str] = typer.Option(None, help="Evict 'oldest' or 'newest' first"),
    compression_level: Optional[str] = typer.Option(None, help="Zip level 0-9 for measuring"),
    count_unnamed: Optional[bool] = typer.Option(None, help="Count unnamed artifacts toward freed size"),
    max_retries: Optional[int] = typer.Option(None, help="Retries per remote call"),
    retries_enabled: Optional[bool] = typer.Option(None, help="Retry on rate limiting and transient errors"),
    page_size: Optional[int] = typer.Option(None, help="Items per listing page"),
    fail_on_error: Optional[bool] = typer.Option(None, help="Exit non-zero on failure"),
    repository: Optional[str] = typer.Option(None, help="owner/repo (default: GITHUB_REPOSITORY)"),
    token: Optional[str] = typer.Option(None, help="GitHub token (default: GITHUB_TOKEN)"),
    api_url: Optional[str] = typer.Option(None, help="GitHub API URL"),
    log_level: Optional[str] = typer.Option(None, help="Log level"),
    log_format: Optional[str] = typer.Option(None, help="'console' or 'json'"),
):
    """Delete old artifacts until the pending upload fits under the limit."""
    overrides = {
        "limit": limit,
        "request_size": request_size,
        "reserved_size": reserved_size,
        "upload_paths": "\n".join(upload_path) if upload_path else None,
        "remove_direction": remove_direction,
        "compression_level": compression_level,
        "count_unnamed": count_unnamed,
        "max_retries": max_retries,
        "retries_enabled": retries_enabled,
        "page_size": page_size,
        "fail_on_error": fail_on_error,
        "github_repository": repository,
        "github_token": token,
        "github_api_url": api_url,
        "log_level": log_level,
        "log_format": log_format,
    }

    try:
        settings = load_settings(**{k: v for k, v in overrides.items() if v is not None})
    except ReclaimError as e:
        _report_failure(e, fail_on_error if fail_on_error is not None else True)
        return

    configure_logging(settings.log_level, settings.log_format)

    try:
        result = asyncio.run(_reclaim(settings))
    except Exception as e:
        _report_failure(e, settings.fail_on_error)
        return

    _render_result(result)


@app.command()
def version():
    """Show version information."""
    from .. import __version__

    rprint(Panel.fit(f"Artifact Quota v{__version__}", style="bold green"))


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
