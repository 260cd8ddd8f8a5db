"""CLI commands for reading jobs from the job service."""

import json
import sys

import click
from rich.console import Console
from rich.table import Table

from candid.cli.context import EXIT_ERROR, EXIT_SUCCESS, ConfigContext, pass_config
from candid.core.exceptions import JobServiceError
from candid.jobs import Job, JobServiceClient


def _report_service_error(action: str, error: JobServiceError) -> None:
    hint = " (retry may succeed)" if error.retryable else ""
    click.echo(f"Error {action}: {error}{hint}", err=True)


def _job_json(job: Job) -> dict:
    return job.model_dump(mode="json", by_alias=True, exclude_none=True)


@click.group(name="jobs")
def jobs_command() -> None:
    """Read jobs from the job service.

    Examples:

      candid jobs list
      candid jobs show 42 --output=json
    """


@jobs_command.command(name="list")
@click.option(
    "--output",
    "-o",
    type=click.Choice(["console", "json"]),
    default="console",
    help="Output format",
)
@pass_config
def list_jobs(config_ctx: ConfigContext, output: str) -> None:
    """List all jobs.

    Exit Codes:

      0 - Success
      2 - Job service error
    """
    try:
        with JobServiceClient.from_settings(config_ctx.get_settings()) as client:
            jobs = client.list_jobs()
    except JobServiceError as e:
        _report_service_error("loading jobs", e)
        sys.exit(EXIT_ERROR)

    if output == "json":
        click.echo(json.dumps([_job_json(job) for job in jobs], indent=2))
        sys.exit(EXIT_SUCCESS)

    console = Console()
    if not jobs:
        console.print("No jobs found.")
        sys.exit(EXIT_SUCCESS)

    table = Table(title="Jobs", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="green")
    table.add_column("Department", style="magenta")
    table.add_column("Criteria", justify="right")
    table.add_column("Multi-HR")

    for job in jobs:
        table.add_row(
            job.id or "",
            job.title,
            job.department,
            str(len(job.criteria)),
            "[green]Yes[/green]" if job.uses_multiple_hr else "[dim]No[/dim]",
        )

    console.print(table)
    console.print(f"\nTotal: {len(jobs)} job(s)")
    sys.exit(EXIT_SUCCESS)


@jobs_command.command(name="show")
@click.argument("job_id")
@click.option(
    "--output",
    "-o",
    type=click.Choice(["console", "json"]),
    default="console",
    help="Output format",
)
@pass_config
def show_job(config_ctx: ConfigContext, job_id: str, output: str) -> None:
    """Show one job and its criteria.

    Exit Codes:

      0 - Success
      2 - Job service error
    """
    try:
        with JobServiceClient.from_settings(config_ctx.get_settings()) as client:
            job = client.get_job(job_id)
    except JobServiceError as e:
        _report_service_error(f"loading job {job_id}", e)
        sys.exit(EXIT_ERROR)

    if output == "json":
        click.echo(json.dumps(_job_json(job), indent=2))
        sys.exit(EXIT_SUCCESS)

    console = Console()
    console.print(f"[bold]{job.title}[/bold]  {job.department}  {job.location}")
    if job.description:
        console.print(job.description)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Criterion", style="green")
    table.add_column("Weight", style="yellow", justify="right")
    table.add_column("Description", style="dim")
    for criterion in job.criteria:
        table.add_row(
            criterion.name, f"{criterion.weight:.2f}", criterion.description or ""
        )
    console.print(table)

    if job.final_weights:
        finalized = ", ".join(f"{k}={v:.2f}" for k, v in job.final_weights.items())
        console.print(f"Final weights: {finalized}")

    sys.exit(EXIT_SUCCESS)
