"""CLI commands for aggregating, validating and finalizing criterion weights."""

import json
import sys
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from candid.cli.context import (
    EXIT_ERROR,
    EXIT_FAILURE,
    EXIT_SUCCESS,
    ConfigContext,
    pass_config,
)
from candid.core.exceptions import JobServiceError, LoaderError
from candid.core.logging import bind_context
from candid.jobs import JobLoader, JobServiceClient, JobWithEvaluations
from candid.weighting import AggregatedWeights, WeightSummary

JOB_FILE = click.argument(
    "job_file", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)

OUTPUT_OPTION = click.option(
    "--output",
    "-o",
    type=click.Choice(["console", "json"]),
    default="console",
    help="Output format",
)


def load_job_or_exit(job_file: Path) -> JobWithEvaluations:
    """Load a job file, exiting with EXIT_ERROR when it is invalid."""
    try:
        return JobLoader().load_file(job_file)
    except LoaderError as e:
        click.echo(f"Error loading job file: {e}", err=True)
        sys.exit(EXIT_ERROR)


def _format_total(total: float, valid: bool) -> str:
    if valid:
        return f"[green]{total:.2f}[/green]"
    return f"[bold yellow]{total:.2f}[/bold yellow] (should equal 1.00)"


def _create_summary_table(title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Criterion", style="green", no_wrap=True)
    table.add_column("Baseline", style="dim", justify="right")
    table.add_column("Weight", style="yellow", justify="right")
    table.add_column("Share", justify="right")
    table.add_column("Evaluators", style="blue", justify="right")
    return table


def _output_summary_console(summary: WeightSummary, title: str) -> None:
    console = Console()
    table = _create_summary_table(title)

    for criterion in summary.criteria:
        contributors = (
            "baseline" if criterion.uses_baseline else str(criterion.contributors)
        )
        table.add_row(
            criterion.name,
            f"{criterion.baseline:.2f}",
            f"{criterion.weight:.2f}",
            f"{criterion.weight * 100:.0f}%",
            contributors,
        )

    console.print(table)
    console.print(f"\nTotal weight: {_format_total(summary.total, summary.valid)}")
    if summary.uses_multiple_hr:
        console.print(
            f"Evaluators: {summary.submitted_count} submitted, "
            f"{summary.pending_count} pending"
        )


def _output_weights_console(
    weights: AggregatedWeights, total: float, valid: bool, title: str
) -> None:
    console = Console()
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Criterion", style="green", no_wrap=True)
    table.add_column("Weight", style="yellow", justify="right")
    table.add_column("Share", justify="right")

    for name, weight in weights.items():
        table.add_row(name, f"{weight:.2f}", f"{weight * 100:.0f}%")

    console.print(table)
    console.print(f"\nTotal weight: {_format_total(total, valid)}")


def _weights_json(weights: AggregatedWeights, total: float, valid: bool) -> str:
    data: dict[str, Any] = {"weights": weights, "total": total, "valid": valid}
    return json.dumps(data, indent=2)


@click.group(name="weights")
def weights_command() -> None:
    """Aggregate and finalize criterion weights.

    A job file holds a job, its criteria and its HR evaluators. Weights of
    submitted evaluators are averaged per criterion; criteria nobody has
    weighted yet keep the job's baseline.

    Examples:

      candid weights show job.yaml
      candid weights validate job.yaml
      candid weights normalize job.yaml --output=json
      candid weights finalize job.yaml --job-id=42
    """


@weights_command.command(name="show")
@JOB_FILE
@OUTPUT_OPTION
@pass_config
def show_weights(config_ctx: ConfigContext, job_file: Path, output: str) -> None:
    """Show the aggregated weights of a job.

    Exit Codes:

      0 - Success
      2 - Invalid job file
    """
    job = load_job_or_exit(job_file)
    summary = config_ctx.aggregator().summarize(job, job.evaluators)

    if output == "json":
        click.echo(json.dumps(summary.to_dict(), indent=2))
    else:
        _output_summary_console(summary, title=f"Weights: {job.title}")

    sys.exit(EXIT_SUCCESS)


@weights_command.command(name="validate")
@JOB_FILE
@pass_config
def validate_weights(config_ctx: ConfigContext, job_file: Path) -> None:
    """Check that the aggregated weights sum to 1.

    Exit Codes:

      0 - Weights are valid
      1 - Weights do not sum to 1
      2 - Invalid job file
    """
    job = load_job_or_exit(job_file)
    aggregator = config_ctx.aggregator()
    weights = aggregator.resolve(job, job.evaluators)
    total = aggregator.total(weights)

    if aggregator.is_valid(weights):
        click.echo(f"Total weight: {total:.2f} (valid)")
        sys.exit(EXIT_SUCCESS)

    click.echo(f"Total weight: {total:.2f} (should equal 1.00)")
    sys.exit(EXIT_FAILURE)


@weights_command.command(name="normalize")
@JOB_FILE
@OUTPUT_OPTION
@pass_config
def normalize_weights(config_ctx: ConfigContext, job_file: Path, output: str) -> None:
    """Show the aggregated weights rescaled to sum to 1.

    Exit Codes:

      0 - Success
      2 - Invalid job file
    """
    job = load_job_or_exit(job_file)
    aggregator = config_ctx.aggregator()
    weights = aggregator.normalize(aggregator.resolve(job, job.evaluators))
    total = aggregator.total(weights)
    valid = aggregator.is_valid(weights)

    if output == "json":
        click.echo(_weights_json(weights, total, valid))
    else:
        _output_weights_console(
            weights, total, valid, title=f"Normalized weights: {job.title}"
        )

    sys.exit(EXIT_SUCCESS)


@weights_command.command(name="finalize")
@JOB_FILE
@click.option(
    "--job-id",
    type=str,
    help="Push the finalized weights to the job service for this job",
)
@OUTPUT_OPTION
@pass_config
def finalize_weights(
    config_ctx: ConfigContext,
    job_file: Path,
    job_id: str | None,
    output: str,
) -> None:
    """Finalize the weights of a job.

    Weights that do not sum to 1 are normalized first. With --job-id the
    result is stored through the job service.

    Exit Codes:

      0 - Success
      2 - Invalid job file or job service error
    """
    job = load_job_or_exit(job_file)
    aggregator = config_ctx.aggregator()
    target_id = job_id or job.id

    try:
        with bind_context(job_id=target_id):
            if job_id:
                settings = config_ctx.get_settings()
                with JobServiceClient.from_settings(settings) as client:
                    weights = aggregator.finalize(
                        job,
                        job.evaluators,
                        lambda w: client.finalize_weights(job_id, w),
                    )
            else:
                weights = aggregator.finalize(job, job.evaluators, lambda w: None)
    except JobServiceError as e:
        hint = " (retry may succeed)" if e.retryable else ""
        click.echo(f"Error finalizing weights: {e}{hint}", err=True)
        sys.exit(EXIT_ERROR)

    total = aggregator.total(weights)
    valid = aggregator.is_valid(weights)
    if output == "json":
        click.echo(_weights_json(weights, total, valid))
    else:
        _output_weights_console(
            weights, total, valid, title=f"Finalized weights: {job.title}"
        )
        if job_id:
            click.echo(f"Saved to job {job_id}")

    sys.exit(EXIT_SUCCESS)
