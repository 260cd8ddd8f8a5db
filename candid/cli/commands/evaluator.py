"""CLI commands for inviting HR evaluators and recording their weights."""

import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from candid.cli.commands.weights import JOB_FILE, load_job_or_exit
from candid.cli.context import EXIT_ERROR, EXIT_SUCCESS, ConfigContext, pass_config
from candid.core.exceptions import CandidError
from candid.jobs import Evaluator, JobLoader


def _parse_weight_options(values: tuple[str, ...]) -> dict[str, float]:
    """Parse ``NAME=VALUE`` pairs into a weight mapping."""
    weights: dict[str, float] = {}
    for item in values:
        name, sep, raw = item.rpartition("=")
        if not sep or not name.strip():
            raise click.BadParameter(
                f"Expected NAME=VALUE, got '{item}'", param_hint="--weight"
            )
        try:
            weights[name.strip()] = float(raw)
        except ValueError:
            raise click.BadParameter(
                f"Weight for '{name.strip()}' is not a number: '{raw}'",
                param_hint="--weight",
            ) from None
    return weights


def _evaluator_json(evaluator: Evaluator) -> str:
    return json.dumps(evaluator.model_dump(mode="json", by_alias=True), indent=2)


@click.group(name="evaluator")
def evaluator_command() -> None:
    """Invite HR evaluators and record their weight submissions.

    Examples:

      candid evaluator list job.yaml
      candid evaluator add job.yaml --name="Alice Johnson" --email=alice@example.com
      candid evaluator submit job.yaml new-1a2b --weight "React Experience=0.5"
    """


@evaluator_command.command(name="list")
@JOB_FILE
def list_evaluators(job_file: Path) -> None:
    """List the evaluators of a job and their submission status.

    Exit Codes:

      0 - Success
      2 - Invalid job file
    """
    job = load_job_or_exit(job_file)
    console = Console()

    if not job.evaluators:
        console.print("No evaluators added yet.")
        sys.exit(EXIT_SUCCESS)

    table = Table(title="Evaluators", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name", style="green")
    table.add_column("Email")
    table.add_column("Status")

    for evaluator in job.evaluators:
        if evaluator.submitted:
            when = (
                f" {evaluator.submitted_at:%Y-%m-%d}" if evaluator.submitted_at else ""
            )
            status = f"[green]Submitted{when}[/green]"
        else:
            status = "[yellow]Pending[/yellow]"
        table.add_row(evaluator.id, evaluator.name, evaluator.email, status)

    console.print(table)
    sys.exit(EXIT_SUCCESS)


@evaluator_command.command(name="add")
@JOB_FILE
@click.option("--name", "-n", default="", help="Evaluator display name")
@click.option("--email", "-e", default="", help="Evaluator e-mail address")
@click.option(
    "--save",
    is_flag=True,
    help="Append the new evaluator to the job file",
)
@pass_config
def add_evaluator(
    config_ctx: ConfigContext,
    job_file: Path,
    name: str,
    email: str,
    save: bool,
) -> None:
    """Invite a new evaluator to weight the job's criteria.

    The evaluator starts with an equal share on every criterion and counts
    towards the aggregate only after submitting.

    Exit Codes:

      0 - Evaluator created
      2 - Invalid job file, or name/email missing
    """
    job = load_job_or_exit(job_file)
    result = config_ctx.aggregator().add_evaluator(job, name, email)

    if not result.accepted or result.evaluator is None:
        click.echo(f"Cannot add evaluator: {result.reason}", err=True)
        sys.exit(EXIT_ERROR)

    if save:
        JobLoader().save_evaluator(job_file, result.evaluator)

    click.echo(_evaluator_json(result.evaluator))
    sys.exit(EXIT_SUCCESS)


@evaluator_command.command(name="submit")
@JOB_FILE
@click.argument("evaluator_id")
@click.option(
    "--weight",
    "-w",
    "weight_options",
    multiple=True,
    help="Criterion weight as NAME=VALUE (repeatable)",
)
@click.option(
    "--save",
    is_flag=True,
    help="Write the submission back to the job file",
)
@pass_config
def submit_weights(
    config_ctx: ConfigContext,
    job_file: Path,
    evaluator_id: str,
    weight_options: tuple[str, ...],
    save: bool,
) -> None:
    """Record an evaluator's weights and mark them as submitted.

    Criteria left out count as 0 in the aggregate.

    Exit Codes:

      0 - Submission recorded
      2 - Invalid job file, unknown evaluator, repeated or invalid submission
    """
    weights = _parse_weight_options(weight_options)
    job = load_job_or_exit(job_file)

    evaluator = next((e for e in job.evaluators if e.id == evaluator_id), None)
    if evaluator is None:
        click.echo(f"Unknown evaluator: {evaluator_id}", err=True)
        sys.exit(EXIT_ERROR)

    try:
        submitted = config_ctx.aggregator().submit(job, evaluator, weights)
        if save:
            JobLoader().save_evaluator(job_file, submitted)
    except CandidError as e:
        click.echo(f"Cannot submit weights: {e}", err=True)
        sys.exit(EXIT_ERROR)

    click.echo(_evaluator_json(submitted))
    sys.exit(EXIT_SUCCESS)
