"""Main CLI entry point for Candid."""

import json
import sys
from pathlib import Path

import click
import yaml

from candid import __version__
from candid.cli.commands.evaluator import evaluator_command
from candid.cli.commands.jobs import jobs_command
from candid.cli.commands.weights import weights_command
from candid.cli.context import EXIT_SUCCESS, ConfigContext, pass_config
from candid.core.logging import configure_logging


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to candid.config.yaml configuration file",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging on stderr",
)
@click.version_option(version=__version__, prog_name="candid")
@click.pass_context
def cli(ctx: click.Context, config_file: Path | None, verbose: bool) -> None:
    """Candid - multi-evaluator weighting for job criteria.

    Examples:

      # Show aggregated weights for a job file
      candid weights show job.yaml

      # Check that the weights sum to 1
      candid weights validate job.yaml

      # Finalize and push the weights to the job service
      candid weights finalize job.yaml --job-id=42

      # Invite a new evaluator
      candid evaluator add job.yaml --name="Alice" --email=alice@example.com
    """
    ctx.ensure_object(ConfigContext)
    config_ctx = ctx.obj
    config_ctx.verbose = verbose
    settings = config_ctx.load_settings(config_file)

    configure_logging(
        level="DEBUG" if verbose else settings.logging.level,
        json_output=settings.logging.json_output,
        log_file=settings.logging.file,
    )

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.group(name="config")
def config_command() -> None:
    """Inspect Candid configuration."""


@config_command.command(name="show")
@click.option(
    "--output",
    "-o",
    type=click.Choice(["yaml", "json"]),
    default="json",
    help="Output format",
)
@pass_config
def show_config(config_ctx: ConfigContext, output: str) -> None:
    """Show the effective configuration with secrets masked.

    Exit Codes:

      0 - Success
    """
    data = config_ctx.get_settings().to_dict(mask_secrets=True)
    if output == "yaml":
        click.echo(yaml.safe_dump(data, sort_keys=False))
    else:
        click.echo(json.dumps(data, indent=2))
    sys.exit(EXIT_SUCCESS)


cli.add_command(weights_command)
cli.add_command(evaluator_command)
cli.add_command(jobs_command)


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
