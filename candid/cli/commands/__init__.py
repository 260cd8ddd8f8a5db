"""CLI command groups for Candid."""

from candid.cli.commands.evaluator import evaluator_command
from candid.cli.commands.jobs import jobs_command
from candid.cli.commands.weights import weights_command

__all__ = [
    "evaluator_command",
    "jobs_command",
    "weights_command",
]
