"""Command-line interface for Candid."""

from candid.cli.main import cli, main

__all__ = ["cli", "main"]
