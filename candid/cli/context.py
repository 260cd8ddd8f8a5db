"""Shared CLI context and exit codes."""

from pathlib import Path

import click
from pydantic import ValidationError as PydanticValidationError

from candid.core.settings import CandidSettings, get_settings
from candid.weighting import WeightAggregator

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_ERROR = 2


class ConfigContext:
    """Context object holding the settings for one CLI invocation."""

    def __init__(self) -> None:
        self.settings: CandidSettings | None = None
        self.config_file: Path | None = None
        self.verbose: bool = False

    def load_settings(self, config_file: Path | None = None) -> CandidSettings:
        """Load settings from an explicit file or the usual search path."""
        try:
            self.settings = get_settings(config_file=config_file)
        except PydanticValidationError as e:
            raise click.ClickException(f"Invalid configuration: {e}") from e
        self.config_file = config_file
        return self.settings

    def get_settings(self) -> CandidSettings:
        """Settings for this invocation, loaded on first use."""
        if self.settings is None:
            return self.load_settings(self.config_file)
        return self.settings

    def aggregator(self) -> WeightAggregator:
        """Weight aggregator configured from the settings."""
        return WeightAggregator.from_settings(self.get_settings())


pass_config = click.make_pass_decorator(ConfigContext, ensure=True)
