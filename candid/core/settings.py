"""Candid configuration management.

Configuration is loaded from multiple sources with the following priority
(highest to lowest):
1. Explicit overrides (CLI options, keyword arguments)
2. Environment variables (with CANDID_ prefix)
3. Configuration files (candid.config.yaml, candid.config.yml)
4. Default values

Example usage:
    from candid.core.settings import get_settings

    settings = get_settings()
    print(settings.weighting.tolerance)

Environment variable support:
    CANDID_LOGGING__LEVEL=DEBUG
    CANDID_WEIGHTING__TOLERANCE=0.02
    CANDID_JOB_SERVICE__BASE_URL=https://jobs.example.com
    CANDID_JOB_SERVICE__API_TOKEN=...
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = ["candid.config.yaml", "candid.config.yml"]

NESTED_SECTIONS = ("weighting", "job_service", "logging")

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find configuration file by searching a directory and its parents.

    Args:
        start_dir: Directory to start search from.
            Defaults to current working directory.

    Returns:
        Path to config file if found, None otherwise.
    """
    search_dir = start_dir or Path.cwd()

    for _ in range(10):
        for filename in CONFIG_FILE_NAMES:
            config_path = search_dir / filename
            if config_path.exists():
                return config_path

        parent = search_dir.parent
        if parent == search_dir:
            break
        search_dir = parent

    return None


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from a YAML file.

    Unreadable or malformed files are logged and treated as empty.
    """
    try:
        with open(config_path) as f:
            config = yaml.safe_load(f) or {}
            return config if isinstance(config, dict) else {}
    except yaml.YAMLError as e:
        logger.warning("Failed to parse config file %s: %s", config_path, e)
        return {}
    except OSError as e:
        logger.warning("Failed to read config file %s: %s", config_path, e)
        return {}


def _merge_sections(
    file_config: dict[str, Any], data: dict[str, Any]
) -> dict[str, Any]:
    """Merge file values under explicit data, section by section."""
    merged = {**file_config, **data}
    for section in NESTED_SECTIONS:
        file_section = file_config.get(section)
        data_section = data.get(section)
        if isinstance(file_section, dict):
            merged[section] = {
                **file_section,
                **(data_section if isinstance(data_section, dict) else {}),
            }
    return merged


class WeightingSettings(BaseModel):
    """Settings for weight aggregation and validation."""

    precision: int = Field(
        default=2,
        ge=0,
        le=6,
        description="Decimal places aggregated weights are rounded to",
    )
    tolerance: float = Field(
        default=0.01,
        gt=0.0,
        lt=1.0,
        description="Allowed distance of the weight total from 1.0",
    )


class JobServiceSettings(BaseModel):
    """Settings for the remote job service."""

    base_url: str = Field(
        default="http://127.0.0.1:8000",
        description="Base URL of the job service",
    )
    timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=600.0,
        description="Request timeout in seconds (1-600)",
    )
    api_token: SecretStr | None = Field(
        default=None,
        description="Bearer token sent to the job service",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an HTTP(S) URL without a trailing slash."""
        v = v.strip()
        if not (v.startswith("http://") or v.startswith("https://")):
            raise ValueError("Job service URL must be an HTTP/HTTPS URL")
        return v.rstrip("/")


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    level: str = Field(
        default="WARNING",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_output: bool = Field(
        default=False,
        description="Output logs in JSON format",
    )
    file: str | None = Field(
        default=None,
        description="Log file path (optional)",
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        upper_v = v.upper()
        if upper_v not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}"
            )
        return upper_v


class CandidSettings(BaseSettings):
    """Main Candid configuration settings.

    Example:
        settings = CandidSettings()
        print(settings.weighting.precision)

        settings = CandidSettings(logging={"level": "DEBUG"})
        print(settings.job_service.base_url)
    """

    model_config = SettingsConfigDict(
        env_prefix="CANDID_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    weighting: WeightingSettings = Field(default_factory=WeightingSettings)
    job_service: JobServiceSettings = Field(default_factory=JobServiceSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode="before")
    @classmethod
    def load_from_config_file(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Load configuration from a YAML file and merge provided data over it.

        ``_candid_config_file`` selects an explicit file; otherwise the working
        directory and its parents are searched.
        """
        if data.get("_skip_file_loading"):
            data.pop("_skip_file_loading", None)
            data.pop("_candid_config_file", None)
            return data

        explicit = data.pop("_candid_config_file", None)
        config_path = Path(explicit) if explicit else _find_config_file()
        if config_path:
            file_config = _load_yaml_config(config_path)
            if file_config:
                logger.debug("Loaded configuration from %s", config_path)
                return _merge_sections(file_config, data)

        return data

    def to_dict(self, mask_secrets: bool = True) -> dict[str, Any]:
        """Convert settings to a dictionary.

        Args:
            mask_secrets: If True, mask sensitive values like API tokens.

        Returns:
            Dictionary representation of settings.
        """
        result: dict[str, Any] = {}

        for field_name in type(self).model_fields:
            value = getattr(self, field_name)

            if isinstance(value, BaseModel):
                nested: dict[str, Any] = {}
                for nested_field in type(value).model_fields:
                    nested[nested_field] = _plain_value(
                        getattr(value, nested_field), mask_secrets
                    )
                result[field_name] = nested
            else:
                result[field_name] = _plain_value(value, mask_secrets)

        return result


def _plain_value(value: Any, mask_secrets: bool) -> Any:
    if isinstance(value, SecretStr):
        return "***" if mask_secrets else value.get_secret_value()
    return value


def get_settings(
    config_file: Path | None = None,
    **overrides: Any,
) -> CandidSettings:
    """Get a Candid settings instance.

    Args:
        config_file: Optional explicit path to configuration file. When given,
            the automatic search for candid.config.yaml is skipped.
        **overrides: Explicit configuration overrides.

    Returns:
        Configured CandidSettings instance.
    """
    if config_file and config_file.exists():
        return CandidSettings(_candid_config_file=str(config_file), **overrides)

    return CandidSettings(**overrides)


@lru_cache
def get_cached_settings() -> CandidSettings:
    """Get a cached settings instance.

    The cache can be cleared with get_cached_settings.cache_clear().
    """
    return get_settings()


def generate_example_config(output_path: Path | None = None) -> str:
    """Generate an example configuration file.

    Args:
        output_path: Optional path to write the example config to.

    Returns:
        Example configuration as YAML string.
    """
    example = """\
# Candid configuration
# Environment variables override these values with the CANDID_ prefix.
# Example: CANDID_WEIGHTING__TOLERANCE=0.02

weighting:
  precision: 2               # Decimal places for aggregated weights
  tolerance: 0.01            # Allowed distance of the total from 1.0

job_service:
  base_url: http://127.0.0.1:8000
  timeout_seconds: 30
  # api_token: ...           # Set via CANDID_JOB_SERVICE__API_TOKEN

logging:
  level: WARNING             # DEBUG, INFO, WARNING, ERROR, CRITICAL
  json_output: false
  file: null
"""

    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            f.write(example)
        logger.info("Generated example config at %s", output_path)

    return example
