"""
Settings and logging configuration for the measurement library.

Settings come from two places:
- config.yaml: log level, processor/storage names and their options
- environment (.env supported): secrets that must stay out of config.yaml

    MEASUREMENT_API_SECRET  fills processor_options.api_secret
    MEASUREMENT_ID          fills processor_options.measurement_id
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator

from .core.exceptions import MeasurementError


DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"

ENV_OVERRIDES = {
    "MEASUREMENT_API_SECRET": "api_secret",
    "MEASUREMENT_ID": "measurement_id",
}

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class ConfigError(MeasurementError):
    """
    Raised when the configuration file is missing or invalid.

    This exception indicates a problem with config.yaml that must be
    resolved before the library can be configured from it.
    """
    pass


class MeasurementSettings(BaseModel):
    """
    Validated library settings.

    Attributes:
        log_level: Minimum level written by configure_logging()
        processor: Registered event processor name
        processor_options: Options for the processor (and every event)
        storage: Registered storage name
        storage_options: Options for the storage

    Examples:
        >>> settings = MeasurementSettings(processor="googleAnalytics", storage="memory")
        >>> settings.config_args()
        ('googleAnalytics', {}, 'memory', {})
    """

    log_level: str = Field(
        default="INFO",
        description="Minimum log level"
    )
    processor: str = Field(
        default="googleAnalytics",
        min_length=1,
        description="Registered event processor name"
    )
    processor_options: Dict[str, Any] = Field(
        default_factory=dict,
        description="Event processor options"
    )
    storage: str = Field(
        min_length=1,
        description="Registered storage name"
    )
    storage_options: Dict[str, Any] = Field(
        default_factory=dict,
        description="Storage options"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Accept loguru level names in any case."""
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value!r}"
            )
        return level

    def config_args(self) -> Tuple[str, Dict[str, Any], str, Dict[str, Any]]:
        """Arguments for a ``config`` command built from these settings."""
        return (
            self.processor,
            dict(self.processor_options),
            self.storage,
            dict(self.storage_options),
        )


def load_settings(
    config_path: Optional[Union[str, Path]] = None,
    env_path: Optional[Union[str, Path]] = None
) -> MeasurementSettings:
    """
    Load settings from config.yaml and the environment.

    Args:
        config_path (str | Path, optional): Path to config.yaml. Defaults to
            the config.yaml shipped inside the package.
        env_path (str | Path, optional): .env file to load first. Defaults to
            python-dotenv's search for a .env file.

    Returns:
        MeasurementSettings: Validated settings

    Raises:
        ConfigError: If the file is missing, empty, not valid YAML, or the
            settings fail validation
    """
    config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse configuration file: {e}") from e
    except OSError as e:
        raise ConfigError(f"Error reading configuration file: {e}") from e

    if config is None:
        raise ConfigError("Configuration file is empty")
    if not isinstance(config, dict):
        raise ConfigError(
            f"Configuration file must contain a mapping, got {type(config).__name__}"
        )

    if env_path is not None:
        load_dotenv(env_path)
    else:
        load_dotenv()

    processor_options = dict(config.get("processor_options") or {})
    for env_var, option in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value and option not in processor_options:
            processor_options[option] = value
    config["processor_options"] = processor_options

    try:
        settings = MeasurementSettings(**config)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e

    logger.debug(
        f"Loaded settings from {config_path}: processor={settings.processor}, "
        f"storage={settings.storage}"
    )
    return settings


def configure_logging(level: str = "INFO", sink: Any = sys.stderr) -> int:
    """
    Route library logs to a single sink at the given level.

    Replaces loguru's default handler.

    Args:
        level (str): Minimum level name
        sink: Any loguru sink (stream, path or callable)

    Returns:
        int: Handler id, usable with logger.remove()
    """
    logger.remove()
    return logger.add(sink, level=level.upper())
