"""Configuration loader: environment first, optional YAML file on top."""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..utils.async_helpers import ConfigError
from .schema import CleanseConfig


def substitute_env_vars(text: str) -> str:
    """
    Replace ${VAR_NAME} patterns with environment variable values.

    Args:
        text: Text containing ${VAR_NAME} patterns

    Returns:
        Text with environment variables substituted

    Raises:
        ConfigError: If a referenced environment variable is not found
    """

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(f"Environment variable {var_name} not found")
        return value

    return re.sub(r"\$\{([^}]+)\}", replacer, text)


def load_config(path: Path | None = None) -> CleanseConfig:
    """
    Load configuration from the environment and an optional YAML file.

    Values in the YAML file override environment values.

    Args:
        path: Optional path to a YAML configuration file

    Returns:
        Validated CleanseConfig instance

    Raises:
        FileNotFoundError: If a config file is given but doesn't exist
        ConfigError: If required values are missing or the config is invalid
    """
    overrides: dict[str, object] = {}

    if path is not None:
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with path.open() as f:
            raw_yaml = f.read()

        parsed = yaml.safe_load(substitute_env_vars(raw_yaml))
        if parsed is None:
            parsed = {}
        if not isinstance(parsed, dict):
            raise ConfigError(f"Configuration file must contain a mapping: {path}")
        overrides = parsed

    try:
        config = CleanseConfig(**overrides)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    validate_config(config)

    return config


def validate_config(config: CleanseConfig) -> None:
    """
    Ensure the values every run needs are present.

    Raises:
        ConfigError: If the token or guild id is missing or malformed
    """
    if not config.discord_token:
        raise ConfigError("DISCORD_TOKEN environment variable is required")

    if not config.discord_guild_id:
        raise ConfigError("DISCORD_GUILD_ID environment variable is required")

    if not config.discord_guild_id.isdigit():
        raise ConfigError(
            f"DISCORD_GUILD_ID must be a numeric snowflake, got {config.discord_guild_id!r}"
        )
