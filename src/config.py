"""YAML configuration loader utility."""

from pathlib import Path
from typing import Any, Callable

import yaml

VALID_FAMILIES = ("amc8", "amc10", "amc12", "aime")


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


def load_config(
    config_path: Path,
    validator: Callable[[dict[str, Any]], None] | None = None,
) -> dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to the YAML configuration file.
        validator: Optional validation function. If None, only the output
            fields shared by every script are checked.

    Returns:
        Dictionary containing the parsed configuration.

    Raises:
        ConfigError: If the file is not found or validation fails.
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f)

    if not isinstance(config, dict):
        raise ConfigError(f"Configuration must be a mapping: {config_path}")

    if validator is None:
        _validate_output_fields(config)
    else:
        validator(config)

    return config


def _validate_output_fields(config: dict[str, Any]) -> None:
    """Validate the output location every script writes to.

    Args:
        config: The parsed configuration dictionary.

    Raises:
        ConfigError: If required fields are missing.
    """
    if "output_dir" not in config:
        raise ConfigError("Missing required field: 'output_dir'")

    if "output_filename" not in config:
        raise ConfigError("Missing required field: 'output_filename'")


def validate_catalog_config(config: dict[str, Any]) -> None:
    """Validate catalog sweep configuration.

    Args:
        config: The parsed configuration dictionary.

    Raises:
        ConfigError: If required fields are missing or invalid.
    """
    _validate_output_fields(config)


def validate_harvest_config(config: dict[str, Any]) -> None:
    """Validate wiki harvest configuration.

    Args:
        config: The parsed configuration dictionary.

    Raises:
        ConfigError: If required fields are missing or invalid.
    """
    _validate_output_fields(config)

    if "families" not in config:
        raise ConfigError("Missing required field: 'families'")

    families = config["families"]
    if not isinstance(families, list):
        raise ConfigError("'families' must be a list")

    if len(families) == 0:
        raise ConfigError("'families' list cannot be empty")

    for family in families:
        if family not in VALID_FAMILIES:
            raise ConfigError(
                f"Unknown contest family '{family}', expected one of {', '.join(VALID_FAMILIES)}"
            )

    limit = config.get("limit")
    if limit is not None and (not isinstance(limit, int) or limit <= 0):
        raise ConfigError("'limit' must be a positive integer")

    max_redirects = config.get("max_redirects")
    if max_redirects is not None and (not isinstance(max_redirects, int) or max_redirects < 0):
        raise ConfigError("'max_redirects' must be a non-negative integer")


def validate_forum_config(config: dict[str, Any]) -> None:
    """Validate forum thread scraper configuration.

    Args:
        config: The parsed configuration dictionary.

    Raises:
        ConfigError: If required fields are missing or invalid.
    """
    _validate_output_fields(config)

    thread_urls = config.get("thread_urls")
    index_urls = config.get("index_urls")

    if not thread_urls and not index_urls:
        raise ConfigError("Missing required field: 'thread_urls' or 'index_urls'")

    for field in ("thread_urls", "index_urls"):
        if field in config and config[field] is not None and not isinstance(config[field], list):
            raise ConfigError(f"'{field}' must be a list")
