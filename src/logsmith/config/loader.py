"""Configuration loading.

Configuration is read from ``logsmith.toml`` or from the ``[tool.logsmith]``
table of ``pyproject.toml``. The search starts in the given directory and
walks up towards the filesystem root.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from logsmith.config.models import LogsmithConfig
from logsmith.exceptions import ConfigNotFoundError, ConfigValidationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "logsmith.toml"
PYPROJECT_FILE_NAME = "pyproject.toml"


def find_config_file(start: Path | None = None) -> Path:
    """Find the nearest configuration file.

    In every directory ``logsmith.toml`` wins over ``pyproject.toml``, and a
    ``pyproject.toml`` only counts when it has a ``[tool.logsmith]`` table.

    Args:
        start: Directory to start searching from (default: cwd)

    Returns:
        Path to the configuration file

    Raises:
        ConfigNotFoundError: If no configuration file is found
    """
    current = (start or Path.cwd()).resolve()

    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate

        pyproject = directory / PYPROJECT_FILE_NAME
        if pyproject.is_file() and extract_logsmith_config(load_toml(pyproject)):
            return pyproject

    raise ConfigNotFoundError(
        f"Could not find {CONFIG_FILE_NAME} or a [tool.logsmith] table "
        f"in {current} or any parent directory"
    )


def load_toml(path: Path) -> dict[str, Any]:
    """Load and parse a TOML file.

    Raises:
        ConfigNotFoundError: If the file doesn't exist
        ConfigValidationError: If the file is not valid TOML
    """
    if not path.exists():
        raise ConfigNotFoundError(f"File not found: {path}")

    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigValidationError(f"Invalid TOML in {path}: {e}") from e


def extract_logsmith_config(data: dict[str, Any]) -> dict[str, Any]:
    """Return the ``[tool.logsmith]`` table, or an empty dict."""
    return data.get("tool", {}).get("logsmith", {})


def parse_config(data: dict[str, Any], source: str = "<config>") -> LogsmithConfig:
    """Validate raw configuration data.

    Raises:
        ConfigValidationError: If the data does not match the schema
    """
    try:
        return LogsmithConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid configuration in {source}:\n{e}") from e


def load_config(path: Path | None = None) -> LogsmithConfig:
    """Load the configuration.

    Args:
        path: A configuration file, or a directory to search from.
            Defaults to the current directory.

    Returns:
        Validated configuration; defaults when no file is found

    Raises:
        ConfigNotFoundError: If an explicit file path doesn't exist
        ConfigValidationError: If the configuration is invalid
    """
    if path is not None and not path.is_dir():
        config_path = path
    else:
        try:
            config_path = find_config_file(path)
        except ConfigNotFoundError:
            logger.info("No configuration file found, using defaults")
            return LogsmithConfig()

    data = load_toml(config_path)
    if config_path.name == PYPROJECT_FILE_NAME:
        data = extract_logsmith_config(data)

    logger.debug("Loaded configuration from %s", config_path)
    return parse_config(data, source=str(config_path))
