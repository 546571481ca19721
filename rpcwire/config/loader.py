"""Configuration loading with fail-fast behavior.

Lookup order:
1. An explicit path passed by the caller (must exist)
2. The file named by the RPCWIRE_CONFIG environment variable (must exist)
3. ./rpcwire.json in the working directory (optional)
4. Pydantic defaults
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from rpcwire.config.schema import Config
from rpcwire.core.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "RPCWIRE_CONFIG"
LOCAL_CONFIG_NAME = "rpcwire.json"


def find_config_file(path: Path | None = None, cwd: Path | None = None) -> Path | None:
    """Resolve which config file applies, if any.

    Raises:
        ConfigError: If an explicit or $RPCWIRE_CONFIG path does not exist.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            path = Path(env_path)
            logger.debug("Using config from $%s: %s", CONFIG_ENV_VAR, path)

    if path is not None:
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        return path

    local = (cwd or Path.cwd()) / LOCAL_CONFIG_NAME
    if local.is_file():
        return local
    logger.debug("No %s in %s", LOCAL_CONFIG_NAME, local.parent)
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Read one config file into a dict.

    A UTF-8 BOM is tolerated and a blank file reads as ``{}``.

    Raises:
        ConfigError: If the file cannot be read, is not valid JSON, or does
            not hold a JSON object.
    """
    try:
        content = path.read_text(encoding="utf-8-sig").strip()
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    if not content:
        return {}

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must hold an object, got {type(data).__name__}")
    return data


def load_config(path: Path | None = None, cwd: Path | None = None) -> Config:
    """Load and validate configuration.

    Args:
        path: Explicit config file path. If provided, the file must exist.
        cwd: Working directory for the local rpcwire.json lookup.
            Defaults to Path.cwd().

    Returns:
        Validated Config object.

    Raises:
        ConfigError: If a config file is missing (when required), contains
            invalid JSON, or fails validation.
    """
    source = find_config_file(path, cwd)
    if source is None:
        return Config()

    data = read_config_file(source)
    logger.info("Config loaded from: %s", source)
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Config validation failed for {source}: {e}") from e
