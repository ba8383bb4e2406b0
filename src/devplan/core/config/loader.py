"""
Loading of devplan settings.

Settings are flat, so each layer simply replaces the keys it sets.
Lowest precedence first:

    DevplanConfig defaults
    $XDG_CONFIG_HOME/devplan/config.json
    <project>/.devplan.json
    DEVPLAN_* environment variables
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import DevplanConfig

logger = logging.getLogger(__name__)

PROJECT_CONFIG_NAME = ".devplan.json"

# env var -> DevplanConfig field
ENV_OVERRIDES: dict[str, str] = {
    "DEVPLAN_PLANS_DIR": "plans_dir",
    "DEVPLAN_DEFAULT_WORKFLOW": "default_workflow",
    "DEVPLAN_LOG_LEVEL": "log_level",
}

_config_cache: DevplanConfig | None = None


def get_user_config_dir() -> Path:
    """Per-user devplan directory, ``$XDG_CONFIG_HOME/devplan`` (or ``~/.config/devplan``)."""
    config_home = os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config"
    return Path(config_home) / "devplan"


def get_user_config_path() -> Path:
    """Path of the user settings file."""
    return get_user_config_dir() / "config.json"


def get_project_config_path(project_dir: Path | None = None) -> Path:
    """Path of the project settings file (``.devplan.json`` in the project root)."""
    return (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME


def read_settings_file(path: Path) -> dict[str, Any]:
    """
    Read one settings layer.

    A missing file is an empty layer. A file that is not a JSON object is
    skipped with a warning rather than stopping the command.
    """
    if not path.exists():
        return {}

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Failed to parse config at {path}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Ignoring config at {path}: expected a JSON object")
        return {}

    logger.debug(f"Loaded settings from {path}: {sorted(data)}")
    return data


def read_env_settings() -> dict[str, str]:
    """Settings taken from non-empty DEVPLAN_* environment variables."""
    return {
        field: os.environ[name]
        for name, field in ENV_OVERRIDES.items()
        if os.environ.get(name)
    }


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> DevplanConfig:
    """
    Load the effective devplan settings for a project.

    Args:
        project_dir: Project root holding .devplan.json (defaults to cwd)
        use_cache: Return the settings of an earlier call in this process

    Raises:
        ValidationError: If a layer sets an invalid value

    Example:
        >>> load_config().plans_dir
        '.llms'
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    settings: dict[str, Any] = {}
    settings.update(read_settings_file(get_user_config_path()))
    settings.update(read_settings_file(get_project_config_path(project_dir)))
    settings.update(read_env_settings())

    _config_cache = DevplanConfig(**settings)
    return _config_cache


def clear_cache() -> None:
    """Forget the cached settings so the next load_config reads the files again."""
    global _config_cache
    _config_cache = None
