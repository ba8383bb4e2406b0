"""
Configuration models and loading.

Settings are merged from several layers: defaults < user < project < env vars.
"""

from .env import load_layered_env
from .loader import (
    clear_cache,
    get_project_config_path,
    get_user_config_dir,
    get_user_config_path,
    load_config,
)
from .models import DevplanConfig

__all__ = [
    "DevplanConfig",
    "clear_cache",
    "get_project_config_path",
    "get_user_config_dir",
    "get_user_config_path",
    "load_config",
    "load_layered_env",
]
