"""
Shared helpers for devplan CLI commands.
"""

import logging
import sys

import typer

from devplan.core.config import DevplanConfig
from devplan.core.plans import PlanWorkspace


def setup_logging(debug: bool = False, level: str = "WARNING") -> None:
    """
    Configure logging for a CLI invocation.

    Args:
        debug: If True, enable DEBUG level logging
        level: Level name used when debug is off
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else getattr(logging, level, logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def is_debug(ctx: typer.Context) -> bool:
    """Whether the global --debug flag was given."""
    return bool((ctx.obj or {}).get("debug"))


def get_workspace(ctx: typer.Context) -> PlanWorkspace:
    """Build the plan workspace for the project chosen in the main callback."""
    obj = ctx.obj or {}
    return PlanWorkspace(obj["project_dir"], obj.get("config") or DevplanConfig())
