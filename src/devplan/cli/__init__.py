"""
devplan CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

from pathlib import Path

import typer
from pydantic import ValidationError

from devplan.cli import checklist, init_cmd, plans, serve, workflows
from devplan.cli.common import setup_logging
from devplan.cli.errors import ExitCode, print_error
from devplan.core.config import load_config, load_layered_env
from devplan.utils.project import resolve_project_dir

# Help panel names for command grouping
PANEL_PLANS = "Plans"
PANEL_STAGES = "Move Through Stages"
PANEL_SETUP = "Setup and Server"

app = typer.Typer(
    name="devplan",
    help="Staged development plans tracked in YAML",
    no_args_is_help=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    project_dir: Path | None = typer.Option(
        None,
        "--project-dir",
        "-C",
        help="Project directory (default: nearest directory with .llms, .devplan.json or .git)",
        file_okay=False,
    ),
) -> None:
    """
    devplan - staged development plans.

    A plan walks a task through the stages of its workflow (scope analysis,
    context gathering, solution design, implementation, validation,
    documentation, knowledge capture). Plans live as YAML files under .llms/.

    Quick Start:
        1. devplan init                          # Write .llms/workflows.yml
        2. devplan create "Add OAuth login"      # Create the main plan
        3. devplan next .llms/.dev-plan-main.yaml
        4. devplan update .llms/.dev-plan-main.yaml context_gathering
    """
    project_dir = resolve_project_dir(project_dir)

    # Precedence: OS env > project .env > user .env
    load_layered_env(project_dir=project_dir)

    try:
        config = load_config(project_dir)
    except ValidationError as e:
        print_error(f"Invalid devplan configuration: {e}")
        raise typer.Exit(ExitCode.USER_ERROR)

    setup_logging(debug, config.log_level)

    ctx.obj = {"debug": debug, "project_dir": project_dir, "config": config}


# =============================================================================
# Plans
# =============================================================================

app.command(name="create", rich_help_panel=PANEL_PLANS)(plans.create)
app.command(name="subtask", rich_help_panel=PANEL_PLANS)(plans.subtask)
app.command(name="promote", rich_help_panel=PANEL_PLANS)(plans.promote)
app.command(name="show", rich_help_panel=PANEL_PLANS)(plans.show)
app.command(name="list", rich_help_panel=PANEL_PLANS)(plans.list_plans)


# =============================================================================
# Move Through Stages
# =============================================================================

app.command(name="update", rich_help_panel=PANEL_STAGES)(plans.update)
app.command(name="next", rich_help_panel=PANEL_STAGES)(plans.next_step)
app.add_typer(checklist.app, name="checklist", rich_help_panel=PANEL_STAGES)
app.command(name="fix-cycle", rich_help_panel=PANEL_STAGES)(plans.fix_cycle)
app.command(name="resolve-fix", rich_help_panel=PANEL_STAGES)(plans.resolve_fix)


# =============================================================================
# Setup and Server
# =============================================================================

app.command(name="init", rich_help_panel=PANEL_SETUP)(init_cmd.main)
app.add_typer(workflows.app, name="workflows", rich_help_panel=PANEL_SETUP)
app.command(name="serve", rich_help_panel=PANEL_SETUP)(serve.serve)


def cli_main() -> None:
    """Console script entry point."""
    app()


__all__ = ["app", "cli_main"]
