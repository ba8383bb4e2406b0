"""
devplan CLI - Init command.
"""

from typing import Annotated

import typer
from rich.console import Console

from devplan.cli.common import get_workspace, is_debug
from devplan.cli.errors import ExitCode, handle_error
from devplan.core.exceptions import PlanError

console = Console()


def main(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing workflows file"),
    ] = False,
) -> None:
    """
    Set up the plans directory and workflows file in this project.
    """
    workspace = get_workspace(ctx)
    workspace.plans_dir.mkdir(parents=True, exist_ok=True)

    catalog = workspace.catalog
    if catalog.file_exists() and not force:
        console.print(
            f"[yellow]Workflows file already exists:[/yellow] "
            f"{workspace.display_path(catalog.file_path)}"
        )
        console.print("[dim]Use --force to overwrite[/dim]")
        return

    try:
        path = catalog.create_file(force=force)
    except PlanError as e:
        handle_error(e, "init", is_debug(ctx))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(f"[green]✓[/green] Initialized {workspace.display_path(workspace.plans_dir)}")
    console.print(f"  Workflows: {workspace.display_path(path)}")
    console.print('[dim]Next: devplan create "<task>"[/dim]')
