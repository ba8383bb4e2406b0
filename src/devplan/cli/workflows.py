"""
devplan CLI - Workflow commands.

Inspect the workflow catalog and write the workflows file.
"""

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from devplan.cli.common import get_workspace, is_debug
from devplan.cli.errors import ExitCode, handle_error
from devplan.core.exceptions import PlanError

app = typer.Typer(
    name="workflows",
    help="Inspect and initialize the workflow catalog",
    no_args_is_help=True,
)

console = Console()


@app.command("list")
def list_workflows(ctx: typer.Context) -> None:
    """
    List workflow types and their steps.

    Uses the workflows file when present, otherwise the built-in catalog.
    """
    workspace = get_workspace(ctx)
    catalog = workspace.catalog
    try:
        workflows = catalog.load()
    except PlanError as e:
        handle_error(e, "workflows list", is_debug(ctx))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Workflow", style="cyan")
    table.add_column("Steps")
    table.add_column("Description", style="dim")
    for name, workflow in workflows.workflows.items():
        table.add_row(name, " → ".join(workflow.steps), workflow.description)
    table.add_row("(default)", " → ".join(workflows.default.steps), workflows.default.description)
    console.print(table)

    source = workspace.display_path(catalog.file_path) if catalog.file_exists() else "built-in"
    console.print(f"[dim]Source: {source}[/dim]")


@app.command("init")
def init_workflows(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing workflows file"),
    ] = False,
) -> None:
    """
    Write the built-in workflow catalog to the workflows file.
    """
    workspace = get_workspace(ctx)
    try:
        path = workspace.catalog.create_file(force=force)
    except PlanError as e:
        handle_error(e, "workflows init", is_debug(ctx))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(f"[green]✓[/green] Wrote {workspace.display_path(path)}")
