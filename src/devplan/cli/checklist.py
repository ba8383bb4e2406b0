"""
devplan CLI - Checklist commands.
"""

from typing import Annotated

import typer
from rich.console import Console

from devplan.cli.common import get_workspace, is_debug
from devplan.cli.errors import ExitCode, handle_error
from devplan.core.exceptions import PlanError
from devplan.core.plans import add_checklist_item, update_checklist_item

app = typer.Typer(
    name="checklist",
    help="Check off and add stage checklist items",
    no_args_is_help=True,
)

console = Console()


@app.command("check")
def check(
    ctx: typer.Context,
    plan_file: Annotated[str, typer.Argument(help="Path to the plan file")],
    stage: Annotated[str, typer.Argument(help="Stage holding the checklist")],
    pattern: Annotated[str, typer.Argument(help="Case-insensitive text to match items by")],
    incomplete: Annotated[
        bool,
        typer.Option("--incomplete", help="Mark matching items incomplete instead"),
    ] = False,
    rename: Annotated[
        str | None,
        typer.Option("--rename", help="Replace the task text of matching items"),
    ] = None,
) -> None:
    """
    Mark every checklist item matching PATTERN complete (or incomplete).

    Examples:
        devplan checklist check .llms/.dev-plan-main.yaml solution_design "api"
    """
    workspace = get_workspace(ctx)
    try:
        count = update_checklist_item(
            workspace.resolve(plan_file), stage, pattern, not incomplete, rename
        )
    except PlanError as e:
        handle_error(e, "checklist check", is_debug(ctx))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    state = "incomplete" if incomplete else "complete"
    console.print(f"[green]✓[/green] Marked {count} item(s) in {stage} as {state}")


@app.command("add")
def add(
    ctx: typer.Context,
    plan_file: Annotated[str, typer.Argument(help="Path to the plan file")],
    stage: Annotated[str, typer.Argument(help="Stage to add the item to")],
    task: Annotated[str, typer.Argument(help="Task description")],
    complete: Annotated[
        bool,
        typer.Option("--complete", help="Add the item already complete"),
    ] = False,
    at: Annotated[
        int | None,
        typer.Option("--at", help="0-based position (default: end)"),
    ] = None,
) -> None:
    """
    Add an item to a stage checklist.
    """
    workspace = get_workspace(ctx)
    try:
        position = add_checklist_item(workspace.resolve(plan_file), stage, task, complete, at)
    except PlanError as e:
        handle_error(e, "checklist add", is_debug(ctx))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(f"[green]✓[/green] Added item to {stage} at position {position}")
