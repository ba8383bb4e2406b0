"""
devplan CLI - Plan commands.

Create plans and subtask plans, move plans through their workflow stages,
and inspect where each plan stands.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from devplan.cli.common import get_workspace, is_debug
from devplan.cli.errors import ExitCode, handle_error, print_error
from devplan.core.exceptions import PlanError
from devplan.core.plans import PlanRecord, update_stage
from devplan.core.plans.models import PlanStatus, Priority
from devplan.core.plans.store import dump_plan_yaml
from devplan.core.stages import FixCycleStatus

console = Console()

WorkflowOption = Annotated[
    str | None,
    typer.Option("--workflow", "-w", help="Workflow type (micro, small, medium, large, epic)"),
]
PriorityOption = Annotated[
    Priority | None,
    typer.Option("--priority", "-p", help="Plan priority", case_sensitive=False),
]
StatusOption = Annotated[
    str | None,
    typer.Option("--status", "-s", help="Initial status (active or pending)"),
]

_STATUS_STYLES = {
    PlanStatus.ACTIVE: "green",
    PlanStatus.PENDING: "yellow",
    PlanStatus.COMPLETED: "bold green",
    PlanStatus.FAILED: "red",
    PlanStatus.PROMOTED: "cyan",
    PlanStatus.INDEPENDENT: "cyan",
}


def _priority_value(priority: Priority | None) -> str | None:
    return priority.value if priority else None


def _check_status(status: str | None) -> None:
    if status is not None and status not in ("active", "pending"):
        print_error(f"Invalid status: {status}", solution="Use 'active' or 'pending'")
        raise typer.Exit(ExitCode.USER_ERROR)


def _print_created(title: str, path: Path, plan: PlanRecord, display: str) -> None:
    console.print(f"[green]✓[/green] {title}: [bold]{display}[/bold]")
    console.print(f"  Task: {plan.task}")
    console.print(f"  Slug: [cyan]{plan.slug}[/cyan]")
    console.print(f"  Workflow: {plan.workflow_type}  Priority: {plan.priority.value}")
    console.print(f"  Status: {plan.status.value}  Phase: {plan.current_stage}")
    if plan.parent_task:
        console.print(f"  Parent: {plan.parent_task}")


def create(
    ctx: typer.Context,
    task: Annotated[str, typer.Argument(help="Task description")],
    workflow: WorkflowOption = None,
    priority: PriorityOption = None,
    status: StatusOption = None,
) -> None:
    """
    Create the main development plan.

    Examples:
        devplan create "Add OAuth login"
        devplan create "Fix typo in README" --workflow micro
    """
    _check_status(status)
    workspace = get_workspace(ctx)
    try:
        path, plan = workspace.create_main_plan(
            task, workflow_type=workflow, priority=_priority_value(priority), status=status
        )
    except PlanError as e:
        handle_error(e, "create", is_debug(ctx))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    _print_created("Created main plan", path, plan, workspace.display_path(path))


def subtask(
    ctx: typer.Context,
    description: Annotated[str, typer.Argument(help="Subtask description")],
    workflow: WorkflowOption = None,
    priority: PriorityOption = None,
    status: StatusOption = None,
) -> None:
    """
    Create an independent subtask plan under the main plan.

    Examples:
        devplan subtask "Add password reset" --workflow small
    """
    _check_status(status)
    workspace = get_workspace(ctx)
    try:
        path, plan = workspace.create_subtask_plan(
            description, workflow_type=workflow, priority=_priority_value(priority), status=status
        )
    except PlanError as e:
        handle_error(e, "subtask", is_debug(ctx))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    _print_created("Created subtask plan", path, plan, workspace.display_path(path))


def promote(
    ctx: typer.Context,
    slug: Annotated[str, typer.Argument(help="Slug of the subtask to promote")],
    workflow: WorkflowOption = None,
    priority: PriorityOption = None,
) -> None:
    """
    Promote a subtask referenced by the main plan to its own plan file.
    """
    workspace = get_workspace(ctx)
    try:
        path, plan = workspace.promote_subtask(
            slug, workflow_type=workflow, priority=_priority_value(priority)
        )
    except PlanError as e:
        handle_error(e, "promote", is_debug(ctx))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    _print_created("Promoted subtask", path, plan, workspace.display_path(path))


def update(
    ctx: typer.Context,
    plan_file: Annotated[str, typer.Argument(help="Path to the plan file")],
    stage: Annotated[str, typer.Argument(help="Stage to move to (standard or custom)")],
    data: Annotated[
        str | None,
        typer.Option("--data", "-d", help="JSON object to merge into the stage"),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Jump past incomplete intermediate stages"),
    ] = False,
    incomplete: Annotated[
        bool,
        typer.Option("--incomplete", help="Do not mark the stage as complete"),
    ] = False,
) -> None:
    """
    Move a plan to a stage, optionally merging data into it.

    Examples:
        devplan update .llms/.dev-plan-main.yaml context_gathering
        devplan update .llms/.dev-plan-main.yaml implementation --force
        devplan update plan.yaml scope_analysis --data '{"findings": {"api": "REST"}}'
    """
    section_data = None
    if data is not None:
        try:
            section_data = json.loads(data)
        except json.JSONDecodeError as e:
            print_error(f"Invalid JSON for --data: {e}")
            raise typer.Exit(ExitCode.USER_ERROR)
        if not isinstance(section_data, dict):
            print_error("--data must be a JSON object")
            raise typer.Exit(ExitCode.USER_ERROR)

    workspace = get_workspace(ctx)
    result = update_stage(
        workspace.resolve(plan_file),
        stage,
        force=force,
        mark_complete=not incomplete,
        section_data=section_data or {},
    )

    if not result.success:
        print_error(
            f"Failed to update plan: {result.error}",
            solution=None if force else "Use --force to override stage order validation",
        )
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(f"[green]✓[/green] Updated {plan_file} to stage [cyan]{result.stage}[/cyan]")
    console.print(f"  Updated at: {result.updated_at}")
    for warning in result.warnings:
        console.print(f"[yellow]⚠[/yellow] {warning}")


def show(
    ctx: typer.Context,
    plan_file: Annotated[str, typer.Argument(help="Path to the plan file")],
    raw: Annotated[
        bool,
        typer.Option("--yaml", help="Print the plan file as YAML"),
    ] = False,
) -> None:
    """
    Show a plan and the progress of each stage.
    """
    workspace = get_workspace(ctx)
    try:
        plan = workspace.read_plan(plan_file)
    except PlanError as e:
        handle_error(e, "show", is_debug(ctx))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if raw:
        console.print(dump_plan_yaml(plan.to_document()), markup=False, highlight=False)
        return

    style = _STATUS_STYLES.get(plan.status, "white")
    summary = (
        f"[bold]{plan.task}[/bold]\n"
        f"Slug: {plan.slug}\n"
        f"Workflow: {plan.workflow_type}  Priority: {plan.priority.value}\n"
        f"Status: [{style}]{plan.status.value}[/{style}]  Phase: {plan.current_stage}\n"
        f"Created: {plan.created_at}  Updated: {plan.updated_at}"
    )
    if plan.parent_task:
        summary += f"\nParent: {plan.parent_task}"
    console.print(Panel(summary, title=plan_file, expand=False))

    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("Stage", style="cyan")
    table.add_column("Complete")
    table.add_column("Fields", style="dim")
    for stage, progress in plan.progress.items():
        marker = "[green]✓[/green]" if plan.is_stage_complete(stage) else "[dim]-[/dim]"
        if stage == plan.current_stage:
            stage = f"{stage} ←"
        fields = ", ".join(key for key in progress if key != "complete")
        table.add_row(stage, marker, fields)
    console.print(table)

    if plan.subtasks:
        console.print()
        console.print("[bold]Subtasks[/bold]")
        for ref in plan.subtasks:
            console.print(f"  {ref.slug} [dim]({ref.status})[/dim] {ref.description}")


def list_plans(
    ctx: typer.Context,
    no_subtasks: Annotated[
        bool,
        typer.Option("--no-subtasks", help="Only show the main plan"),
    ] = False,
) -> None:
    """
    List the main plan and its subtask plans.
    """
    workspace = get_workspace(ctx)
    try:
        plans = workspace.list_plans(include_subtasks=not no_subtasks)
    except PlanError as e:
        handle_error(e, "list", is_debug(ctx))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if not plans:
        console.print(f"No plans found in {workspace.config.plans_dir}")
        console.print("[dim]Create one with: devplan create \"<task>\"[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Slug", style="cyan")
    table.add_column("Task")
    table.add_column("Workflow")
    table.add_column("Priority")
    table.add_column("Status")
    table.add_column("Phase")
    for _, plan in plans:
        style = _STATUS_STYLES.get(plan.status, "white")
        table.add_row(
            plan.slug,
            plan.task,
            plan.workflow_type,
            plan.priority.value,
            f"[{style}]{plan.status.value}[/{style}]",
            plan.current_stage,
        )
    console.print(table)
    console.print(f"\n{len(plans)} plan(s)")


def next_step(
    ctx: typer.Context,
    plan_file: Annotated[str, typer.Argument(help="Path to the plan file")],
) -> None:
    """
    Show the current and next step of a plan in its workflow.
    """
    workspace = get_workspace(ctx)
    try:
        plan, steps = workspace.next_steps(plan_file)
        all_steps = workspace.catalog.get_workflow_steps(plan.workflow_type)
    except PlanError as e:
        handle_error(e, "next", is_debug(ctx))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(f"[bold]{plan.task}[/bold] ({plan.workflow_type})")
    console.print(f"Current step: [cyan]{steps.current_step}[/cyan]")
    if steps.is_complete:
        console.print("[green]All workflow steps are complete[/green]")
    elif steps.next_step:
        console.print(f"Next step: [cyan]{steps.next_step}[/cyan]")
        if steps.remaining_steps:
            console.print(f"Remaining: {' → '.join(steps.remaining_steps)}")

    console.print()
    for index, step in enumerate(all_steps, start=1):
        marker = " [green]✓[/green]" if plan.is_stage_complete(step) else ""
        current = " [dim]← current[/dim]" if step == plan.current_stage else ""
        console.print(f"  {index}. {step}{marker}{current}")


def fix_cycle(
    ctx: typer.Context,
    plan_file: Annotated[str, typer.Argument(help="Path to the plan that failed validation")],
    issues: Annotated[list[str], typer.Argument(help="Issues found during validation")],
    workflow: WorkflowOption = None,
) -> None:
    """
    Record failed validation and open a fix subtask plan.

    Examples:
        devplan fix-cycle .llms/.dev-plan-main.yaml "Tests fail on empty input"
    """
    workspace = get_workspace(ctx)
    try:
        fix_path, cycle = workspace.open_fix_cycle(plan_file, issues, workflow_type=workflow)
    except PlanError as e:
        handle_error(e, "fix-cycle", is_debug(ctx))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(
        f"[green]✓[/green] Opened fix cycle {cycle['cycle']}: "
        f"[bold]{workspace.display_path(fix_path)}[/bold]"
    )
    for issue in issues:
        console.print(f"  - {issue}")


def resolve_fix(
    ctx: typer.Context,
    plan_file: Annotated[str, typer.Argument(help="Path to the plan with the fix cycle")],
    cycle: Annotated[int, typer.Argument(help="Fix cycle number")],
    failed: Annotated[
        bool,
        typer.Option("--failed", help="Close the cycle as failed instead of completed"),
    ] = False,
) -> None:
    """
    Close a validation fix cycle.
    """
    status = FixCycleStatus.FAILED if failed else FixCycleStatus.COMPLETED
    workspace = get_workspace(ctx)
    try:
        workspace.resolve_fix_cycle(plan_file, cycle, status)
    except PlanError as e:
        handle_error(e, "resolve-fix", is_debug(ctx))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(f"[green]✓[/green] Fix cycle {cycle} resolved as {status.value}")
