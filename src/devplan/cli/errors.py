"""
Error display and exit codes for the devplan CLI.
"""

import traceback
from enum import IntEnum

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from devplan.core.exceptions import PlanError

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for devplan CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Plan operation failed."""

    USER_ERROR = 2
    """Invalid input or configuration."""


def print_error(problem: str, *, solution: str | None = None) -> None:
    """
    Print a one-line error with an optional hint.

    Example:
        >>> print_error("Invalid JSON for --data", solution="Pass a JSON object")
    """
    console.print(f"[red]Error:[/red] {problem}")
    if solution:
        console.print(f"[dim]{solution}[/dim]")


def handle_error(error: Exception, command_name: str, debug: bool = False) -> None:
    """
    Display an error panel for a failed command.

    Args:
        error: The exception that was raised
        command_name: Name of the command that failed
        debug: Also print the full traceback
    """
    error_text = Text()
    error_text.append("Error in ", style="bold red")
    error_text.append(command_name, style="bold yellow")
    error_text.append(": ", style="bold red")
    error_text.append(str(error))

    title = "[bold red]Error[/bold red]"
    if isinstance(error, PlanError):
        title = f"[bold red]Error ({error.category})[/bold red]"

    console.print(Panel(error_text, title=title, border_style="red", expand=False))

    if debug:
        console.print("\n[dim]Full traceback:[/dim]")
        console.print(traceback.format_exc())
    else:
        console.print("[dim]Run with --debug for full traceback[/dim]")
