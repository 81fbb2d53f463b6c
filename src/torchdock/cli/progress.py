"""
This module provides Rich-based console output utilities for the torchdock CLI.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from rich.console import Console
from rich.panel import Panel

# Global console instance
console = Console()


@contextmanager
def status(message: str) -> Iterator[None]:
    """
    Show a status spinner while performing an operation.

    Args:
        message: Status message to display

    Example:
        >>> with status("Probing NVIDIA runtime..."):
        ...     report = run_checks()
    """
    with console.status(f"[bold blue]{message}"):
        yield


def print_success(message: str) -> None:
    """Print a success message in green."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message in blue."""
    console.print(f"[blue]ℹ[/blue] {message}")


def print_header(title: str) -> None:
    """Print a section banner."""
    console.rule(f"[bold]{title}[/bold]")


def print_panel(
    content: str,
    title: Optional[str] = None,
    style: str = "blue",
) -> None:
    """
    Print content in a panel/box.

    Args:
        content: Content to display
        title: Optional panel title
        style: Border style color
    """
    console.print(Panel(content, title=title, border_style=style))


def print_summary(
    title: str,
    stats: dict,
    style: str = "blue",
) -> None:
    """
    Print a summary panel with statistics.

    Args:
        title: Summary title
        stats: Dictionary of stat names to values
        style: Border style color
    """
    lines = []
    for key, value in stats.items():
        if isinstance(value, float):
            lines.append(f"[bold]{key}:[/bold] {value:.2f}")
        else:
            lines.append(f"[bold]{key}:[/bold] {value}")

    print_panel("\n".join(lines), title=title, style=style)
