"""Console helpers shared by all tool CLIs."""

import functools
import sys
from typing import Callable, Optional

import click
from rich.console import Console
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def info(message: str) -> None:
    """Print an informational message."""
    console.print(f"[cyan]ℹ[/cyan] {message}")


def success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]✓[/bold green] {message}")


def warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]⚠[/bold yellow] {message}")


def error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[bold red]✗[/bold red] {message}")


def create_table(title: Optional[str] = None) -> Table:
    """Create a table with the common look."""
    return Table(title=title, show_header=True, header_style="bold magenta")


def print_table(table: Table) -> None:
    console.print(table)


def handle_errors(func: Callable) -> Callable:
    """
    Turn unexpected exceptions into an error message and exit code 1.

    click's own exceptions and ``sys.exit`` pass through untouched.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (
            click.exceptions.ClickException,
            click.exceptions.Abort,
            click.exceptions.Exit,
            SystemExit,
        ):
            raise
        except KeyboardInterrupt:
            error("Interrupted")
            sys.exit(130)
        except Exception as e:
            error(f"Unexpected error: {e}")
            sys.exit(1)

    return wrapper
