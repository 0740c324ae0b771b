"""Shared CLI helpers: console output, logging setup, exit codes."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2

console = Console()


def _setup_logging(verbose: bool, quiet: bool) -> None:
    """Configure root logging with a Rich handler.

    --verbose wins over --quiet.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def _error(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}")


def _warning(message: str) -> None:
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def _success(message: str) -> None:
    console.print(f"[bold green]✓[/bold green] {message}")


def _info(message: str) -> None:
    console.print(f"[blue]ℹ[/blue] {message}")


def _validate_project_path(project: str) -> Path:
    """Resolve and validate the --project directory.

    Raises:
        typer.Exit: With EXIT_CONFIG_ERROR if the path is not a directory.

    """
    project_path = Path(project).expanduser().resolve()
    if not project_path.exists():
        _error(f"Project directory not found: {project_path}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)
    if not project_path.is_dir():
        _error(f"Project path must be a directory: {project_path}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)
    return project_path
