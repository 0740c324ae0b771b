"""Typer CLI entry point for e2e-harness.

This module only wires subcommands together - no business logic here.
"""

import logging

import typer

from e2e_harness import __version__
from e2e_harness.cli_utils import console
from e2e_harness.commands.env import env_app
from e2e_harness.commands.retry import retry_command
from e2e_harness.commands.workers import workers_command

logger = logging.getLogger(__name__)


app = typer.Typer(
    name="e2e-harness",
    help="Retry, worker planning and environment tools for BDD browser suites",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"e2e-harness {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Retry, worker planning and environment tools for BDD browser suites."""
    if ctx.invoked_subcommand is None:
        raise typer.Exit()


app.command("retry")(retry_command)
app.command("workers")(workers_command)
app.add_typer(env_app, name="env")


if __name__ == "__main__":
    app()
