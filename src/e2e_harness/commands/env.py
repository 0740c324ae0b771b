"""Env subcommand group: inspect environment configurations."""

import logging

import typer

from e2e_harness.cli_utils import (
    EXIT_CONFIG_ERROR,
    _error,
    _setup_logging,
    _validate_project_path,
    console,
)
from e2e_harness.core.config import (
    DEFAULT_CONFIG_DIR,
    EnvironmentConfigLoader,
    load_env_file,
)
from e2e_harness.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

env_app = typer.Typer(
    name="env",
    help="Environment configuration commands",
    no_args_is_help=True,
)


@env_app.command("list")
def env_list(
    project: str = typer.Option(".", "--project", "-p", help="Path to project directory"),
) -> None:
    """List environments that have a configuration file."""
    project_path = _validate_project_path(project)
    loader = EnvironmentConfigLoader(project_path / DEFAULT_CONFIG_DIR)
    names = loader.available_environments()
    if not names:
        console.print(f"No environments found in {loader.config_dir}")
        return
    console.print("Available environments:")
    for name in names:
        console.print(f"  - {name}")


@env_app.command("show")
def env_show(
    name: str | None = typer.Argument(None, help="Environment name [default: $TEST_ENV or dev]"),
    project: str = typer.Option(".", "--project", "-p", help="Path to project directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output"),
) -> None:
    """Print the merged configuration summary for an environment."""
    _setup_logging(verbose=verbose, quiet=not verbose)
    project_path = _validate_project_path(project)
    load_env_file(project_path)
    loader = EnvironmentConfigLoader(project_path / DEFAULT_CONFIG_DIR)

    try:
        config = loader.load(name)
    except ConfigError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None

    console.print()
    console.print("[bold]ENVIRONMENT CONFIGURATION[/bold]")
    console.print("================================")
    console.print(f"Environment: {config.environment.name} ({loader.current_environment})")
    console.print(f"Description: {config.environment.description}")
    console.print(f"Base URL: {config.application.base_url}")
    console.print(f"Search URL: {config.application.search_url}")
    console.print(f"Browser Headless: {config.browser.headless}")
    console.print(f"Test Workers: {config.test.workers}")
    console.print(f"Retries: {config.test.retries} (delay {config.test.retry_delay}s)")
    console.print(f"Runner: {config.test.runner}")
    console.print(f"Default User: {config.users.default_user}")
    console.print(f"Logging Level: {config.logging.level}")
    console.print("================================")
