"""Retry command for the e2e-harness CLI.

Re-runs the scenarios that failed in the last structured report.
"""

import logging
from pathlib import Path

import typer

from e2e_harness.cli_utils import (
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    EXIT_SUCCESS,
    _error,
    _info,
    _setup_logging,
    _success,
    _validate_project_path,
    _warning,
    console,
)
from e2e_harness.core.config import (
    DEFAULT_CONFIG_DIR,
    EnvironmentConfigLoader,
    load_env_file,
    resolve_environment_name,
)
from e2e_harness.core.exceptions import (
    ConfigError,
    ReportNotFoundError,
    ReportParseError,
    RunnerInvocationError,
)
from e2e_harness.parallel import WorkerAdvisor
from e2e_harness.retry import (
    FailedTestRegistry,
    RetryOrchestrator,
    RetrySummary,
    SubprocessRunner,
)
from e2e_harness.retry.orchestrator import DEFAULT_REPORT_PATH

logger = logging.getLogger(__name__)


def _print_statistics(registry: FailedTestRegistry) -> None:
    console.print("[bold blue]Retry Statistics[/bold blue]")
    console.print("================================")
    try:
        summary = registry.load_summary()
    except ReportParseError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None

    if summary is None:
        console.print("No retry statistics available")
    else:
        console.print(f"Original Failures: {summary.original_failure_count}")
        console.print(f"Tests Recovered: {summary.recovered_count}")
        console.print(f"Still Failing: {summary.still_failing_count}")
        console.print(f"Success Rate: {summary.success_rate_display}")
        console.print(f"Last Retry: {summary.timestamp}")
    console.print("================================")


def _print_summary(summary: RetrySummary) -> None:
    console.print()
    console.print("[bold]RETRY EXECUTION SUMMARY[/bold]")
    console.print("================================")
    console.print(f"Original Failures: {summary.original_failure_count}")
    console.print(f"Tests Recovered: {summary.recovered_count}")
    console.print(f"Still Failing: {summary.still_failing_count}")
    console.print(f"Success Rate: {summary.success_rate_display}")
    console.print(f"Attempts: {summary.attempts_run}")
    for name in summary.still_failing_names:
        console.print(f"  [red]✗[/red] {name}")
    console.print("================================")


def retry_command(
    env: str | None = typer.Option(
        None,
        "--env",
        "-e",
        help="Test environment (dev, staging, prod) [default: $TEST_ENV or dev]",
    ),
    retries: int | None = typer.Option(
        None,
        "--retries",
        "-r",
        min=1,
        help="Maximum retry attempts [default: environment test.retries]",
    ),
    delay: float | None = typer.Option(
        None,
        "--delay",
        "-d",
        min=0,
        help="Delay between retries in seconds [default: environment test.retryDelay]",
    ),
    report: str = typer.Option(
        str(DEFAULT_REPORT_PATH),
        "--file",
        "-f",
        help="JSON report file path, relative to the project",
    ),
    clear: bool = typer.Option(
        False,
        "--clear",
        "-c",
        help="Clear failed tests list before running",
    ),
    stats: bool = typer.Option(
        False,
        "--stats",
        "-s",
        help="Show retry statistics only",
    ),
    project: str = typer.Option(
        ".",
        "--project",
        "-p",
        help="Path to project directory",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show errors and the summary"),
) -> None:
    """Detect failed scenarios from the last report and re-run them.

    Exit code is 0 when every failure recovered (or none were found) and 1
    when scenarios are still failing after all attempts.

    Examples:
        e2e-harness retry
        e2e-harness retry -e staging -r 5
        e2e-harness retry --clear
        e2e-harness retry --stats

    """
    _setup_logging(verbose=verbose, quiet=quiet)
    project_path = _validate_project_path(project)
    load_env_file(project_path)

    registry = FailedTestRegistry(project_path)

    if stats:
        _print_statistics(registry)
        raise typer.Exit(code=EXIT_SUCCESS)

    if clear:
        registry.clear()
        _success("Cleared failed tests list and retry report")

    env_name = resolve_environment_name(env)
    loader = EnvironmentConfigLoader(project_path / DEFAULT_CONFIG_DIR)
    try:
        config = loader.load(env_name)
    except ConfigError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None

    max_retries = retries if retries is not None else max(1, config.test.retries)
    retry_delay = delay if delay is not None else config.test.retry_delay

    console.print(f"[blue]Environment:[/blue] {env_name}")
    console.print(f"[blue]Max Retries:[/blue] {max_retries}")
    console.print(f"[blue]Retry Delay:[/blue] {retry_delay}s")

    orchestrator = RetryOrchestrator(
        registry=registry,
        loader=loader,
        runner=SubprocessRunner(),
        project_root=project_path,
        report_path=Path(report),
        advisor=WorkerAdvisor(),
    )

    try:
        summary = orchestrator.run(env_name, max_retries, retry_delay)
    except ReportNotFoundError as e:
        _warning(f"{e}. Run tests first to generate a report; nothing to retry.")
        raise typer.Exit(code=EXIT_SUCCESS) from None
    except ReportParseError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None
    except ConfigError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None
    except RunnerInvocationError as e:
        _error(f"Final retry attempt failed: {e}")
        last = registry.load_summary()
        if last is not None:
            _print_summary(last)
        raise typer.Exit(code=EXIT_ERROR) from None

    if summary.original_failure_count == 0:
        _success("No failed tests found in last report")
        raise typer.Exit(code=EXIT_SUCCESS)

    _print_summary(summary)

    if summary.fully_recovered:
        _success("All failed tests recovered!")
        raise typer.Exit(code=EXIT_SUCCESS)

    _info(f"{summary.still_failing_count} scenario(s) still failing")
    raise typer.Exit(code=EXIT_ERROR)
