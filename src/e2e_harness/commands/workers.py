"""Workers command: parallel execution advice."""

import typer

from e2e_harness.cli_utils import EXIT_SUCCESS, _setup_logging, _warning, console
from e2e_harness.parallel import WorkerAdvisor, estimate_time_reduction


def _format_duration(seconds: int) -> str:
    return f"{seconds // 60}m {seconds % 60}s"


def workers_command(
    workers: int | None = typer.Option(
        None,
        "--workers",
        "-w",
        min=1,
        help="Worker count to validate [default: recommended count]",
    ),
    scenarios: int = typer.Option(
        0,
        "--scenarios",
        "-n",
        min=0,
        help="Scenario count for time estimates",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output"),
) -> None:
    """Show system resources, the recommended worker count and warnings.

    Advisory only: always exits 0, even for an invalid configuration.

    Examples:
        e2e-harness workers
        e2e-harness workers -w 10 -n 40

    """
    _setup_logging(verbose=verbose, quiet=False)
    advisor = WorkerAdvisor()
    plan = advisor.plan(requested=workers)
    chosen = plan.requested_workers or plan.recommended_workers
    info = plan.system

    console.print()
    console.print("[bold]PARALLEL EXECUTION SUMMARY[/bold]")
    console.print("================================")
    console.print("System Info:")
    console.print(f"   CPU Cores: {info.cpu_count}")
    console.print(f"   Total Memory: {info.total_memory_gb}GB")
    console.print(f"   Free Memory: {info.free_memory_gb}GB")
    console.print(f"   Platform: {info.platform}")
    console.print(f"   CI: {'yes' if plan.is_ci else 'no'}")
    console.print("\nExecution Config:")
    console.print(f"   Recommended Workers: {plan.recommended_workers}")
    console.print(f"   Workers: {chosen}")

    if scenarios > 0:
        estimate = estimate_time_reduction(scenarios, chosen)
        console.print(f"   Scenarios: {scenarios}")
        console.print(f"   Scenarios per worker: ~{-(-scenarios // chosen)}")
        console.print("\nTime Estimates:")
        console.print(f"   Sequential: ~{_format_duration(estimate.sequential_seconds)}")
        console.print(f"   Parallel: ~{_format_duration(estimate.parallel_seconds)}")
        console.print(f"   Estimated reduction: {estimate.estimated_reduction_percent}%")

    validation = plan.validation
    if validation.warnings:
        console.print("\n[yellow]Warnings:[/yellow]")
        for warning in validation.warnings:
            console.print(f"   - {warning}")
    if validation.recommendations:
        console.print("\nRecommendations:")
        for recommendation in validation.recommendations:
            console.print(f"   - {recommendation}")
    console.print("================================")

    if not validation.is_valid:
        _warning("Configuration exceeds available memory")
    raise typer.Exit(code=EXIT_SUCCESS)
