"""Runner invocation descriptors and subprocess execution.

A retry run is described by a RunnerInvocation (argv list, environment,
working directory) rather than a shell string, so scenario names with
quotes, pipes or regex metacharacters reach the runner unchanged.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path

from e2e_harness.core.config.models import EnvironmentConfig
from e2e_harness.core.exceptions import RunnerInvocationError
from e2e_harness.retry.models import FailedTest

logger = logging.getLogger(__name__)

DEFAULT_RUNNER_TIMEOUT = 1800  # 30 min per retry attempt
_STDERR_LIMIT = 2000


@dataclass
class RunnerInvocation:
    """Everything needed to start one runner process.

    Attributes:
        argv: Command and arguments (no shell interpretation).
        env: Full environment for the child process.
        cwd: Working directory.
        report_path: Where the runner writes its structured report.
        timeout: Seconds before the process is abandoned.

    """

    argv: list[str]
    env: dict[str, str]
    cwd: Path
    report_path: Path
    timeout: int = DEFAULT_RUNNER_TIMEOUT


@dataclass
class RunnerResult:
    """Outcome of a completed runner process."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    report_path: Path | None = None


def name_pattern(scenario_name: str) -> str:
    """Anchored regex matching exactly one scenario name."""
    return f"^{re.escape(scenario_name)}$"


def _feature_targets(targets: list[FailedTest]) -> list[str]:
    files = (t.feature_file for t in targets if t.feature_file.endswith(".feature"))
    return list(dict.fromkeys(files))


def _behave_argv(
    config: EnvironmentConfig,
    features: list[str],
    patterns: list[str],
    report_path: Path,
) -> list[str]:
    argv = [sys.executable, "-m", "behave", *features]
    for pattern in patterns:
        argv.extend(["--name", pattern])
    argv.extend(["--format", "json", "--outfile", str(report_path), "--no-capture"])
    if config.test.fail_fast:
        argv.append("--stop")
    return argv


def _cucumber_argv(
    config: EnvironmentConfig,
    features: list[str],
    patterns: list[str],
    report_path: Path,
    workers: int | None,
) -> list[str]:
    argv = ["npx", "cucumber-js", *features]
    for pattern in patterns:
        argv.extend(["--name", pattern])
    argv.extend(["--format", f"json:{report_path}"])
    if workers is not None and workers > 1:
        argv.extend(["--parallel", str(workers)])
    if config.test.fail_fast:
        argv.append("--fail-fast")
    return argv


def build_retry_invocation(
    config: EnvironmentConfig,
    env_name: str,
    targets: list[FailedTest],
    report_path: Path,
    cwd: Path,
    workers: int | None = None,
    timeout: int = DEFAULT_RUNNER_TIMEOUT,
) -> RunnerInvocation:
    """Build an invocation that re-runs exactly the target scenarios.

    Each unique scenario name becomes one anchored ``--name`` pattern (the
    runner ORs them). Runs are restricted to the targets' feature files so a
    same-named scenario elsewhere is not picked up; when no feature file is
    known the configured features directory is used.

    Args:
        config: Environment config for this attempt.
        env_name: Environment name exported to the runner.
        targets: Scenarios to re-run.
        report_path: Structured report destination.
        cwd: Project root the runner executes in.
        workers: Parallel worker count (cucumber-js only).
        timeout: Process timeout in seconds.

    Raises:
        ValueError: If targets is empty.

    """
    if not targets:
        raise ValueError("Cannot build a retry invocation without target scenarios")

    patterns = [name_pattern(name) for name in dict.fromkeys(t.scenario_name for t in targets)]
    features = _feature_targets(targets) or [config.test.features_dir]

    if config.test.runner == "cucumber-js":
        argv = _cucumber_argv(config, features, patterns, report_path, workers)
    else:
        argv = _behave_argv(config, features, patterns, report_path)

    env = dict(os.environ)
    env.update(config.to_env(env_name, timeout_multiplier=config.test.retry_timeout_multiplier))
    if workers is not None:
        env["CUCUMBER_WORKERS"] = str(workers)

    return RunnerInvocation(
        argv=argv,
        env=env,
        cwd=cwd,
        report_path=report_path,
        timeout=timeout,
    )


class SubprocessRunner:
    """Executes RunnerInvocations with subprocess.run."""

    def execute(self, invocation: RunnerInvocation) -> RunnerResult:
        """Run the invocation to completion.

        A non-zero exit is normal when scenarios fail; it only becomes an
        error when the process also left no report behind.

        Raises:
            RunnerInvocationError: If the process cannot start, times out,
                or exits without writing its report.

        """
        invocation.report_path.parent.mkdir(parents=True, exist_ok=True)
        if invocation.report_path.exists():
            invocation.report_path.unlink()

        logger.info("Executing: %s", " ".join(invocation.argv))
        start = time.perf_counter()

        try:
            completed = subprocess.run(
                invocation.argv,
                cwd=invocation.cwd,
                env=invocation.env,
                capture_output=True,
                text=True,
                timeout=invocation.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise RunnerInvocationError(
                f"Runner timed out after {invocation.timeout}s"
            ) from e
        except FileNotFoundError as e:
            raise RunnerInvocationError(f"Runner executable not found: {invocation.argv[0]}") from e
        except OSError as e:
            raise RunnerInvocationError(f"Failed to start runner: {e}") from e

        duration_ms = int((time.perf_counter() - start) * 1000)
        stderr = (completed.stderr or "")[-_STDERR_LIMIT:]

        if not invocation.report_path.is_file():
            raise RunnerInvocationError(
                f"Runner exited with code {completed.returncode} without writing "
                f"{invocation.report_path}",
                exit_code=completed.returncode,
                stderr=stderr,
            )

        logger.debug(
            "Runner finished: exit=%d duration=%dms", completed.returncode, duration_ms
        )
        return RunnerResult(
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=stderr,
            duration_ms=duration_ms,
            report_path=invocation.report_path,
        )
