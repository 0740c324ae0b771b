"""Scenario-level retry orchestration.

Re-runs the scenarios that failed in a structured report, attempt by
attempt, with a flat delay between attempts and an early exit once nothing
is failing. Attempts are strictly sequential; any parallelism inside one
attempt belongs to the runner.

States::

    IDLE -> EXTRACTING -> NO_FAILURES
                       -> RETRYING -> ATTEMPT(k) -> RECOVERED
                                                 -> ATTEMPT(k+1)
                                                 -> EXHAUSTED
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Protocol

from e2e_harness.core.config.loaders import EnvironmentConfigLoader
from e2e_harness.core.exceptions import ReportError, RunnerInvocationError
from e2e_harness.parallel.advisor import WorkerAdvisor
from e2e_harness.retry.invocation import (
    DEFAULT_RUNNER_TIMEOUT,
    RunnerInvocation,
    RunnerResult,
    build_retry_invocation,
)
from e2e_harness.retry.models import FailedTest, RetrySummary
from e2e_harness.retry.registry import FailedTestRegistry
from e2e_harness.retry.report import extract_failures

logger = logging.getLogger(__name__)

DEFAULT_REPORT_PATH = Path("reports") / "cucumber-report.json"
DEFAULT_REPORTS_DIR = Path("reports")


class RetryState(str, Enum):
    """Retry session states."""

    IDLE = "idle"
    EXTRACTING = "extracting"
    NO_FAILURES = "no_failures"
    RETRYING = "retrying"
    ATTEMPT = "attempt"
    RECOVERED = "recovered"
    EXHAUSTED = "exhausted"


class Runner(Protocol):
    def execute(self, invocation: RunnerInvocation) -> RunnerResult: ...


def attempt_report_name(attempt: int) -> str:
    return f"retry-{attempt}.json"


def _same_scenario(target: FailedTest, result: FailedTest) -> bool:
    """Compare (feature, name, line) keys, skipping parts either side lacks."""
    if target.scenario_name != result.scenario_name:
        return False
    if target.feature_file and result.feature_file and target.feature_file != result.feature_file:
        return False
    if target.line and result.line and target.line != result.line:
        return False
    return True


class RetryOrchestrator:
    """Runs one retry session against a failed-test registry.

    Args:
        registry: Failed-test registry (also receives the summary).
        loader: Environment loader, reloaded at the start of every attempt.
        runner: Executes runner invocations.
        project_root: Working directory for runner processes.
        report_path: Report of the original run (relative to project_root).
        reports_dir: Where per-attempt ``retry-<n>.json`` reports go.
        advisor: Supplies the worker count; falls back to the config value.
        sleep: Delay function between attempts.
        runner_timeout: Per-attempt process timeout in seconds.

    """

    def __init__(
        self,
        registry: FailedTestRegistry,
        loader: EnvironmentConfigLoader,
        runner: Runner,
        project_root: Path,
        report_path: Path = DEFAULT_REPORT_PATH,
        reports_dir: Path = DEFAULT_REPORTS_DIR,
        advisor: WorkerAdvisor | None = None,
        sleep: Callable[[float], None] = time.sleep,
        runner_timeout: int = DEFAULT_RUNNER_TIMEOUT,
    ) -> None:
        self.registry = registry
        self.loader = loader
        self.runner = runner
        self.project_root = project_root
        self.report_path = project_root / report_path
        self.reports_dir = project_root / reports_dir
        self.advisor = advisor
        self._sleep = sleep
        self.runner_timeout = runner_timeout
        self.state = RetryState.IDLE
        self.current_attempt = 0

    def run(self, env: str, max_retries: int, delay_seconds: float) -> RetrySummary:
        """Retry every failure in the original report.

        Args:
            env: Environment name, reloaded before each attempt.
            max_retries: Maximum number of attempts (>= 1).
            delay_seconds: Flat sleep between attempts.

        Returns:
            Session summary. With no failures in the report the empty
            summary is returned, the runner is never invoked and no summary
            file is written.

        Raises:
            ValueError: On a non-positive attempt budget or negative delay.
            ReportNotFoundError: If the original report is missing.
            ReportParseError: If the original report is malformed.
            RunnerInvocationError: If the final attempt's runner invocation
                fails (earlier failures are absorbed).

        """
        if max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {max_retries}")
        if delay_seconds < 0:
            raise ValueError(f"delay_seconds must be >= 0, got {delay_seconds}")

        self.state = RetryState.EXTRACTING
        self.current_attempt = 0
        original = self.registry.extract_failures(self.report_path)

        if not original:
            self.state = RetryState.NO_FAILURES
            logger.info("No failed tests found in %s", self.report_path)
            return RetrySummary.empty()

        self.registry.persist(original)
        self.state = RetryState.RETRYING
        logger.info(
            "Retrying %d failed tests (env=%s, max_retries=%d, delay=%ss)",
            len(original),
            env,
            max_retries,
            delay_seconds,
        )

        still_failing = list(original)
        attempts_run = 0

        for attempt in range(1, max_retries + 1):
            self.state = RetryState.ATTEMPT
            self.current_attempt = attempt
            attempts_run = attempt
            logger.info("Retry attempt %d/%d (%d scenarios)", attempt, max_retries, len(still_failing))

            try:
                still_failing = self._run_attempt(env, attempt, still_failing)
            except RunnerInvocationError as e:
                if attempt == max_retries:
                    self.state = RetryState.EXHAUSTED
                    self._finish(original, still_failing, attempts_run)
                    raise
                logger.warning("Retry attempt %d failed to run: %s", attempt, e)
            else:
                if not still_failing:
                    self.state = RetryState.RECOVERED
                    logger.info("All failed tests recovered after attempt %d", attempt)
                    break
                logger.info(
                    "Still failing after attempt %d: %s",
                    attempt,
                    ", ".join(t.scenario_name for t in still_failing),
                )

            if attempt < max_retries:
                logger.info("Waiting %ss before next retry...", delay_seconds)
                self._sleep(delay_seconds)
        else:
            self.state = RetryState.EXHAUSTED

        return self._finish(original, still_failing, attempts_run)

    def _run_attempt(
        self,
        env: str,
        attempt: int,
        targets: list[FailedTest],
    ) -> list[FailedTest]:
        """Execute one attempt and return the targets that still fail."""
        config = self.loader.load(env)
        workers = self.advisor.recommend() if self.advisor is not None else config.test.workers
        report_path = self.reports_dir / attempt_report_name(attempt)

        invocation = build_retry_invocation(
            config,
            env,
            targets,
            report_path=report_path,
            cwd=self.project_root,
            workers=workers,
            timeout=self.runner_timeout,
        )
        result = self.runner.execute(invocation)
        logger.debug("Attempt %d runner exit code: %d", attempt, result.exit_code)

        try:
            results = extract_failures(report_path, attempt=attempt + 1)
        except ReportError as e:
            raise RunnerInvocationError(
                f"Attempt {attempt} produced no usable report: {e}",
                exit_code=result.exit_code,
            ) from e

        # each result accounts for at most one target
        unmatched = list(results)
        still_failing: list[FailedTest] = []
        for target in targets:
            match = next((r for r in unmatched if _same_scenario(target, r)), None)
            if match is not None:
                unmatched.remove(match)
                still_failing.append(
                    dataclasses.replace(
                        target,
                        error=match.error,
                        recorded_at=match.recorded_at,
                        attempt=match.attempt,
                    )
                )
        return still_failing

    def _finish(
        self,
        original: list[FailedTest],
        still_failing: list[FailedTest],
        attempts_run: int,
    ) -> RetrySummary:
        summary = RetrySummary.build(original, still_failing, attempts_run)
        self.registry.replace(still_failing)
        self.registry.save_summary(summary)
        logger.info(
            "Retry summary: original=%d recovered=%d still_failing=%d success_rate=%s",
            summary.original_failure_count,
            summary.recovered_count,
            summary.still_failing_count,
            summary.success_rate_display,
        )
        return summary
