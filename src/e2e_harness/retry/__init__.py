"""Failed-test registry and retry orchestration."""

from e2e_harness.retry.backoff import retry_with_backoff, should_retry_test
from e2e_harness.retry.invocation import (
    RunnerInvocation,
    RunnerResult,
    SubprocessRunner,
    build_retry_invocation,
)
from e2e_harness.retry.models import FailedTest, RetrySummary
from e2e_harness.retry.orchestrator import RetryOrchestrator, RetryState
from e2e_harness.retry.registry import FailedTestRegistry, RetryStatistics
from e2e_harness.retry.report import extract_failures, parse_report

__all__ = [
    "FailedTest",
    "FailedTestRegistry",
    "RetryOrchestrator",
    "RetryState",
    "RetryStatistics",
    "RetrySummary",
    "RunnerInvocation",
    "RunnerResult",
    "SubprocessRunner",
    "build_retry_invocation",
    "extract_failures",
    "parse_report",
    "retry_with_backoff",
    "should_retry_test",
]
