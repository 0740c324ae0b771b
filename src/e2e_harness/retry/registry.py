"""File-backed registry of failed scenarios and the last retry summary.

The registry and summary are the only state that survives between runs.
Files are rewritten atomically, but there is no locking: one retry session
per working directory at a time.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from e2e_harness.core.exceptions import ReportParseError
from e2e_harness.core.io import atomic_write_json, remove_file
from e2e_harness.retry.models import FailedTest, RetrySummary, ScenarioKey
from e2e_harness.retry.report import extract_failures

logger = logging.getLogger(__name__)

FAILED_TESTS_FILE = Path("test-results") / "failed-tests.json"
RETRY_SUMMARY_FILE = Path("reports") / "retry-report.json"


@dataclass(frozen=True)
class RetryStatistics:
    """Totals read back from the last retry summary."""

    total_retries: int = 0
    successful_retries: int = 0
    permanent_failures: int = 0
    retry_success_rate: float = 0.0


def _collapse(tests: list[FailedTest]) -> list[FailedTest]:
    """Keep the newest record per scenario key, in first-seen order."""
    latest: dict[ScenarioKey, FailedTest] = {}
    for test in tests:
        latest[test.key] = test
    return list(latest.values())


class FailedTestRegistry:
    """Durable list of failed scenarios.

    Args:
        project_root: Directory relative paths are resolved against.
        registry_path: Failed-test list location.
        summary_path: Retry summary location.

    """

    def __init__(
        self,
        project_root: Path,
        registry_path: Path = FAILED_TESTS_FILE,
        summary_path: Path = RETRY_SUMMARY_FILE,
    ) -> None:
        self.project_root = project_root
        self.registry_path = project_root / registry_path
        self.summary_path = project_root / summary_path

    def extract_failures(self, report_path: Path, attempt: int = 1) -> list[FailedTest]:
        """Extract failures from a structured report (see report.extract_failures)."""
        return extract_failures(report_path, attempt=attempt)

    def load(self) -> list[FailedTest]:
        """Load recorded failures; an absent registry is empty.

        Raises:
            ReportParseError: If the registry file is malformed.

        """
        if not self.registry_path.is_file():
            return []
        try:
            data = json.loads(self.registry_path.read_text(encoding="utf-8"))
            if not isinstance(data, list):
                raise TypeError(f"expected a list, got {type(data).__name__}")
            return [FailedTest.from_dict(item) for item in data]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise ReportParseError(self.registry_path, str(e)) from e

    def persist(self, tests: list[FailedTest]) -> list[FailedTest]:
        """Append records to the registry and rewrite it.

        Records sharing a (feature, name, line) key collapse to the newest.

        Returns:
            The registry contents after the write.

        """
        combined = _collapse(self.load() + list(tests))
        self._write(combined)
        logger.info("Saved %d failed tests to %s", len(tests), self.registry_path)
        return combined

    def replace(self, tests: list[FailedTest]) -> None:
        """Rewrite the registry with exactly these records."""
        self._write(_collapse(list(tests)))

    def clear(self) -> None:
        """Delete registry and summary files. Safe to call repeatedly."""
        if remove_file(self.registry_path):
            logger.info("Cleared failed tests list")
        if remove_file(self.summary_path):
            logger.info("Cleared retry report")

    def save_summary(self, summary: RetrySummary) -> None:
        """Write the summary, overwriting the previous one."""
        atomic_write_json(self.summary_path, summary.to_dict())
        logger.debug("Retry summary written to %s", self.summary_path)

    def load_summary(self) -> RetrySummary | None:
        """Read the last summary, or None if there is none.

        Raises:
            ReportParseError: If the summary file is malformed.

        """
        if not self.summary_path.is_file():
            return None
        try:
            data = json.loads(self.summary_path.read_text(encoding="utf-8"))
            return RetrySummary.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise ReportParseError(self.summary_path, str(e)) from e

    def statistics(self) -> RetryStatistics:
        summary = self.load_summary()
        if summary is None:
            return RetryStatistics()
        return RetryStatistics(
            total_retries=summary.retried_count,
            successful_retries=summary.recovered_count,
            permanent_failures=summary.still_failing_count,
            retry_success_rate=float(summary.success_rate_percent or 0),
        )

    def _write(self, tests: list[FailedTest]) -> None:
        payload: list[dict[str, Any]] = [t.to_dict() for t in tests]
        atomic_write_json(self.registry_path, payload)
