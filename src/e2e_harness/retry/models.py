"""Records produced by the failed-test registry and retry orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from e2e_harness.core.io import get_timestamp

ScenarioKey = tuple[str, str, int]


@dataclass
class FailedTest:
    """One scenario that failed in a given run.

    Attributes:
        scenario_name: Scenario title (example-row values substituted).
        feature_file: Feature file the scenario came from ("" if unknown).
        line: Scenario line in the feature file (0 if unknown).
        error: Error message of the first failing step.
        recorded_at: ISO timestamp of detection.
        attempt: 1-based execution attempt that produced this record.

    """

    scenario_name: str
    feature_file: str = ""
    line: int = 0
    error: str = ""
    recorded_at: str = field(default_factory=get_timestamp)
    attempt: int = 1

    def __post_init__(self) -> None:
        if not self.scenario_name:
            raise ValueError("scenario_name must be non-empty")

    @property
    def key(self) -> ScenarioKey:
        """Identity used to tell same-named scenarios apart."""
        return (self.feature_file, self.scenario_name, self.line)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "scenario_name": self.scenario_name,
            "feature_file": self.feature_file,
            "line": self.line,
            "error": self.error,
            "recorded_at": self.recorded_at,
            "attempt": self.attempt,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FailedTest:
        return cls(
            scenario_name=str(data["scenario_name"]),
            feature_file=str(data.get("feature_file", "")),
            line=int(data.get("line", 0)),
            error=str(data.get("error", "")),
            recorded_at=str(data.get("recorded_at") or get_timestamp()),
            attempt=int(data.get("attempt", 1)),
        )


def _unique_names(tests: list[FailedTest]) -> list[str]:
    return list(dict.fromkeys(t.scenario_name for t in tests))


@dataclass
class RetrySummary:
    """Outcome of one retry session.

    Attributes:
        timestamp: When the session finished.
        original_failure_count: Failures found before retrying.
        retried_count: Scenarios retried (equals original_failure_count).
        still_failing_count: Failures left after the last attempt.
        recovered_count: original_failure_count - still_failing_count.
        success_rate_percent: recovered / original * 100 as a two-decimal
            string; None when there was nothing to retry.
        recovered_names: Names of recovered scenarios.
        still_failing_names: Names of scenarios still failing.
        attempts_run: Retry attempts actually executed.
        original_failed: Records found before retrying.
        still_failing: Records still failing after the last attempt.

    """

    timestamp: str
    original_failure_count: int
    retried_count: int
    still_failing_count: int
    recovered_count: int
    success_rate_percent: str | None
    recovered_names: list[str] = field(default_factory=list)
    still_failing_names: list[str] = field(default_factory=list)
    attempts_run: int = 0
    original_failed: list[FailedTest] = field(default_factory=list)
    still_failing: list[FailedTest] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        original: list[FailedTest],
        still_failing: list[FailedTest],
        attempts_run: int,
    ) -> RetrySummary:
        """Derive counts and the recovered set from before/after records."""
        still_keys = {t.key for t in still_failing}
        recovered = [t for t in original if t.key not in still_keys]
        original_count = len(original)
        still_count = len(still_failing)
        recovered_count = original_count - still_count

        success_rate = (
            f"{recovered_count / original_count * 100:.2f}" if original_count > 0 else None
        )

        return cls(
            timestamp=get_timestamp(),
            original_failure_count=original_count,
            retried_count=original_count,
            still_failing_count=still_count,
            recovered_count=recovered_count,
            success_rate_percent=success_rate,
            recovered_names=_unique_names(recovered),
            still_failing_names=_unique_names(still_failing),
            attempts_run=attempts_run,
            original_failed=list(original),
            still_failing=list(still_failing),
        )

    @classmethod
    def empty(cls) -> RetrySummary:
        """Summary for a session that found nothing to retry."""
        return cls.build([], [], attempts_run=0)

    @property
    def fully_recovered(self) -> bool:
        return self.still_failing_count == 0

    @property
    def success_rate_display(self) -> str:
        if self.success_rate_percent is None:
            return "n/a"
        return f"{self.success_rate_percent}%"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "timestamp": self.timestamp,
            "original_failure_count": self.original_failure_count,
            "retried_count": self.retried_count,
            "still_failing_count": self.still_failing_count,
            "recovered_count": self.recovered_count,
            "success_rate_percent": self.success_rate_percent,
            "recovered_names": self.recovered_names,
            "still_failing_names": self.still_failing_names,
            "attempts_run": self.attempts_run,
            "details": {
                "original_failed": [t.to_dict() for t in self.original_failed],
                "still_failing": [t.to_dict() for t in self.still_failing],
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RetrySummary:
        details = data.get("details") or {}
        return cls(
            timestamp=str(data["timestamp"]),
            original_failure_count=int(data["original_failure_count"]),
            retried_count=int(data.get("retried_count", data["original_failure_count"])),
            still_failing_count=int(data["still_failing_count"]),
            recovered_count=int(data["recovered_count"]),
            success_rate_percent=data.get("success_rate_percent"),
            recovered_names=list(data.get("recovered_names", [])),
            still_failing_names=list(data.get("still_failing_names", [])),
            attempts_run=int(data.get("attempts_run", 0)),
            original_failed=[FailedTest.from_dict(d) for d in details.get("original_failed", [])],
            still_failing=[FailedTest.from_dict(d) for d in details.get("still_failing", [])],
        )
