"""Structured (cucumber-style JSON) report parsing.

Shape consumed, as written by cucumber-js ``--format json`` and behave
``--format json``::

    [{"uri": ..., "name": ...,
      "elements": [{"name": ..., "line": ..., "type": ...,
                    "steps": [{"result": {"status": ..., "error_message": ...}}]}]}]

The report is validated up front so shape mismatches fail loudly with
ReportParseError instead of being read as missing values.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from e2e_harness.core.exceptions import ReportNotFoundError, ReportParseError
from e2e_harness.retry.models import FailedTest

logger = logging.getLogger(__name__)

FAILED_STATUS = "failed"
UNKNOWN_ERROR = "Unknown error"


class StepResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str
    # behave emits a list of lines, cucumber-js a single string
    error_message: str | list[str] | None = None

    @property
    def error_text(self) -> str:
        if self.error_message is None:
            return ""
        if isinstance(self.error_message, list):
            return "\n".join(self.error_message)
        return self.error_message


class ReportStep(BaseModel):
    model_config = ConfigDict(extra="ignore")

    keyword: str = ""
    name: str = ""
    result: StepResult | None = None

    @property
    def failed(self) -> bool:
        return self.result is not None and self.result.status == FAILED_STATUS


def _split_location(location: str | None) -> tuple[str, int]:
    """Split behave's "path/to.feature:12" into path and line."""
    if not location:
        return "", 0
    path, sep, line = location.rpartition(":")
    if sep and line.isdigit():
        return path, int(line)
    return location, 0


class ReportScenario(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    line: int = 0
    location: str | None = None
    type: str = "scenario"
    steps: list[ReportStep] = Field(default_factory=list)

    @property
    def is_background(self) -> bool:
        return self.type == "background"

    @property
    def source_line(self) -> int:
        if self.line:
            return self.line
        return _split_location(self.location)[1]

    def first_failure(self) -> StepResult | None:
        """Result of the first failing step in document order, or None."""
        for step in self.steps:
            if step.result is not None and step.failed:
                return step.result
        return None


class ReportFeature(BaseModel):
    model_config = ConfigDict(extra="ignore")

    uri: str | None = None
    location: str | None = None
    name: str | None = None
    elements: list[ReportScenario] = Field(default_factory=list)

    @property
    def source(self) -> str:
        """Feature file path: cucumber ``uri``, behave ``location``, or the name."""
        if self.uri:
            return self.uri
        if self.location:
            return _split_location(self.location)[0]
        return self.name or ""


_REPORT_ADAPTER = TypeAdapter(list[ReportFeature])


def parse_report(report_path: Path) -> list[ReportFeature]:
    """Read and validate a structured report.

    Raises:
        ReportNotFoundError: If report_path does not exist.
        ReportParseError: If the content is not JSON or has the wrong shape.

    """
    if not report_path.is_file():
        raise ReportNotFoundError(report_path)

    try:
        raw = report_path.read_text(encoding="utf-8")
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ReportParseError(report_path, f"invalid JSON: {e}") from e
    except OSError as e:
        raise ReportParseError(report_path, f"cannot read file: {e}") from e

    try:
        return _REPORT_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise ReportParseError(report_path, f"unexpected report shape: {e}") from e


def extract_failures(report_path: Path, attempt: int = 1) -> list[FailedTest]:
    """Extract one FailedTest per scenario with at least one failing step.

    The error is taken from the first failing step; later failures in the
    same scenario are assumed to be consequences of it. Background elements
    are not scenarios and are skipped.

    Args:
        report_path: Structured report to read.
        attempt: Attempt number to stamp on every record.

    Returns:
        Failed scenarios in report order.

    Raises:
        ReportNotFoundError: If report_path does not exist.
        ReportParseError: If the report is malformed or a failing scenario
            has no name.

    """
    features = parse_report(report_path)
    failures: list[FailedTest] = []

    for feature in features:
        for scenario in feature.elements:
            if scenario.is_background:
                continue
            failure = scenario.first_failure()
            if failure is None:
                continue
            if not scenario.name:
                raise ReportParseError(
                    report_path,
                    f"failing scenario at {feature.source}:{scenario.source_line} has no name",
                )
            failures.append(
                FailedTest(
                    scenario_name=scenario.name,
                    feature_file=feature.source,
                    line=scenario.source_line,
                    error=failure.error_text or UNKNOWN_ERROR,
                    attempt=attempt,
                )
            )

    logger.debug("Found %d failed scenarios in %s", len(failures), report_path)
    return failures
