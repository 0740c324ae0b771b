"""Exception hierarchy for e2e-harness.

All errors raised by the harness derive from HarnessError so the CLI can
map them to exit codes in one place.
"""

from pathlib import Path


class HarnessError(Exception):
    """Base exception for all e2e-harness errors."""


class ConfigError(HarnessError):
    """Environment configuration could not be loaded."""


class ConfigNotFoundError(ConfigError):
    """No configuration file exists for the requested environment.

    Attributes:
        env_name: Requested environment name.
        available: Environment names that do have a file.

    """

    def __init__(self, env_name: str, available: list[str] | None = None) -> None:
        self.env_name = env_name
        self.available = available or []
        message = f"Environment configuration not found: {env_name}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class ConfigParseError(ConfigError):
    """Configuration file exists but its content is malformed or invalid."""

    def __init__(self, env_name: str, detail: str) -> None:
        self.env_name = env_name
        self.detail = detail
        super().__init__(f"Invalid configuration for environment '{env_name}': {detail}")


class ReportError(HarnessError):
    """Structured test report could not be used."""


class ReportNotFoundError(ReportError):
    """Structured test report does not exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Report file not found: {path}")


class ReportParseError(ReportError):
    """Structured report (or registry file) is malformed."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Cannot parse report {path}: {detail}")


class RunnerError(HarnessError):
    """Base error for test-runner execution."""


class RunnerInvocationError(RunnerError):
    """The test runner could not complete an invocation.

    Raised when the process cannot be started, times out, or exits without
    producing its structured report. A non-zero exit that still writes a
    report is a normal outcome (scenarios failed) and does not raise.

    Attributes:
        exit_code: Process exit code, or None if it never ran to completion.
        stderr: Captured stderr (truncated).

    """

    def __init__(self, message: str, exit_code: int | None = None, stderr: str = "") -> None:
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(message)
