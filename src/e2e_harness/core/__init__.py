"""Core module for e2e-harness configuration and utilities.

This module provides:
- Custom exception hierarchy with HarnessError as base
- Environment configuration loading (see core.config)
- Atomic file I/O helpers (see core.io)
"""

from e2e_harness.core.exceptions import (
    ConfigError,
    ConfigNotFoundError,
    ConfigParseError,
    HarnessError,
    ReportError,
    ReportNotFoundError,
    ReportParseError,
    RunnerError,
    RunnerInvocationError,
)

__all__ = [
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigParseError",
    "HarnessError",
    "ReportError",
    "ReportNotFoundError",
    "ReportParseError",
    "RunnerError",
    "RunnerInvocationError",
]
