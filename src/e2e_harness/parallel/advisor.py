"""Parallel worker-count advisor.

Recommends how many runner workers to use from CPU and memory introspection,
CI detection and environment overrides, and validates a chosen count against
the machine. Everything here is advisory: nothing enforces the validation
result.
"""

from __future__ import annotations

import logging
import math
import os
import platform
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import TypeVar

import psutil

from e2e_harness.core.config.env import parse_positive_int

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Presence of any of these marks a CI run
CI_ENV_VARS: tuple[str, ...] = ("CI", "GITHUB_ACTIONS", "JENKINS_URL", "BUILDKITE", "CIRCLECI")
CI_WORKERS_VAR = "CI_WORKERS"
WORKER_OVERRIDE_VARS: tuple[str, ...] = ("E2E_WORKERS", "CUCUMBER_WORKERS", "PLAYWRIGHT_WORKERS")

DEFAULT_CI_WORKERS = 2
MAX_WORKERS = 8
CPU_UTILIZATION = 0.5
MEMORY_PER_WORKER_GB = 0.5
AVG_SCENARIO_SECONDS = 30

_BYTES_PER_GB = 1024**3


@dataclass(frozen=True)
class SystemInfo:
    """Snapshot of machine resources.

    Attributes:
        cpu_count: Logical CPU count.
        total_memory_gb: Total physical memory in GB.
        free_memory_gb: Available memory in GB.
        platform: Platform name (e.g., "Linux").

    """

    cpu_count: int
    total_memory_gb: float
    free_memory_gb: float
    platform: str = ""

    @classmethod
    def collect(cls) -> SystemInfo:
        """Read current resources via psutil."""
        memory = psutil.virtual_memory()
        return cls(
            cpu_count=os.cpu_count() or 1,
            total_memory_gb=round(memory.total / _BYTES_PER_GB, 2),
            free_memory_gb=round(memory.available / _BYTES_PER_GB, 2),
            platform=platform.system(),
        )


@dataclass
class WorkerValidation:
    """Result of validating a worker count."""

    is_valid: bool = True
    warnings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TimeEstimate:
    """Rough sequential vs parallel duration, in seconds."""

    sequential_seconds: int
    parallel_seconds: int
    estimated_reduction_percent: int


@dataclass
class WorkerPlan:
    """Everything the advisor knows about one run. Not persisted."""

    system: SystemInfo
    is_ci: bool
    requested_workers: int | None
    recommended_workers: int
    validation: WorkerValidation


def is_ci(environ: Mapping[str, str] | None = None) -> bool:
    """Return True when any CI indicator variable is set."""
    environ = os.environ if environ is None else environ
    return any(environ.get(name) for name in CI_ENV_VARS)


def split_scenarios(items: Sequence[T], worker_count: int) -> list[list[T]]:
    """Distribute items round-robin across workers, dropping empty chunks."""
    if worker_count < 1:
        raise ValueError(f"worker_count must be >= 1, got {worker_count}")
    chunks: list[list[T]] = [[] for _ in range(worker_count)]
    for index, item in enumerate(items):
        chunks[index % worker_count].append(item)
    return [chunk for chunk in chunks if chunk]


def estimate_time_reduction(total_scenarios: int, worker_count: int) -> TimeEstimate:
    """Estimate wall time saved by running scenarios in parallel.

    Assumes every scenario takes AVG_SCENARIO_SECONDS.
    """
    if worker_count < 1:
        raise ValueError(f"worker_count must be >= 1, got {worker_count}")
    sequential = total_scenarios * AVG_SCENARIO_SECONDS
    parallel = math.ceil(total_scenarios / worker_count) * AVG_SCENARIO_SECONDS
    reduction = round((sequential - parallel) / sequential * 100) if sequential else 0
    return TimeEstimate(
        sequential_seconds=sequential,
        parallel_seconds=parallel,
        estimated_reduction_percent=reduction,
    )


class WorkerAdvisor:
    """Computes and validates parallel worker counts.

    Args:
        system_info: Resource snapshot; collected lazily via psutil if None.
        environ: Environment variables (defaults to os.environ).

    """

    def __init__(
        self,
        system_info: SystemInfo | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._system_info = system_info
        self._environ = environ

    @property
    def system_info(self) -> SystemInfo:
        if self._system_info is None:
            self._system_info = SystemInfo.collect()
        return self._system_info

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def is_ci(self) -> bool:
        return is_ci(self.environ)

    def optimal_worker_count(self) -> int:
        """50% of CPU cores, bounded by memory and the stability cap."""
        info = self.system_info
        workers = max(1, math.floor(info.cpu_count * CPU_UTILIZATION))
        max_by_memory = max(1, math.floor(info.total_memory_gb / MEMORY_PER_WORKER_GB))
        return min(workers, max_by_memory, MAX_WORKERS)

    def requested_workers(self) -> int | None:
        """Explicit worker override from the environment, if any."""
        for name in WORKER_OVERRIDE_VARS:
            value = parse_positive_int(self.environ.get(name))
            if value is not None:
                return value
        return None

    def ci_worker_count(self) -> int:
        return parse_positive_int(self.environ.get(CI_WORKERS_VAR)) or DEFAULT_CI_WORKERS

    def recommend(self) -> int:
        """Recommended worker count (always >= 1)."""
        if self.is_ci():
            workers = self.ci_worker_count()
            logger.debug("CI detected, recommending %d workers", workers)
            return workers

        requested = self.requested_workers()
        if requested is not None:
            logger.debug("Using worker override from environment: %d", requested)
            return requested

        return self.optimal_worker_count()

    def validate(self, worker_count: int) -> WorkerValidation:
        """Check a worker count against the machine.

        Only a memory overrun makes the result invalid; the other findings
        are warnings.
        """
        info = self.system_info
        result = WorkerValidation()

        if worker_count > info.cpu_count:
            result.warnings.append(
                f"Worker count ({worker_count}) exceeds CPU cores ({info.cpu_count})"
            )
            result.recommendations.append(
                f"Consider reducing workers to {info.cpu_count} or less"
            )

        estimated_memory = worker_count * MEMORY_PER_WORKER_GB
        if estimated_memory > info.free_memory_gb:
            result.warnings.append(
                f"Estimated memory usage ({estimated_memory}GB) exceeds "
                f"free memory ({info.free_memory_gb}GB)"
            )
            result.recommendations.append(
                f"Consider reducing workers to "
                f"{max(1, math.floor(info.free_memory_gb / MEMORY_PER_WORKER_GB))}"
            )
            result.is_valid = False

        if worker_count > MAX_WORKERS:
            result.warnings.append(
                f"Worker count ({worker_count}) exceeds stability cap of {MAX_WORKERS}"
            )
            result.recommendations.append(f"Consider capping workers at {MAX_WORKERS}")

        if worker_count == 1:
            result.warnings.append("Running with single worker - no parallelization benefit")
            result.recommendations.append(
                f"Consider using {self.recommend()} workers for better performance"
            )

        return result

    def plan(self, requested: int | None = None) -> WorkerPlan:
        """Build a WorkerPlan; ``requested`` wins over the recommendation."""
        if requested is None:
            requested = self.requested_workers()
        recommended = self.recommend()
        chosen = requested if requested is not None else recommended
        return WorkerPlan(
            system=self.system_info,
            is_ci=self.is_ci(),
            requested_workers=requested,
            recommended_workers=recommended,
            validation=self.validate(chosen),
        )
