"""Parallel worker planning."""

from e2e_harness.parallel.advisor import (
    MAX_WORKERS,
    SystemInfo,
    TimeEstimate,
    WorkerAdvisor,
    WorkerPlan,
    WorkerValidation,
    estimate_time_reduction,
    is_ci,
    split_scenarios,
)

__all__ = [
    "MAX_WORKERS",
    "SystemInfo",
    "TimeEstimate",
    "WorkerAdvisor",
    "WorkerPlan",
    "WorkerValidation",
    "estimate_time_reduction",
    "is_ci",
    "split_scenarios",
]
