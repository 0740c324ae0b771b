"""e2e-harness: orchestration glue for BDD browser test suites."""

__version__ = "0.3.0"
