"""Shared constants for configuration modules.

This module provides constants used across config submodules to avoid
duplication and circular import issues.
"""

from pathlib import Path

# Environment directory, relative to the project root
DEFAULT_CONFIG_DIR: Path = Path("config") / "environments"
BASE_CONFIG_NAME: str = "base"
DEFAULT_ENVIRONMENT: str = "dev"
CONFIG_EXTENSIONS: tuple[str, ...] = (".json", ".yaml", ".yml")
MAX_CONFIG_SIZE: int = 1_048_576  # 1MB - protection against YAML bombs

# Environment variables honored by the loader
ENV_NAME_VAR: str = "TEST_ENV"
ENV_BASE_URL_VAR: str = "BASE_URL"
ENV_HEADLESS_VAR: str = "HEADLESS"
ENV_RETRIES_VAR: str = "TEST_RETRIES"
ENV_RETRY_DELAY_VAR: str = "RETRY_DELAY"
ENV_FAIL_FAST_VAR: str = "FAIL_FAST"
