"""Environment configuration for e2e-harness.

Usage:
    from e2e_harness.core.config import EnvironmentConfigLoader

    loader = EnvironmentConfigLoader(project_root / DEFAULT_CONFIG_DIR)
    config = loader.load("staging")
    config.application.base_url
"""

from e2e_harness.core.config.constants import (
    BASE_CONFIG_NAME,
    DEFAULT_CONFIG_DIR,
    DEFAULT_ENVIRONMENT,
    MAX_CONFIG_SIZE,
)
from e2e_harness.core.config.env import (
    ENV_FILE_NAME,
    load_env_file,
    parse_bool,
    parse_positive_int,
)
from e2e_harness.core.config.loaders import (
    EnvironmentConfigLoader,
    available_environments,
    load_environment,
    resolve_environment_name,
)
from e2e_harness.core.config.models import (
    ApplicationConfig,
    BrowserConfig,
    EnvironmentConfig,
    EnvironmentInfo,
    LoggingConfig,
    TestPolicyConfig,
    UsersConfig,
    ViewportConfig,
)

__all__ = [
    "BASE_CONFIG_NAME",
    "DEFAULT_CONFIG_DIR",
    "DEFAULT_ENVIRONMENT",
    "ENV_FILE_NAME",
    "MAX_CONFIG_SIZE",
    "ApplicationConfig",
    "BrowserConfig",
    "EnvironmentConfig",
    "EnvironmentConfigLoader",
    "EnvironmentInfo",
    "LoggingConfig",
    "TestPolicyConfig",
    "UsersConfig",
    "ViewportConfig",
    "available_environments",
    "load_env_file",
    "load_environment",
    "parse_bool",
    "parse_positive_int",
    "resolve_environment_name",
]
