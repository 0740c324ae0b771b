"""Environment configuration loading.

Each environment is described by ``<config_dir>/<env>.json`` (or ``.yaml``)
layered on top of ``<config_dir>/base.json``. The merged record is validated
into an EnvironmentConfig and cached on the loader instance; there is no
module-level singleton, so separate loaders can hold different environments
side by side.
"""

import copy
import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from e2e_harness.core.config.constants import (
    BASE_CONFIG_NAME,
    CONFIG_EXTENSIONS,
    DEFAULT_ENVIRONMENT,
    ENV_BASE_URL_VAR,
    ENV_FAIL_FAST_VAR,
    ENV_HEADLESS_VAR,
    ENV_NAME_VAR,
    ENV_RETRIES_VAR,
    ENV_RETRY_DELAY_VAR,
    MAX_CONFIG_SIZE,
)
from e2e_harness.core.config.env import parse_bool
from e2e_harness.core.config.models import (
    BrowserConfig,
    EnvironmentConfig,
    LoggingConfig,
    TestPolicyConfig,
)
from e2e_harness.core.exceptions import ConfigNotFoundError, ConfigParseError

logger = logging.getLogger(__name__)


def resolve_environment_name(
    env_name: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Resolve environment name: explicit argument, then TEST_ENV, then "dev"."""
    if env_name:
        return env_name
    environ = os.environ if environ is None else environ
    return environ.get(ENV_NAME_VAR) or DEFAULT_ENVIRONMENT


def _camel_sections(data: dict[str, Any]) -> dict[str, Any]:
    """Rewrite snake_case section keys to the camelCase spelling."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            value = {(to_camel(k) if "_" in k else k): v for k, v in value.items()}
        result[key] = value
    return result


def _merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge an environment record over the base record.

    Rules:
    - Top-level mappings present on both sides are merged key-by-key,
      one level deep (override leaf wins, new leaves are added)
    - Anything else (scalars, lists, mapping vs non-mapping) is replaced
      wholesale by the override
    - Keys only in base are preserved
    - Section keys are compared in camelCase, so ``base_url`` in one file
      overrides ``baseUrl`` in the other

    Returns:
        Merged dictionary (new dict, does not modify inputs).

    """
    result = copy.deepcopy(_camel_sections(base))
    for key, value in _camel_sections(override).items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged = dict(current)
            merged.update(copy.deepcopy(value))
            result[key] = merged
        else:
            result[key] = copy.deepcopy(value)
    return result


def _find_config_file(config_dir: Path, name: str) -> Path | None:
    for ext in CONFIG_EXTENSIONS:
        candidate = config_dir / f"{name}{ext}"
        if candidate.is_file():
            return candidate
    return None


def _load_config_file(path: Path, env_name: str) -> dict[str, Any]:
    """Load and parse a JSON or YAML config file with safety checks.

    Raises:
        ConfigParseError: If the file is too large, unreadable, malformed,
            or does not contain a mapping.

    """
    try:
        with path.open("r", encoding="utf-8") as f:
            content = f.read(MAX_CONFIG_SIZE + 1)
    except OSError as e:
        raise ConfigParseError(env_name, f"cannot read {path}: {e}") from e

    if len(content) > MAX_CONFIG_SIZE:
        raise ConfigParseError(env_name, f"{path} exceeds 1MB limit")

    try:
        if path.suffix == ".json":
            parsed = json.loads(content)
        else:
            parsed = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigParseError(env_name, f"malformed {path.name}: {e}") from e

    if parsed is None:
        # Empty YAML file - treat as empty mapping
        return {}
    if not isinstance(parsed, dict):
        raise ConfigParseError(
            env_name,
            f"{path.name} must contain a mapping, got {type(parsed).__name__}",
        )
    return parsed


def _apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Overlay process environment variables onto the merged record."""
    result = copy.deepcopy(data)

    def _set(section: str, alias: str, snake: str, value: Any) -> None:
        target = result.get(section)
        if not isinstance(target, dict):
            target = {}
        target.pop(snake, None)
        target[alias] = value
        result[section] = target

    base_url = environ.get(ENV_BASE_URL_VAR)
    if base_url:
        _set("application", "baseUrl", "base_url", base_url)

    headless = parse_bool(environ.get(ENV_HEADLESS_VAR))
    if headless is not None:
        _set("browser", "headless", "headless", headless)

    retries = environ.get(ENV_RETRIES_VAR)
    if retries:
        _set("test", "retries", "retries", retries)

    retry_delay = environ.get(ENV_RETRY_DELAY_VAR)
    if retry_delay:
        _set("test", "retryDelay", "retry_delay", retry_delay)

    fail_fast = parse_bool(environ.get(ENV_FAIL_FAST_VAR))
    if fail_fast is not None:
        _set("test", "failFast", "fail_fast", fail_fast)

    return result


def load_environment(
    config_dir: Path,
    env_name: str,
    environ: Mapping[str, str] | None = None,
) -> EnvironmentConfig:
    """Load, merge and validate one environment.

    Args:
        config_dir: Directory holding base and environment files.
        env_name: Environment name (file stem).
        environ: Environment variables for overrides (defaults to os.environ).

    Returns:
        Validated EnvironmentConfig.

    Raises:
        ConfigNotFoundError: If the environment file does not exist.
        ConfigParseError: If either file is malformed or validation fails.

    """
    environ = os.environ if environ is None else environ

    base_path = _find_config_file(config_dir, BASE_CONFIG_NAME)
    env_path = _find_config_file(config_dir, env_name) if env_name != BASE_CONFIG_NAME else None

    if env_path is None:
        raise ConfigNotFoundError(env_name, available_environments(config_dir))

    base_data: dict[str, Any] = {}
    if base_path is not None:
        base_data = _load_config_file(base_path, env_name)
    else:
        logger.debug("No base config in %s, using environment file alone", config_dir)

    env_data = _load_config_file(env_path, env_name)
    merged = _apply_env_overrides(_merge_configs(base_data, env_data), environ)

    try:
        config = EnvironmentConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigParseError(env_name, str(e)) from e

    logger.info("Loaded environment: %s (%s)", config.environment.name, env_name)
    return config


def available_environments(config_dir: Path) -> list[str]:
    """List environment names with a config file, excluding base."""
    if not config_dir.is_dir():
        return []
    names = {
        path.stem
        for path in config_dir.iterdir()
        if path.is_file() and path.suffix in CONFIG_EXTENSIONS and path.stem != BASE_CONFIG_NAME
    }
    return sorted(names)


class EnvironmentConfigLoader:
    """Loads environments from a config directory and caches the last one.

    Accessors read the cached config; reading one before any explicit
    load() loads the default environment (TEST_ENV, then "dev").

    Attributes:
        config_dir: Directory holding base and environment files.

    """

    def __init__(
        self,
        config_dir: Path,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.config_dir = config_dir
        self._environ = environ
        self._config: EnvironmentConfig | None = None
        self._current: str | None = None

    def load(self, env_name: str | None = None) -> EnvironmentConfig:
        """Load (or reload) an environment and cache it on this loader."""
        _, config = self._load_resolved(env_name)
        return config

    def _load_resolved(self, env_name: str | None) -> tuple[str, EnvironmentConfig]:
        environ = os.environ if self._environ is None else self._environ
        name = resolve_environment_name(env_name, environ)
        config = load_environment(self.config_dir, name, environ)
        self._config = config
        self._current = name
        return name, config

    @property
    def config(self) -> EnvironmentConfig:
        if self._config is None:
            return self.load()
        return self._config

    @property
    def current_environment(self) -> str:
        if self._current is None:
            name, _ = self._load_resolved(None)
            return name
        return self._current

    @property
    def base_url(self) -> str:
        return self.config.application.base_url

    @property
    def search_url(self) -> str:
        return self.config.application.search_url

    @property
    def api_url(self) -> str:
        return self.config.application.api_url

    @property
    def default_user(self) -> str:
        return self.config.users.default_user

    @property
    def test_users(self) -> list[str]:
        return list(self.config.users.test_users)

    @property
    def browser(self) -> BrowserConfig:
        return self.config.browser

    @property
    def test_policy(self) -> TestPolicyConfig:
        return self.config.test

    @property
    def logging_settings(self) -> LoggingConfig:
        return self.config.logging

    def is_development(self) -> bool:
        return self.current_environment == "dev"

    def is_production(self) -> bool:
        return self.current_environment == "prod"

    def available_environments(self) -> list[str]:
        return available_environments(self.config_dir)
