"""Environment variable and .env handling for e2e-harness."""

import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# .env file name constant
ENV_FILE_NAME: str = ".env"

_TRUTHY: frozenset[str] = frozenset({"1", "true", "yes", "on"})
_FALSY: frozenset[str] = frozenset({"0", "false", "no", "off"})


def _check_env_file_permissions(path: Path) -> None:
    """Check if .env file has secure permissions (600 or 400 on Unix).

    The file may carry test-account credentials, so a permissive mode is
    logged as a warning. Skipped on Windows.

    Args:
        path: Path to .env file.

    """
    if sys.platform == "win32":
        return

    try:
        mode = path.stat().st_mode & 0o777
        if mode not in (0o600, 0o400):
            logger.warning(
                ".env file %s has insecure permissions %03o, "
                "expected 600 or 400. Run: chmod 600 %s",
                path,
                mode,
                path,
            )
    except OSError:
        pass  # File may have been deleted between check and stat


def load_env_file(
    project_path: str | Path | None = None,
    *,
    check_permissions: bool = True,
) -> bool:
    """Load environment variables from {project_path}/.env.

    Existing environment variables are NOT overridden (override=False), so
    values exported by CI always win over the checked-in defaults.

    Args:
        project_path: Path to project directory. Defaults to current working directory.
        check_permissions: Whether to check file permissions (default True).

    Returns:
        True if .env file was found and loaded, False otherwise.

    """
    resolved_path = Path.cwd() if project_path is None else Path(project_path).expanduser()
    env_file = resolved_path / ENV_FILE_NAME

    if not env_file.is_file():
        logger.debug(".env file not found at %s, skipping", env_file)
        return False

    if check_permissions:
        _check_env_file_permissions(env_file)

    load_dotenv(env_file, encoding="utf-8", override=False)
    logger.debug("Loaded environment variables from %s", env_file)

    return True


def parse_bool(value: str | None) -> bool | None:
    """Parse a boolean-ish environment value.

    Returns:
        True/False for recognized spellings, None for unset or unrecognized.

    """
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    logger.warning("Ignoring unrecognized boolean value %r", value)
    return None


def parse_positive_int(value: str | None) -> int | None:
    """Parse a strictly positive integer, or None when unset/invalid."""
    if value is None or not value.strip():
        return None
    try:
        parsed = int(value.strip())
    except ValueError:
        logger.warning("Ignoring non-integer value %r", value)
        return None
    if parsed < 1:
        logger.warning("Ignoring non-positive value %r", value)
        return None
    return parsed
