"""Shared I/O utilities for atomic file operations.

This module provides reusable utilities for:
- Atomic file writes (temp file + os.replace pattern)
- JSON document reads/writes used by the failed-test registry
- Unified UTC timestamp generation
"""

import json
import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

__all__ = [
    "atomic_write",
    "atomic_write_json",
    "get_timestamp",
    "remove_file",
]

logger = logging.getLogger(__name__)


def get_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string.

    Example:
        >>> get_timestamp()  # doctest: +SKIP
        '2026-10-18T09:12:44.123456+00:00'

    """
    return datetime.now(UTC).isoformat()


def atomic_write(path: Path, content: str) -> None:
    """Atomically write text content using temp file + rename.

    Parent directories are created as needed. On failure the temp file is
    removed and the original exception propagates.

    Args:
        path: Target file path.
        content: Text to write (UTF-8).

    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(
        suffix=path.suffix or ".tmp",
        prefix=f".{path.stem}-",
        dir=path.parent,
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(temp_path, path)
        logger.debug("Atomic write: %s", path)
    except Exception:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise


def atomic_write_json(path: Path, data: Any) -> None:
    """Serialize data as indented JSON and write it atomically."""
    atomic_write(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def remove_file(path: Path) -> bool:
    """Delete a file if it exists.

    Returns:
        True if a file was removed, False if there was nothing to remove.

    """
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.debug("Removed %s", path)
    return True
