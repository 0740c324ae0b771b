"""Pytest configuration and fixtures for e2e-harness tests."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

# Every variable the harness reads from the process environment
HARNESS_ENV_VARS = (
    "TEST_ENV",
    "BASE_URL",
    "HEADLESS",
    "TEST_RETRIES",
    "RETRY_DELAY",
    "FAIL_FAST",
    "CI",
    "GITHUB_ACTIONS",
    "JENKINS_URL",
    "BUILDKITE",
    "CIRCLECI",
    "CI_WORKERS",
    "E2E_WORKERS",
    "CUCUMBER_WORKERS",
    "PLAYWRIGHT_WORKERS",
)


@pytest.fixture(autouse=True)
def clean_harness_env(request, monkeypatch: pytest.MonkeyPatch):
    """Remove harness-related environment variables for each test.

    CI runners export CI/GITHUB_ACTIONS, which would otherwise change worker
    recommendations. Tests that want the real environment can use:
        @pytest.mark.no_auto_env
    """
    if not request.node.get_closest_marker("no_auto_env"):
        for name in HARNESS_ENV_VARS:
            monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def make_scenario() -> Callable[..., dict[str, Any]]:
    """Build one cucumber-style scenario element.

    Usage:
        make_scenario("Search for user A", ["passed", "failed"], line=12)

    Failing steps get "<name>: step <i> failed" unless ``errors`` maps a
    step index to a message.
    """

    def _make(
        name: str,
        statuses: list[str],
        line: int = 3,
        errors: dict[int, Any] | None = None,
        element_type: str = "scenario",
    ) -> dict[str, Any]:
        errors = errors or {}
        steps = []
        for index, status in enumerate(statuses):
            result: dict[str, Any] = {"status": status, "duration": 1_000_000}
            if status == "failed":
                result["error_message"] = errors.get(index, f"{name}: step {index} failed")
            steps.append({"keyword": "Given ", "name": f"step {index}", "result": result})
        return {
            "name": name,
            "line": line,
            "type": element_type,
            "keyword": "Scenario",
            "steps": steps,
        }

    return _make


@pytest.fixture
def write_report() -> Callable[..., Path]:
    """Write a cucumber-style JSON report.

    Usage:
        write_report(path, {"features/search.feature": [scenario, ...]})
    """

    def _write(path: Path, features: dict[str, list[dict[str, Any]]]) -> Path:
        data = [
            {
                "uri": uri,
                "name": Path(uri).stem,
                "keyword": "Feature",
                "elements": elements,
            }
            for uri, elements in features.items()
        ]
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Create config/environments with base, dev and staging files."""
    directory = tmp_path / "config" / "environments"
    directory.mkdir(parents=True)
    (directory / "base.json").write_text(
        json.dumps(
            {
                "environment": {"name": "Base", "description": "shared"},
                "application": {
                    "baseUrl": "https://base.example.com",
                    "searchUrl": "https://base.example.com/search",
                    "apiUrl": "https://api.base.example.com",
                },
                "browser": {
                    "headless": True,
                    "slowMo": 0,
                    "timeout": 30000,
                    "viewport": {"width": 1280, "height": 720},
                },
                "test": {"timeout": 20000, "retries": 2, "workers": 2, "reporter": "json"},
                "logging": {"level": "info", "enableScreenshots": True},
                "users": {"defaultUser": "octocat", "testUsers": ["octocat", "torvalds"]},
            }
        )
    )
    (directory / "dev.json").write_text(
        json.dumps(
            {
                "environment": {"name": "Development"},
                "browser": {"headless": False, "viewport": {"width": 800}},
                "test": {"retries": 1},
                "users": {"testUsers": ["devuser"]},
            }
        )
    )
    (directory / "staging.json").write_text(
        json.dumps(
            {
                "environment": {"name": "Staging", "description": "pre-prod"},
                "application": {"baseUrl": "https://staging.example.com"},
                "test": {"workers": 4, "runner": "cucumber-js", "failFast": True},
            }
        )
    )
    return directory
