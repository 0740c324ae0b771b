"""Tests for runner invocation building and subprocess execution."""

import re
import subprocess
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from e2e_harness.core.config import EnvironmentConfig, load_environment
from e2e_harness.core.exceptions import RunnerInvocationError
from e2e_harness.retry import FailedTest, RunnerInvocation, SubprocessRunner, build_retry_invocation
from e2e_harness.retry.invocation import name_pattern


def _failed(name: str, feature: str = "features/search.feature", line: int = 3) -> FailedTest:
    return FailedTest(scenario_name=name, feature_file=feature, line=line)


@pytest.fixture
def behave_config(config_dir: Path) -> EnvironmentConfig:
    return load_environment(config_dir, "dev", environ={})


@pytest.fixture
def cucumber_config(config_dir: Path) -> EnvironmentConfig:
    return load_environment(config_dir, "staging", environ={})


class TestNamePattern:
    def test_anchored(self):
        assert name_pattern("Login") == "^Login$"

    @pytest.mark.parametrize(
        "name",
        ['Search for "octocat"', "Price (USD) is $5.00", "a|b [draft] *?+", "back\\slash"],
    )
    def test_matches_only_exact_name(self, name: str):
        pattern = re.compile(name_pattern(name))
        assert pattern.match(name)
        assert not pattern.match(name + " extra")
        assert not pattern.match("prefix " + name)


class TestBuildRetryInvocation:
    def test_behave_argv(self, tmp_path: Path, behave_config: EnvironmentConfig):
        report = tmp_path / "reports" / "retry-1.json"

        invocation = build_retry_invocation(
            behave_config,
            "dev",
            [_failed("Search for user A"), _failed("Navigate to repos B", "features/nav.feature")],
            report_path=report,
            cwd=tmp_path,
        )

        assert invocation.argv == [
            sys.executable,
            "-m",
            "behave",
            "features/search.feature",
            "features/nav.feature",
            "--name",
            name_pattern("Search for user A"),
            "--name",
            name_pattern("Navigate to repos B"),
            "--format",
            "json",
            "--outfile",
            str(report),
            "--no-capture",
        ]
        assert invocation.cwd == tmp_path
        assert invocation.report_path == report

    def test_cucumber_argv(self, tmp_path: Path, cucumber_config: EnvironmentConfig):
        report = tmp_path / "retry-1.json"

        invocation = build_retry_invocation(
            cucumber_config, "staging", [_failed("Login")], report, tmp_path, workers=3
        )

        assert invocation.argv == [
            "npx",
            "cucumber-js",
            "features/search.feature",
            "--name",
            "^Login$",
            "--format",
            f"json:{report}",
            "--parallel",
            "3",
            "--fail-fast",
        ]

    def test_cucumber_single_worker_not_parallel(
        self, tmp_path: Path, cucumber_config: EnvironmentConfig
    ):
        invocation = build_retry_invocation(
            cucumber_config, "staging", [_failed("Login")], tmp_path / "r.json", tmp_path, workers=1
        )
        assert "--parallel" not in invocation.argv

    def test_duplicate_names_one_pattern(self, tmp_path: Path, behave_config: EnvironmentConfig):
        targets = [_failed("Row", line=10), _failed("Row", line=11)]

        invocation = build_retry_invocation(behave_config, "dev", targets, tmp_path / "r.json", tmp_path)

        assert invocation.argv.count("--name") == 1
        assert invocation.argv.count("features/search.feature") == 1

    def test_unknown_feature_uses_features_dir(
        self, tmp_path: Path, behave_config: EnvironmentConfig
    ):
        invocation = build_retry_invocation(
            behave_config, "dev", [_failed("Login", feature="Login feature")], tmp_path / "r.json", tmp_path
        )

        assert invocation.argv[3] == "features"
        assert "Login feature" not in invocation.argv

    def test_environment(self, tmp_path: Path, behave_config: EnvironmentConfig, monkeypatch):
        monkeypatch.setenv("E2E_SENTINEL", "kept")

        invocation = build_retry_invocation(
            behave_config, "dev", [_failed("Login")], tmp_path / "r.json", tmp_path, workers=5
        )

        assert invocation.env["E2E_SENTINEL"] == "kept"
        assert invocation.env["TEST_ENV"] == "dev"
        assert invocation.env["BASE_URL"] == "https://base.example.com"
        assert invocation.env["HEADLESS"] == "false"
        assert invocation.env["TEST_TIMEOUT"] == "30000"
        assert invocation.env["CUCUMBER_WORKERS"] == "5"

    def test_empty_targets_rejected(self, tmp_path: Path, behave_config: EnvironmentConfig):
        with pytest.raises(ValueError):
            build_retry_invocation(behave_config, "dev", [], tmp_path / "r.json", tmp_path)


class TestSubprocessRunner:
    @pytest.fixture
    def invocation(self, tmp_path: Path) -> RunnerInvocation:
        return RunnerInvocation(
            argv=["npx", "cucumber-js"],
            env={"TEST_ENV": "dev"},
            cwd=tmp_path,
            report_path=tmp_path / "reports" / "retry-1.json",
            timeout=60,
        )

    def test_nonzero_exit_with_report_is_result(self, invocation: RunnerInvocation):
        def fake_run(argv, **kwargs):
            invocation.report_path.write_text("[]")
            return MagicMock(returncode=1, stdout="1 failed", stderr="")

        with patch("e2e_harness.retry.invocation.subprocess.run", side_effect=fake_run) as run:
            result = SubprocessRunner().execute(invocation)

        assert result.exit_code == 1
        assert result.stdout == "1 failed"
        assert result.report_path == invocation.report_path
        kwargs = run.call_args.kwargs
        assert kwargs["cwd"] == invocation.cwd
        assert kwargs["env"] == {"TEST_ENV": "dev"}
        assert kwargs["timeout"] == 60
        assert "shell" not in kwargs

    def test_stale_report_removed_before_run(self, invocation: RunnerInvocation):
        invocation.report_path.parent.mkdir(parents=True)
        invocation.report_path.write_text("[]")

        with patch(
            "e2e_harness.retry.invocation.subprocess.run",
            return_value=MagicMock(returncode=2, stdout="", stderr="Cannot find module"),
        ):
            with pytest.raises(RunnerInvocationError) as exc_info:
                SubprocessRunner().execute(invocation)

        assert exc_info.value.exit_code == 2
        assert exc_info.value.stderr == "Cannot find module"

    def test_timeout(self, invocation: RunnerInvocation):
        with patch(
            "e2e_harness.retry.invocation.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="npx", timeout=60),
        ):
            with pytest.raises(RunnerInvocationError, match="timed out after 60s"):
                SubprocessRunner().execute(invocation)

    def test_missing_executable(self, invocation: RunnerInvocation):
        with patch(
            "e2e_harness.retry.invocation.subprocess.run",
            side_effect=FileNotFoundError("npx"),
        ):
            with pytest.raises(RunnerInvocationError, match="not found: npx"):
                SubprocessRunner().execute(invocation)
