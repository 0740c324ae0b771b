"""Tests for the e2e-harness CLI.

Covers:
- retry: exit codes, --stats, --clear, missing/malformed reports
- workers: advisory output
- env: list and show
"""

from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from e2e_harness import __version__
from e2e_harness.cli import app
from e2e_harness.cli_utils import EXIT_CONFIG_ERROR, EXIT_ERROR, EXIT_SUCCESS
from e2e_harness.core.exceptions import RunnerInvocationError
from e2e_harness.parallel import SystemInfo, WorkerAdvisor
from e2e_harness.retry import FailedTest, FailedTestRegistry, RetrySummary, RunnerResult

runner = CliRunner()

FEATURE = "features/search.feature"


class FakeRunner:
    """Stands in for SubprocessRunner; writes a report failing ``still_failing``.

    ``still_failing`` holds (scenario name, line) pairs.
    """

    def __init__(
        self, still_failing: list[tuple[str, int]], make_scenario, write_report, error=None
    ):
        self.still_failing = still_failing
        self.calls = 0
        self._make_scenario = make_scenario
        self._write_report = write_report
        self._error = error

    def execute(self, invocation):
        self.calls += 1
        if self._error is not None:
            raise self._error
        elements = [
            self._make_scenario(name, ["failed"], line=line) for name, line in self.still_failing
        ]
        self._write_report(invocation.report_path, {FEATURE: elements})
        return RunnerResult(exit_code=1 if elements else 0, report_path=invocation.report_path)


@pytest.fixture
def project(tmp_path: Path, config_dir: Path) -> Path:
    return tmp_path


@pytest.fixture
def failing_report(project: Path, make_scenario, write_report) -> Path:
    return write_report(
        project / "reports" / "cucumber-report.json",
        {
            FEATURE: [
                make_scenario("Search for user A", ["failed"], line=5),
                make_scenario("Search for user B", ["passed"], line=9),
                make_scenario("Search for user C", ["failed"], line=14),
            ]
        },
    )


def _invoke_retry(project: Path, fake: FakeRunner, *args: str):
    with patch("e2e_harness.commands.retry.SubprocessRunner", return_value=fake):
        return runner.invoke(app, ["retry", "-p", str(project), "-d", "0", *args])


class TestExitCodes:
    def test_values(self) -> None:
        assert (EXIT_SUCCESS, EXIT_ERROR, EXIT_CONFIG_ERROR) == (0, 1, 2)


class TestVersion:
    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestRetryCommand:
    def test_all_recovered_exits_zero(
        self, project: Path, failing_report: Path, make_scenario, write_report
    ) -> None:
        fake = FakeRunner([], make_scenario, write_report)

        result = _invoke_retry(project, fake)

        assert result.exit_code == EXIT_SUCCESS, result.output
        assert fake.calls == 1
        assert "All failed tests recovered" in result.output
        assert "100.00%" in result.output
        summary = FailedTestRegistry(project).load_summary()
        assert summary is not None
        assert summary.recovered_count == 2

    def test_still_failing_exits_one(
        self, project: Path, failing_report: Path, make_scenario, write_report
    ) -> None:
        fake = FakeRunner([("Search for user C", 14)], make_scenario, write_report)

        result = _invoke_retry(project, fake, "-r", "2")

        assert result.exit_code == EXIT_ERROR
        assert fake.calls == 2
        assert "Still Failing: 1" in result.output
        assert "Search for user C" in result.output
        assert [t.scenario_name for t in FailedTestRegistry(project).load()] == [
            "Search for user C"
        ]

    def test_no_failures_exits_zero(
        self, project: Path, make_scenario, write_report
    ) -> None:
        write_report(
            project / "reports" / "cucumber-report.json",
            {FEATURE: [make_scenario("Search for user B", ["passed"])]},
        )
        fake = FakeRunner([], make_scenario, write_report)

        result = _invoke_retry(project, fake)

        assert result.exit_code == EXIT_SUCCESS
        assert fake.calls == 0
        assert "No failed tests found" in result.output

    def test_missing_report_exits_zero_with_warning(
        self, project: Path, make_scenario, write_report
    ) -> None:
        fake = FakeRunner([], make_scenario, write_report)

        result = _invoke_retry(project, fake)

        assert result.exit_code == EXIT_SUCCESS
        assert "Warning" in result.output
        assert fake.calls == 0

    def test_custom_report_path(
        self, project: Path, make_scenario, write_report
    ) -> None:
        write_report(
            project / "out" / "behave.json",
            {FEATURE: [make_scenario("Search for user A", ["failed"])]},
        )
        fake = FakeRunner([], make_scenario, write_report)

        result = _invoke_retry(project, fake, "-f", "out/behave.json")

        assert result.exit_code == EXIT_SUCCESS
        assert fake.calls == 1

    def test_malformed_report_exits_one(
        self, project: Path, make_scenario, write_report
    ) -> None:
        report = project / "reports" / "cucumber-report.json"
        report.parent.mkdir(parents=True)
        report.write_text("not json")

        result = _invoke_retry(project, FakeRunner([], make_scenario, write_report))

        assert result.exit_code == EXIT_ERROR
        assert "Error" in result.output

    def test_unknown_environment_exits_two(
        self, project: Path, failing_report: Path, make_scenario, write_report
    ) -> None:
        fake = FakeRunner([], make_scenario, write_report)

        result = _invoke_retry(project, fake, "-e", "qa")

        assert result.exit_code == EXIT_CONFIG_ERROR
        assert fake.calls == 0

    def test_final_invocation_error_exits_one(
        self, project: Path, failing_report: Path, make_scenario, write_report
    ) -> None:
        fake = FakeRunner(
            [], make_scenario, write_report, error=RunnerInvocationError("npx not found")
        )

        result = _invoke_retry(project, fake, "-r", "1")

        assert result.exit_code == EXIT_ERROR
        assert "Final retry attempt failed" in result.output
        assert "Still Failing: 2" in result.output

    def test_invalid_retries_rejected(self, project: Path) -> None:
        result = runner.invoke(app, ["retry", "-p", str(project), "-r", "0"])
        assert result.exit_code != 0

    def test_missing_project_exits_two(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["retry", "-p", str(tmp_path / "missing")])
        assert result.exit_code == EXIT_CONFIG_ERROR


class TestRetryStatsAndClear:
    def test_stats_without_summary(self, project: Path) -> None:
        result = runner.invoke(app, ["retry", "--stats", "-p", str(project)])

        assert result.exit_code == EXIT_SUCCESS
        assert "No retry statistics available" in result.output

    def test_stats_with_summary(self, project: Path) -> None:
        original = [
            FailedTest(scenario_name="A", line=1),
            FailedTest(scenario_name="B", line=2),
        ]
        FailedTestRegistry(project).save_summary(
            RetrySummary.build(original, [original[1]], attempts_run=2)
        )

        result = runner.invoke(app, ["retry", "-s", "-p", str(project)])

        assert result.exit_code == EXIT_SUCCESS
        assert "Original Failures: 2" in result.output
        assert "Tests Recovered: 1" in result.output
        assert "Success Rate: 50.00%" in result.output

    def test_stats_does_not_run_retries(
        self, project: Path, failing_report: Path, make_scenario, write_report
    ) -> None:
        fake = FakeRunner([], make_scenario, write_report)

        with patch("e2e_harness.commands.retry.SubprocessRunner", return_value=fake):
            result = runner.invoke(app, ["retry", "--stats", "-p", str(project)])

        assert result.exit_code == EXIT_SUCCESS
        assert fake.calls == 0

    def test_clear_removes_previous_state(
        self, project: Path, make_scenario, write_report
    ) -> None:
        registry = FailedTestRegistry(project)
        registry.persist([FailedTest(scenario_name="Old failure")])
        registry.save_summary(RetrySummary.build([FailedTest(scenario_name="Old failure")], [], 1))

        result = _invoke_retry(project, FakeRunner([], make_scenario, write_report), "--clear")

        assert result.exit_code == EXIT_SUCCESS
        assert "Cleared" in result.output
        assert not registry.registry_path.exists()
        assert not registry.summary_path.exists()


class TestWorkersCommand:
    @pytest.fixture
    def advisor(self) -> WorkerAdvisor:
        info = SystemInfo(cpu_count=8, total_memory_gb=16.0, free_memory_gb=16.0, platform="Linux")
        return WorkerAdvisor(system_info=info, environ={})

    def test_recommendation(self, advisor: WorkerAdvisor) -> None:
        with patch("e2e_harness.commands.workers.WorkerAdvisor", return_value=advisor):
            result = runner.invoke(app, ["workers"])

        assert result.exit_code == EXIT_SUCCESS
        assert "CPU Cores: 8" in result.output
        assert "Recommended Workers: 4" in result.output

    def test_warnings_still_exit_zero(self, advisor: WorkerAdvisor) -> None:
        with patch("e2e_harness.commands.workers.WorkerAdvisor", return_value=advisor):
            result = runner.invoke(app, ["workers", "-w", "10", "-n", "40"])

        assert result.exit_code == EXIT_SUCCESS
        assert "exceeds CPU cores" in result.output
        assert "stability cap" in result.output
        assert "Estimated reduction: 90%" in result.output

    def test_memory_overrun_warns(self) -> None:
        info = SystemInfo(cpu_count=8, total_memory_gb=16.0, free_memory_gb=1.0)
        advisor = WorkerAdvisor(system_info=info, environ={})

        with patch("e2e_harness.commands.workers.WorkerAdvisor", return_value=advisor):
            result = runner.invoke(app, ["workers", "-w", "4"])

        assert result.exit_code == EXIT_SUCCESS
        assert "exceeds available memory" in result.output


class TestEnvCommands:
    def test_list(self, project: Path) -> None:
        result = runner.invoke(app, ["env", "list", "-p", str(project)])

        assert result.exit_code == EXIT_SUCCESS
        assert "- dev" in result.output
        assert "- staging" in result.output
        assert "- base" not in result.output

    def test_list_without_configs(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["env", "list", "-p", str(tmp_path)])

        assert result.exit_code == EXIT_SUCCESS
        assert "No environments found" in result.output

    def test_show(self, project: Path) -> None:
        result = runner.invoke(app, ["env", "show", "staging", "-p", str(project)])

        assert result.exit_code == EXIT_SUCCESS
        assert "https://staging.example.com" in result.output
        assert "Test Workers: 4" in result.output
        assert "Runner: cucumber-js" in result.output

    def test_show_defaults_to_test_env(
        self, project: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_ENV", "staging")

        result = runner.invoke(app, ["env", "show", "-p", str(project)])

        assert result.exit_code == EXIT_SUCCESS
        assert "(staging)" in result.output

    def test_show_unknown_exits_two(self, project: Path) -> None:
        result = runner.invoke(app, ["env", "show", "qa", "-p", str(project)])

        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "qa" in result.output

    def test_show_writes_no_files(self, project: Path) -> None:
        before = sorted(p.name for p in project.rglob("*"))
        runner.invoke(app, ["env", "show", "dev", "-p", str(project)])
        assert sorted(p.name for p in project.rglob("*")) == before

