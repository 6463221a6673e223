"""Tests for the project-health command line."""

import json

import frontmatter
import pytest
import yaml
from click.testing import CliRunner

from project_health.cli.app import main
from project_health.cli.analytics_commands import format_table, sparkline


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, tmp_path):
    data_dir = tmp_path / "data"

    def _invoke(*args):
        return runner.invoke(main, ["--data-dir", str(data_dir), *args])

    _invoke.data_dir = data_dir
    return _invoke


@pytest.fixture
def seeded(invoke):
    assert invoke("project", "add", "alpha", "--name", "Alpha").exit_code == 0
    assert invoke("task", "add", "alpha", "t1", "--title", "Design", "--estimate", "4").exit_code == 0
    assert invoke("task", "add", "alpha", "t2", "--title", "Build", "--status", "done").exit_code == 0
    return invoke


class TestHelpers:

    def test_format_table(self):
        assert format_table([]) == "No data available"
        table = format_table([{"A": 1, "B": 2}], tablefmt="simple")
        assert "A" in table and "2" in table

    def test_sparkline(self):
        assert sparkline([]) == ""
        assert sparkline([0, 50, 100]) == "▁▅█"
        assert sparkline([150, -10]) == "█▁"


class TestDataCommands:

    def test_project_add_and_list(self, seeded):
        result = seeded("project", "list")

        assert result.exit_code == 0
        assert "alpha" in result.output
        assert "Alpha" in result.output

    def test_project_update(self, seeded):
        result = seeded("project", "add", "alpha", "--status", "Paused")
        assert result.exit_code == 0
        assert "Updated project alpha" in result.output

    def test_empty_project_list(self, invoke):
        result = invoke("project", "list")
        assert result.exit_code == 0
        assert "No projects found" in result.output

    def test_log_time_updates_total(self, seeded):
        assert seeded("log-time", "t1", "1.5").exit_code == 0
        result = seeded("log-time", "t1", "2", "--note", "pairing", "--by", "sam")

        assert result.exit_code == 0
        assert "total 3.5h" in result.output

    def test_log_time_rejects_bad_hours(self, seeded):
        result = seeded("log-time", "t1", "0")

        assert result.exit_code == 1
        assert "positive number" in result.output

    def test_log_time_unknown_task(self, seeded):
        result = seeded("log-time", "nope", "1")

        assert result.exit_code == 1
        assert "Task not found: nope" in result.output

    def test_task_status_and_delete(self, seeded):
        assert seeded("task", "status", "t1", "in-progress").exit_code == 0
        assert seeded("task", "delete", "t2").exit_code == 0

        result = seeded("analytics", "health", "alpha", "--format", "json", "--no-snapshot")
        data = json.loads(result.output)
        assert data["factors"]["completion"] == 0

        assert seeded("task", "delete", "t2").exit_code == 1

    def test_invalid_due_date(self, seeded):
        result = seeded("task", "add", "alpha", "t3", "--due", "someday")
        assert result.exit_code == 1
        assert "Invalid due date" in result.output

    def test_milestone_add(self, seeded):
        result = seeded("milestone", "add", "alpha", "m1", "--title", "Beta",
                        "--target", "2030-01-01")
        assert result.exit_code == 0

    def test_dependencies(self, seeded):
        assert seeded("project", "add", "core", "--status", "In Progress").exit_code == 0
        assert seeded("deps", "set", "alpha", "core", "alpha").exit_code == 0

        result = seeded("deps", "show", "alpha")

        assert result.exit_code == 0
        assert "core" in result.output
        assert "direct" in result.output
        assert "yes" in result.output

    def test_dependency_cycle_warning(self, seeded):
        seeded("deps", "set", "alpha", "core")
        result = seeded("deps", "set", "core", "alpha")

        assert "circular dependency" in result.output


class TestWeightCommands:

    def test_set_and_show(self, invoke):
        result = invoke("weights", "set", "--overdue-penalty-per-task", "5")

        assert result.exit_code == 0
        assert "overdue_penalty_per_task = 5" in result.output
        stored = yaml.safe_load((invoke.data_dir / "weights.yaml").read_text())
        assert stored == {"overdue_penalty_per_task": 5.0}

        shown = invoke("weights", "show")
        assert "overdue_penalty_per_task" in shown.output
        assert "5" in shown.output

    def test_set_requires_a_value(self, invoke):
        result = invoke("weights", "set")
        assert result.exit_code == 1

    def test_negative_weights_are_rejected(self, invoke):
        result = invoke("weights", "set", "--overdue-penalty-cap", "-1")
        assert result.exit_code == 1


class TestAnalyticsCommands:

    def test_health_json_and_history(self, seeded):
        result = seeded("analytics", "health", "alpha", "--format", "json")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["score"] == 85
        assert data["status"] == "excellent"

        history = seeded("analytics", "history", "alpha", "--days", "3", "--format", "json")
        assert json.loads(history.output) == [100, 100, 85]

    def test_health_text(self, seeded):
        result = seeded("analytics", "health", "alpha")
        assert result.exit_code == 0
        assert "Health Score: 85/100 (excellent)" in result.output

    def test_risk(self, seeded):
        result = seeded("analytics", "risk", "alpha", "--format", "json")

        assert result.exit_code == 0
        assert json.loads(result.output)["level"] == "low"

    @pytest.mark.parametrize("command", ["velocity", "completion", "accuracy", "burndown"])
    def test_tables(self, seeded, command):
        result = seeded("analytics", command, "alpha")
        assert result.exit_code == 0

    def test_velocity_weeks(self, seeded):
        result = seeded("analytics", "velocity", "alpha", "--weeks", "3", "--format", "json")
        assert len(json.loads(result.output)) == 3

    def test_burndown_range(self, seeded):
        result = seeded("analytics", "burndown", "alpha", "--start", "2024-06-01",
                        "--end", "2024-06-05", "--format", "json")

        points = json.loads(result.output)
        assert [p["date"] for p in points][0] == "2024-06-01"
        assert len(points) == 5
        assert points[0]["ideal"] == 2

    def test_unknown_project(self, invoke):
        result = invoke("analytics", "health", "ghost")

        assert result.exit_code == 1
        assert "Project not found: ghost" in result.output

    def test_dashboard_text(self, seeded):
        result = seeded("analytics", "dashboard", "alpha")

        assert result.exit_code == 0
        assert "Alpha" in result.output
        assert "Recommendations" in result.output

    def test_dashboard_export(self, seeded, tmp_path):
        target = tmp_path / "report.md"

        result = seeded("analytics", "dashboard", "alpha", "--export", str(target))

        assert result.exit_code == 0
        post = frontmatter.loads(target.read_text(encoding="utf-8"))
        assert post.metadata["project_id"] == "alpha"

    def test_dashboard_export_json(self, seeded, tmp_path):
        target = tmp_path / "report.out"

        seeded("analytics", "dashboard", "alpha", "--export", str(target))

        assert json.loads(target.read_text())["project"]["id"] == "alpha"
