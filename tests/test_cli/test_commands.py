"""Tests for CLI commands."""

import json

import pytest
from unittest.mock import patch
from typer.testing import CliRunner

from ems_trainer.cli.commands import app
from ems_trainer.models import ActionRecord, PerformanceTrace, RedFlagIdentification
from ems_trainer.observability import TelemetryLogger
from ems_trainer.templates import builtin_store


runner = CliRunner()


@pytest.fixture(autouse=True)
def builtin_templates():
    """Run every command against the built-in library."""
    with patch("ems_trainer.cli.commands.get_template_store", side_effect=builtin_store):
        yield


class TestVersionCommand:
    """Tests for version command."""

    def test_version_command(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "EMS Trainer" in result.stdout
        assert "0.1.0" in result.stdout


class TestScenarioCommands:
    """Tests for scenarios / show."""

    def test_scenarios_lists_library(self):
        result = runner.invoke(app, ["scenarios"])

        assert result.exit_code == 0
        assert "chest_pain_01" in result.stdout
        assert "trauma_01" in result.stdout

    def test_show_scenario(self):
        result = runner.invoke(app, ["show", "respiratory_distress_01"])

        assert result.exit_code == 0
        assert "Red Flags" in result.stdout
        assert "rf_hypoxia" in result.stdout

    def test_show_unknown_scenario(self):
        result = runner.invoke(app, ["show", "nope"])

        assert result.exit_code == 1
        assert "No template found" in result.stdout


class TestWalkthroughCommand:
    """Tests for walkthrough command."""

    def test_walkthrough_scores_scenario(self):
        result = runner.invoke(app, [
            "walkthrough", "chest_pain_01",
            "--ask", "Where does it hurt?",
            "--flag", "rf_crushing_pain",
            "--intervention", "12-lead ECG",
            "--intervention", "Aspirin",
            "--no-telemetry",
        ])

        assert result.exit_code == 0
        assert "middle of my chest" in result.stdout
        assert "Performance" in result.stdout
        assert "Hospital notification" in result.stdout

    def test_walkthrough_json_output(self):
        result = runner.invoke(app, [
            "walkthrough", "trauma_01",
            "-i", "Bleeding control",
            "--no-telemetry",
            "--json",
        ])

        assert result.exit_code == 0
        assert "overall_score" in result.stdout

    def test_walkthrough_unknown_scenario(self):
        result = runner.invoke(app, ["walkthrough", "nope", "--no-telemetry"])

        assert result.exit_code == 1
        assert "No template found" in result.stdout


class TestEvaluateCommand:
    """Tests for evaluate command."""

    def test_evaluate_trace_file(self, tmp_path):
        trace = PerformanceTrace(
            scenario_type="respiratory_distress",
            actions=[ActionRecord(action="Oxygen therapy", timestamp=60)],
            identified_red_flags=[
                RedFlagIdentification(
                    flag="SpO2 < 90%", time_to_identification=30, associated_actions=["Oxygen therapy"]
                )
            ],
        )
        trace_file = tmp_path / "trace.json"
        trace_file.write_text(trace.model_dump_json())

        result = runner.invoke(app, ["evaluate", str(trace_file)])

        assert result.exit_code == 0
        assert "Critical Actions" in result.stdout
        assert "Oxygen therapy" in result.stdout

    def test_evaluate_missing_file(self):
        result = runner.invoke(app, ["evaluate", "/nonexistent/trace.json"])

        assert result.exit_code == 1
        assert "not found" in result.stdout.lower()

    def test_evaluate_invalid_file(self, tmp_path):
        trace_file = tmp_path / "trace.json"
        trace_file.write_text(json.dumps({"actions": "nope"}))

        result = runner.invoke(app, ["evaluate", str(trace_file)])

        assert result.exit_code == 1
        assert "Invalid trace file" in result.stdout

    def test_evaluate_unknown_scenario_type(self, tmp_path):
        trace_file = tmp_path / "trace.json"
        trace_file.write_text(PerformanceTrace(scenario_type="stroke").model_dump_json())

        result = runner.invoke(app, ["evaluate", str(trace_file)])

        assert result.exit_code == 1


class TestStatsCommand:
    """Tests for stats command."""

    def test_stats_after_walkthrough(self, tmp_path, settings):
        telemetry = TelemetryLogger(log_dir=tmp_path / "telemetry")
        enabled = settings.model_copy(update={"telemetry_enabled": True})

        with patch("ems_trainer.cli.commands.get_telemetry", return_value=telemetry), \
                patch("ems_trainer.cli.commands.get_settings", return_value=enabled):
            walk = runner.invoke(app, ["walkthrough", "chest_pain_01", "-i", "Aspirin"])
            result = runner.invoke(app, ["stats"])

        assert walk.exit_code == 0
        assert result.exit_code == 0
        assert "Completed: 1" in result.stdout

    def test_stats_without_activity(self, tmp_path, settings):
        enabled = settings.model_copy(update={"telemetry_enabled": True})
        with patch(
            "ems_trainer.cli.commands.get_telemetry",
            return_value=TelemetryLogger(log_dir=tmp_path / "empty"),
        ), patch("ems_trainer.cli.commands.get_settings", return_value=enabled):
            result = runner.invoke(app, ["stats"])

        assert result.exit_code == 0
        assert "No activity recorded" in result.stdout
