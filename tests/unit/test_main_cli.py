"""Unit tests for the start_stop.main CLI module."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from start_stop.exceptions import EligibilityError
from start_stop.main import cli
from start_stop.models.domain import HandlerResult, HttpStatusCode


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def inputs_file(tmp_path):
    path = tmp_path / "event.json"
    path.write_text(
        json.dumps(
            {
                "stateId": "state-1",
                "eventName": "issues.assigned",
                "eventPayload": {},
                "settings": {},
                "authToken": "ghs_token",
                "ref": "main",
                "env": {"SUPABASE_URL": "https://wallets.supabase.co", "SUPABASE_KEY": "key"},
            }
        )
    )
    return path


class TestValidateConfig:
    """Tests for the validate-config command."""

    def test_valid_file(self, cli_runner, tmp_path):
        config = tmp_path / "settings.yaml"
        config.write_text("reviewDelayTolerance: 2 Days\nrolesWithReviewAuthority: [member]\n")

        result = cli_runner.invoke(cli, ["validate-config", str(config)])

        assert result.exit_code == 0
        settings = json.loads(result.output)
        assert settings["reviewDelayTolerance"] == "2 Days"
        assert settings["rolesWithReviewAuthority"] == ["MEMBER"]

    def test_invalid_file(self, cli_runner, tmp_path):
        """Should print each validation error and exit 1."""
        config = tmp_path / "settings.yaml"
        config.write_text("maxConcurrentTasks:\n  member: -2\n")

        result = cli_runner.invoke(cli, ["validate-config", str(config)])

        assert result.exit_code == 1
        assert "Error: Invalid plugin settings" in result.output
        assert "/maxConcurrentTasks" in result.output

    def test_missing_file(self, cli_runner, tmp_path):
        result = cli_runner.invoke(cli, ["validate-config", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 1
        assert "Configuration file not found" in result.output


class TestRun:
    """Tests for the run command."""

    def test_runs_event(self, cli_runner, inputs_file):
        result_value = HandlerResult(HttpStatusCode.OK, "Task assigned successfully")
        with patch("start_stop.main.run_plugin", new=AsyncMock(return_value=result_value)) as run_plugin:
            result = cli_runner.invoke(cli, ["run", str(inputs_file)])

        assert result.exit_code == 0
        assert json.loads(result.output) == {"status": 200, "output": "Task assigned successfully"}
        inputs = run_plugin.await_args.args[0]
        assert inputs.event_name == "issues.assigned"

    def test_handler_error(self, cli_runner, inputs_file):
        with patch("start_stop.main.run_plugin", new=AsyncMock(side_effect=EligibilityError("Issue is closed"))):
            result = cli_runner.invoke(cli, ["run", str(inputs_file)])

        assert result.exit_code == 1
        assert "Error: Issue is closed" in result.output

    def test_invalid_event_file(self, cli_runner, tmp_path):
        path = tmp_path / "event.json"
        path.write_text(json.dumps({"eventPayload": {}}))

        result = cli_runner.invoke(cli, ["run", str(path)])

        assert result.exit_code == 1
        assert "/eventName" in result.output


class TestServe:
    def test_starts_uvicorn(self, cli_runner):
        with patch("uvicorn.run") as run:
            result = cli_runner.invoke(cli, ["--log-level", "DEBUG", "serve", "--port", "9000"])

        assert result.exit_code == 0
        run.assert_called_once_with("start_stop.webhook_server:app", host="0.0.0.0", port=9000, log_level="debug")


def test_help_lists_commands(cli_runner):
    result = cli_runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in ("serve", "validate-config", "run"):
        assert command in result.output
