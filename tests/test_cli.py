"""Tests for CLI commands."""

import json
import logging
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from procpulse.cli import main
from procpulse.config import Config, ExportConfig
from procpulse.controller import Controller
from procpulse.executor import TerminateOutcome
from procpulse.export import HEADER, ExportService
from procpulse.sampler import Sampler
from tests.conftest import FakeProbe, make_record

pytestmark = pytest.mark.usefixtures("log_home")


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


def _busy_controller(path: Path) -> Controller:
    procs = [
        make_record(pid=10, name="idle", cpu=4.0, mem=1_000_000),
        make_record(pid=20, name="busy", cpu=200.0, mem=250_000_000),
    ]
    return Controller(Sampler(FakeProbe([(55.0, 8_000_000_000, procs)])), ExportService(path))


class TestTopCommand:
    """Tests for the top command."""

    def test_top_table(self, runner: CliRunner, tmp_path: Path) -> None:
        """Table output lists the busiest process first."""
        with (
            patch("procpulse.config.Config.load", return_value=Config()),
            patch(
                "procpulse.monitor.build_controller",
                return_value=_busy_controller(tmp_path / "x.csv"),
            ),
        ):
            result = runner.invoke(main, ["top", "-i", "0.1"])

        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert "CPU: 55.00%" in lines[0]
        assert "2 processes, 4 cores" in lines[0]
        assert "Process" in lines[1]
        assert "busy" in lines[3]
        assert "50.00" in lines[3]
        assert "idle" in lines[4]

    def test_top_json_limit(self, runner: CliRunner, tmp_path: Path) -> None:
        """JSON output honours --limit and reports normalized CPU."""
        with (
            patch("procpulse.config.Config.load", return_value=Config()),
            patch(
                "procpulse.monitor.build_controller",
                return_value=_busy_controller(tmp_path / "x.csv"),
            ),
        ):
            result = runner.invoke(main, ["top", "-i", "0.1", "-f", "json", "-n", "1"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data == [{"pid": 20, "name": "busy", "cpu_percent": 50.0, "memory_mb": 250.0}]

    def test_top_csv(self, runner: CliRunner, tmp_path: Path) -> None:
        """CSV output matches the export format."""
        with (
            patch("procpulse.config.Config.load", return_value=Config()),
            patch(
                "procpulse.monitor.build_controller",
                return_value=_busy_controller(tmp_path / "x.csv"),
            ),
        ):
            result = runner.invoke(main, ["top", "-i", "0.1", "-f", "csv"])

        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == [HEADER, "busy,50.00,250.00", "idle,1.00,1.00"]

    def test_top_stdout_has_no_log_events(self, runner: CliRunner, tmp_path: Path) -> None:
        """Structured events go to the log file, never into command output."""
        with (
            patch("procpulse.config.Config.load", return_value=Config()),
            patch(
                "procpulse.monitor.build_controller",
                return_value=_busy_controller(tmp_path / "x.csv"),
            ),
        ):
            result = runner.invoke(main, ["top", "-i", "0.1", "-f", "json"])

        assert result.exit_code == 0, result.output
        assert "sample_collected" not in result.output
        assert json.loads(result.output)[0]["name"] == "busy"


class TestExportCommand:
    """Tests for the export command."""

    def test_export_writes_file(self, runner: CliRunner, tmp_path: Path) -> None:
        """Export samples and writes to the configured path."""
        path = tmp_path / "procs.csv"
        with (
            patch("procpulse.config.Config.load", return_value=Config()),
            patch("procpulse.monitor.build_controller", return_value=_busy_controller(path)),
        ):
            result = runner.invoke(main, ["export", "-i", "0.1"])

        assert result.exit_code == 0, result.output
        assert f"Exported 2 processes to {path}" in result.output
        assert path.read_text().splitlines()[1] == "busy,50.00,250.00"

    def test_export_event_logged_to_file(self, runner: CliRunner, tmp_path: Path) -> None:
        """The export_written event lands in the log file, not on stdout."""
        path = tmp_path / "procs.csv"
        config = Config()
        with (
            patch("procpulse.config.Config.load", return_value=config),
            patch("procpulse.monitor.build_controller", return_value=_busy_controller(path)),
        ):
            result = runner.invoke(main, ["export", "-i", "0.1"])

        assert result.exit_code == 0, result.output
        assert "export_written" not in result.output
        for handler in logging.getLogger().handlers:
            handler.flush()
        events = [json.loads(line)["event"] for line in config.log_path.read_text().splitlines()]
        assert "export_written" in events

    def test_export_path_override(self, runner: CliRunner, tmp_path: Path) -> None:
        """--path overrides the configured target."""
        override = tmp_path / "other.csv"
        with (
            patch("procpulse.config.Config.load", return_value=Config()),
            patch(
                "procpulse.monitor.build_controller",
                return_value=_busy_controller(tmp_path / "default.csv"),
            ),
        ):
            result = runner.invoke(main, ["export", "-i", "0.1", "--path", str(override)])

        assert result.exit_code == 0, result.output
        assert override.exists()
        assert not (tmp_path / "default.csv").exists()

    def test_export_failure_exits_nonzero(self, runner: CliRunner, tmp_path: Path) -> None:
        """An unwritable target exits 1 with an error."""
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        with (
            patch("procpulse.config.Config.load", return_value=Config()),
            patch(
                "procpulse.monitor.build_controller",
                return_value=_busy_controller(blocker / "out.csv"),
            ),
        ):
            result = runner.invoke(main, ["export", "-i", "0.1"])

        assert result.exit_code == 1
        assert "Error:" in result.output


class TestKillCommand:
    """Tests for the kill command."""

    def test_kill_signalled(self, runner: CliRunner) -> None:
        """A successful SIGTERM is reported."""
        with patch(
            "procpulse.executor.CommandExecutor.terminate",
            return_value=TerminateOutcome.SIGNALLED,
        ) as mock_terminate:
            result = runner.invoke(main, ["kill", "1234"])

        assert result.exit_code == 0
        assert "Sent SIGTERM to PID 1234" in result.output
        mock_terminate.assert_called_once_with(1234, force=False)

    def test_kill_force(self, runner: CliRunner) -> None:
        """--force sends SIGKILL."""
        with patch(
            "procpulse.executor.CommandExecutor.terminate",
            return_value=TerminateOutcome.SIGNALLED,
        ) as mock_terminate:
            result = runner.invoke(main, ["kill", "1234", "--force"])

        assert "Sent SIGKILL to PID 1234" in result.output
        mock_terminate.assert_called_once_with(1234, force=True)

    def test_kill_not_found_is_success(self, runner: CliRunner) -> None:
        """A vanished pid is not an error."""
        with patch(
            "procpulse.executor.CommandExecutor.terminate",
            return_value=TerminateOutcome.NOT_FOUND,
        ):
            result = runner.invoke(main, ["kill", "999999"])

        assert result.exit_code == 0
        assert "not running" in result.output

    def test_kill_denied_exits_nonzero(self, runner: CliRunner) -> None:
        """Permission denied exits 1."""
        with patch(
            "procpulse.executor.CommandExecutor.terminate",
            return_value=TerminateOutcome.DENIED,
        ):
            result = runner.invoke(main, ["kill", "1"])

        assert result.exit_code == 1
        assert "permission denied" in result.output


class TestRunCommands:
    """Tests for the long-running commands."""

    def test_tui_launches_app(self, runner: CliRunner) -> None:
        """tui hands the loaded config to run_tui."""
        config = Config()
        with (
            patch("procpulse.config.Config.load", return_value=config),
            patch("procpulse.tui.run_tui") as mock_run,
        ):
            result = runner.invoke(main, ["tui"])

        assert result.exit_code == 0, result.output
        mock_run.assert_called_once_with(config)

    def test_watch_passes_options(self, runner: CliRunner) -> None:
        """watch forwards --export-every and --ticks to the monitor."""
        config = Config()
        with (
            patch("procpulse.config.Config.load", return_value=config),
            patch("procpulse.monitor.run_monitor", new_callable=AsyncMock) as mock_run,
        ):
            result = runner.invoke(main, ["watch", "--export-every", "5", "--ticks", "10"])

        assert result.exit_code == 0, result.output
        mock_run.assert_awaited_once_with(config, export_every=5, max_ticks=10)

    def test_invalid_config_exits_cleanly(self, runner: CliRunner) -> None:
        """A bad config file exits 1 without a traceback."""
        with patch("procpulse.config.Config.load", side_effect=ValueError("Invalid theme")):
            result = runner.invoke(main, ["watch"])

        assert result.exit_code == 1
        assert "Error: Invalid theme" in result.output


class TestConfigCommands:
    """Tests for config subcommands."""

    def test_config_show(self, runner: CliRunner) -> None:
        """show prints every section."""
        config = Config(export=ExportConfig(path="/tmp/procs.csv"))
        with patch("procpulse.config.Config.load", return_value=config):
            result = runner.invoke(main, ["config", "show"])

        assert result.exit_code == 0
        assert "[sampling]" in result.output
        assert "interval = 1.0" in result.output
        assert "path = /tmp/procs.csv" in result.output
        assert "theme = dark" in result.output

    def test_config_path(self, runner: CliRunner) -> None:
        """path prints the config file location."""
        result = runner.invoke(main, ["config", "path"])
        assert result.exit_code == 0
        assert result.output.strip() == str(Config().config_path)

    def test_config_reset(self, runner: CliRunner) -> None:
        """reset saves defaults after confirmation."""
        with patch("procpulse.config.Config.save") as mock_save:
            result = runner.invoke(main, ["config", "reset", "--yes"])

        assert result.exit_code == 0
        mock_save.assert_called_once_with()
        assert "Config reset to defaults" in result.output

    def test_config_reset_aborted(self, runner: CliRunner) -> None:
        """Declining the prompt leaves the file alone."""
        with patch("procpulse.config.Config.save") as mock_save:
            result = runner.invoke(main, ["config", "reset"], input="n\n")

        assert result.exit_code != 0
        mock_save.assert_not_called()
