"""Unit tests for the cmiscopy CLI commands."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from cmiscopy.cli import main
from cmiscopy.exceptions import CmisAuthenticationError, CmisNotFoundError
from cmiscopy.sync import SyncResult, SyncStatus
from cmiscopy.task import CopyReport


@pytest.fixture
def runner():
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def mock_config(temp_dir):
    """Mock the config module with a configured repository."""
    with patch("cmiscopy.cli.config") as mock:
        mock.url = "https://cms.example.com/cmisbrowser/root"
        mock.username = "admin"
        mock.password = "secret"
        mock.cmis_root = "/sites/docs"
        mock.local_root = str(temp_dir)
        mock.registry_path = temp_dir / "versions.json"
        yield mock


def make_report(*statuses):
    report = CopyReport("download")
    report.results = [
        SyncResult(status, Path(f"f{i}.txt"), f"n{i}") for i, status in enumerate(statuses)
    ]
    return report


class TestMainGroup:
    """Tests for the main CLI group."""

    def test_main_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "cmiscopy" in result.output
        assert "copy" in result.output
        assert "init" in result.output


class TestCopyCommand:
    """Tests for the copy command."""

    def test_invalid_action(self, runner, mock_config):
        """Test that an unknown action is rejected before connecting."""
        with patch("cmiscopy.cli._run_copy") as mock_run:
            result = runner.invoke(main, ["copy", "pages", "foo"])

        assert result.exit_code == 1
        assert "Invalid action: foo" in result.output
        mock_run.assert_not_called()

    def test_not_configured(self, runner, mock_config):
        mock_config.url = None
        result = runner.invoke(main, ["copy"])

        assert result.exit_code == 1
        assert "not configured" in result.output

    def test_missing_password_is_prompted(self, runner, mock_config):
        mock_config.password = None
        report = make_report()
        with patch("cmiscopy.cli._run_copy", new=AsyncMock(return_value=report)) as run:
            result = runner.invoke(main, ["copy"], input="typed-secret\n")

        assert result.exit_code == 0
        assert run.await_args.args[2] == "typed-secret"

    def test_copy_success(self, runner, mock_config):
        report = make_report(SyncStatus.DOWNLOADED, SyncStatus.UNCHANGED)
        with patch("cmiscopy.cli._run_copy", new=AsyncMock(return_value=report)) as run:
            result = runner.invoke(main, ["copy", "pages/", "d"])

        assert result.exit_code == 0
        url, username, password, registry, options, out = run.await_args.args
        assert url == "https://cms.example.com/cmisbrowser/root"
        assert (username, password) == ("admin", "secret")
        assert options["specific_path"] == "pages/"
        assert options["action"] == "d"
        assert options["cmis_root"] == "/sites/docs"

    def test_command_line_overrides_config(self, runner, mock_config, temp_dir):
        report = make_report()
        with patch("cmiscopy.cli._run_copy", new=AsyncMock(return_value=report)) as run:
            result = runner.invoke(
                main,
                [
                    "copy",
                    "--url",
                    "https://other/root",
                    "--cmis-root",
                    "/other",
                    "--workers",
                    "4",
                    "--registry",
                    str(temp_dir / "custom.json"),
                ],
            )

        assert result.exit_code == 0
        url, _, _, registry, options, _ = run.await_args.args
        assert url == "https://other/root"
        assert options["cmis_root"] == "/other"
        assert options["workers"] == 4
        assert registry.path == temp_dir / "custom.json"

    def test_copy_with_failures_exits_nonzero(self, runner, mock_config):
        report = make_report(SyncStatus.DOWNLOADED, SyncStatus.FAILED)
        with patch("cmiscopy.cli._run_copy", new=AsyncMock(return_value=report)):
            result = runner.invoke(main, ["copy"])

        assert result.exit_code == 1

    def test_copy_skips_do_not_fail(self, runner, mock_config):
        report = make_report(SyncStatus.SKIPPED_OUT_OF_SYNC)
        with patch("cmiscopy.cli._run_copy", new=AsyncMock(return_value=report)):
            result = runner.invoke(main, ["copy", "", "u"])

        assert result.exit_code == 0

    def test_copy_repository_error(self, runner, mock_config):
        error = CmisNotFoundError("Object not found", status_code=404)
        with patch("cmiscopy.cli._run_copy", new=AsyncMock(side_effect=error)):
            result = runner.invoke(main, ["copy"])

        assert result.exit_code == 1
        assert "Object not found" in result.output

    def test_json_output(self, runner, mock_config):
        report = make_report(SyncStatus.DOWNLOADED)
        with patch("cmiscopy.cli._run_copy", new=AsyncMock(return_value=report)):
            result = runner.invoke(main, ["--json", "copy"])

        assert result.exit_code == 0
        assert '"downloaded"' in result.output


class TestInitCommand:
    """Tests for the init command."""

    def _mock_client_class(self, side_effect=None):
        client = MagicMock()
        client.__aenter__.return_value = client
        client.__aexit__.return_value = False
        client.get_object_by_path = AsyncMock(return_value={}, side_effect=side_effect)
        return MagicMock(return_value=client)

    def test_init_saves_settings(self, runner, mock_config):
        mock_config.save.return_value = Path("/home/u/.config/cmiscopy/config")
        with patch("cmiscopy.cli.CmisClient", self._mock_client_class()):
            result = runner.invoke(
                main,
                ["init", "--url", "https://cms/root", "-u", "admin", "-p", "secret"],
            )

        assert result.exit_code == 0
        mock_config.save.assert_called_once_with(
            url="https://cms/root",
            username="admin",
            password="secret",
            cmis_root=None,
            local_root=None,
        )

    def test_init_invalid_credentials(self, runner, mock_config):
        error = CmisAuthenticationError("Invalid credentials", status_code=401)
        with patch("cmiscopy.cli.CmisClient", self._mock_client_class(error)):
            result = runner.invoke(
                main,
                ["init", "--url", "https://cms/root", "-u", "admin", "-p", "wrong"],
            )

        assert result.exit_code == 1
        assert "Invalid credentials" in result.output
        mock_config.save.assert_not_called()
