"""Unit tests for the docker compose deployment driver."""

from __future__ import annotations

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from strata_installer.provision import ComposeDriver, ServiceStatus


def _completed(returncode=0, stdout="", stderr=""):
    result = MagicMock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


class TestServiceStatus:
    """Tests for ServiceStatus."""

    def test_parse_known_states(self):
        """Test parsing compose state strings."""
        assert ServiceStatus.parse("running") is ServiceStatus.RUNNING
        assert ServiceStatus.parse("Exited") is ServiceStatus.EXITED
        assert ServiceStatus.parse(" dead ") is ServiceStatus.DEAD
        assert ServiceStatus.parse("Restarting") is ServiceStatus.RESTARTING

    def test_parse_unknown_states(self):
        """Test that anything else is UNKNOWN."""
        assert ServiceStatus.parse("created") is ServiceStatus.UNKNOWN
        assert ServiceStatus.parse("paused") is ServiceStatus.UNKNOWN
        assert ServiceStatus.parse(None) is ServiceStatus.UNKNOWN

    def test_crashed(self):
        """Test which states count as crashed."""
        assert ServiceStatus.EXITED.crashed is True
        assert ServiceStatus.DEAD.crashed is True
        assert ServiceStatus.RESTARTING.crashed is True
        assert ServiceStatus.RUNNING.crashed is False
        assert ServiceStatus.UNKNOWN.crashed is False


class TestComposeDriver:
    """Tests for ComposeDriver."""

    def test_probe_uses_quiet_pull(self, tmp_path):
        """Test that the registry probe is a quiet pull."""
        driver = ComposeDriver(tmp_path)

        with patch("subprocess.run", return_value=_completed(0)) as mock_run:
            assert driver.probe("ghcr.io/stratasite/strata:latest") is True

        assert mock_run.call_args[0][0] == [
            "docker",
            "pull",
            "--quiet",
            "ghcr.io/stratasite/strata:latest",
        ]

    def test_probe_failure(self, tmp_path):
        """Test that a denied pull fails the probe."""
        with patch("subprocess.run", return_value=_completed(1, stderr="denied")):
            assert ComposeDriver(tmp_path).probe("img:latest") is False

    def test_login_passes_token_on_stdin(self, tmp_path):
        """Test that the token never appears in the argument list."""
        with patch("subprocess.run", return_value=_completed(0)) as mock_run:
            ok, _ = ComposeDriver(tmp_path).login("ghcr.io", "strata-customer", "tok")

        assert ok is True
        args = mock_run.call_args[0][0]
        assert "tok" not in args
        assert args == ["docker", "login", "ghcr.io", "-u", "strata-customer", "--password-stdin"]
        assert mock_run.call_args.kwargs["input"] == "tok"

    def test_login_failure_message(self, tmp_path):
        """Test that the registry response is returned on failure."""
        with patch("subprocess.run", return_value=_completed(1, stderr="unauthorized\n")):
            ok, msg = ComposeDriver(tmp_path).login("ghcr.io", "u", "bad")

        assert ok is False
        assert msg == "unauthorized"

    def test_pull_failure(self, tmp_path):
        """Test pull failure message."""
        with patch("subprocess.run", return_value=_completed(1, stderr="manifest unknown")):
            ok, msg = ComposeDriver(tmp_path).pull("img:9.9")

        assert ok is False
        assert "manifest unknown" in msg

    def test_docker_not_installed(self, tmp_path):
        """Test that a missing docker binary is reported, not raised."""
        with patch("subprocess.run", side_effect=FileNotFoundError):
            ok, msg = ComposeDriver(tmp_path).pull("img:latest")

        assert ok is False
        assert "Docker not found" in msg

    def test_start_without_compose_file(self, tmp_path):
        """Test that start fails without a compose file."""
        ok, msg = ComposeDriver(tmp_path).start()

        assert ok is False
        assert "docker-compose.yml" in msg

    def test_start_runs_up_detached(self, tmp_path):
        """Test that start runs docker compose up -d."""
        (tmp_path / "docker-compose.yml").write_text("services: {}\n")

        with patch("subprocess.run", return_value=_completed(0)) as mock_run:
            ok, _ = ComposeDriver(tmp_path).start()

        assert ok is True
        args = mock_run.call_args[0][0]
        assert args[:2] == ["docker", "compose"]
        assert args[-2:] == ["up", "-d"]

    def test_status_line_delimited_json(self, tmp_path):
        """Test status parsing of one object per line."""
        stdout = "\n".join(
            [
                json.dumps({"Service": "jobs", "State": "running"}),
                json.dumps({"Service": "strata", "State": "exited"}),
            ]
        )

        with patch("subprocess.run", return_value=_completed(0, stdout=stdout)):
            assert ComposeDriver(tmp_path).status("strata") is ServiceStatus.EXITED

    def test_status_json_array(self, tmp_path):
        """Test status parsing of a single JSON array."""
        stdout = json.dumps([{"Service": "strata", "State": "running"}])

        with patch("subprocess.run", return_value=_completed(0, stdout=stdout)):
            assert ComposeDriver(tmp_path).status("strata") is ServiceStatus.RUNNING

    def test_status_missing_service(self, tmp_path):
        """Test that a service not yet created is UNKNOWN."""
        with patch("subprocess.run", return_value=_completed(0, stdout="")):
            assert ComposeDriver(tmp_path).status("strata") is ServiceStatus.UNKNOWN

    def test_status_command_failure(self, tmp_path):
        """Test that a failing ps is UNKNOWN."""
        with patch("subprocess.run", return_value=_completed(1)):
            assert ComposeDriver(tmp_path).status("strata") is ServiceStatus.UNKNOWN

    def test_recent_logs(self, tmp_path):
        """Test tailing a service's logs."""
        with patch("subprocess.run", return_value=_completed(0, stdout="a\nb\n")) as mock_run:
            lines = ComposeDriver(tmp_path).recent_logs("strata", 20)

        assert lines == ["a", "b"]
        args = mock_run.call_args[0][0]
        assert args[-4:] == ["--no-color", "--tail", "20", "strata"]

    def test_recent_logs_all_services(self, tmp_path):
        """Test that no service argument is passed when None."""
        with patch("subprocess.run", return_value=_completed(0, stdout="")) as mock_run:
            ComposeDriver(tmp_path).recent_logs(None, 10)

        assert mock_run.call_args[0][0][-1] == "10"

    def test_running_services(self, tmp_path):
        """Test splitting services by state."""
        stdout = json.dumps(
            [
                {"Service": "strata", "State": "running"},
                {"Service": "jobs", "State": "exited"},
            ]
        )

        with patch("subprocess.run", return_value=_completed(0, stdout=stdout)):
            running, stopped = ComposeDriver(tmp_path).running_services()

        assert running == ["strata"]
        assert stopped == ["jobs"]

    def test_down_with_volumes(self, tmp_path):
        """Test that --volumes adds -v."""
        (tmp_path / "docker-compose.yml").write_text("services: {}\n")

        with patch("subprocess.run", return_value=_completed(0)) as mock_run:
            ok, _ = ComposeDriver(tmp_path).down(remove_volumes=True)

        assert ok is True
        assert mock_run.call_args[0][0][-2:] == ["down", "-v"]

    def test_restart_stops_then_starts(self, tmp_path):
        """Test restart runs down then up."""
        (tmp_path / "docker-compose.yml").write_text("services: {}\n")

        with patch("subprocess.run", return_value=_completed(0)) as mock_run:
            ok, _ = ComposeDriver(tmp_path).restart()

        assert ok is True
        commands = [c[0][0] for c in mock_run.call_args_list]
        assert commands[0][-1] == "down"
        assert commands[1][-2:] == ["up", "-d"]

    def test_follow_logs_returns_exit_code(self, tmp_path):
        """Test that follow_logs hands back the docker exit code."""
        with patch("subprocess.run", return_value=_completed(130)) as mock_run:
            assert ComposeDriver(tmp_path).follow_logs(service="jobs", tail=50) == 130

        args = mock_run.call_args[0][0]
        assert args[-4:] == ["-f", "--tail", "50", "jobs"]

    def test_unexpected_subprocess_errors_propagate(self, tmp_path):
        """Test that unexpected subprocess errors propagate."""
        with patch("subprocess.run", side_effect=subprocess.SubprocessError("boom")):
            with pytest.raises(subprocess.SubprocessError):
                ComposeDriver(tmp_path).probe("img:latest")
