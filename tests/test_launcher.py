"""Tests for locating, authenticating and starting the agent."""

import io
import os
import subprocess
from unittest.mock import Mock

import pytest

from ngrok_wrapper.common.exceptions import (
    AgentStartupError,
    AuthenticationError,
    BinaryNotFoundError,
)
from ngrok_wrapper.config import AgentConfig, Region
from ngrok_wrapper.core.launcher import (
    AgentLauncher,
    build_start_args,
    find_ngrok_binary,
)


@pytest.fixture
def no_ngrok_on_path(monkeypatch):
    monkeypatch.setattr("shutil.which", lambda name: None)
    monkeypatch.delenv("NGROK", raising=False)


class TestFindNgrokBinary:
    """Test binary resolution order."""

    def test_explicit_path_used_verbatim(self, monkeypatch):
        monkeypatch.setattr("shutil.which", lambda name: "/usr/bin/ngrok")
        assert find_ngrok_binary("/custom/ngrok") == "/custom/ngrok"

    def test_found_on_path(self, monkeypatch):
        monkeypatch.setattr("shutil.which", lambda name: f"/usr/local/bin/{name}")
        monkeypatch.setenv("NGROK", "/from/env/ngrok")
        assert find_ngrok_binary() == "/usr/local/bin/ngrok"

    def test_environment_fallback(self, no_ngrok_on_path, monkeypatch):
        monkeypatch.setenv("NGROK", "/from/env/ngrok")
        assert find_ngrok_binary() == "/from/env/ngrok"

    def test_not_found(self, no_ngrok_on_path):
        with pytest.raises(BinaryNotFoundError, match="ngrok.com/download"):
            find_ngrok_binary()


class TestBuildStartArgs:
    """Test the agent command line."""

    def test_without_region(self):
        args = build_start_args("ngrok", AgentConfig())
        assert args == ["ngrok", "start", "-none", "-log", "stdout"]

    def test_with_region(self):
        args = build_start_args("ngrok", AgentConfig(region=Region.EU))
        assert args == ["ngrok", "start", "-none", "-log", "stdout", "-region", "eu"]


class TestAgentLauncher:
    """Test AgentLauncher.ensure_running"""

    def test_already_running_does_not_spawn(
        self, agent_config, control_client, mock_subprocess
    ):
        launcher = AgentLauncher(agent_config, control_client)

        assert launcher.ensure_running() is False
        mock_subprocess.assert_not_called()
        assert launcher.spawned is False

    def test_spawns_and_waits_for_readiness(
        self, agent_config, control_client, fake_api, mock_subprocess, mock_process
    ):
        fake_api.running = False
        mock_subprocess.return_value = mock_process
        launcher = AgentLauncher(agent_config, control_client)

        assert launcher.ensure_running() is True

        args = mock_subprocess.call_args.args[0]
        assert args == ["/opt/ngrok/ngrok", "start", "-none", "-log", "stdout"]
        assert mock_subprocess.call_args.kwargs["stdout"] == subprocess.PIPE
        assert launcher.spawned is True
        assert launcher.pid == 12345

    def test_binary_resolved_before_health_probe(
        self, control_client, fake_api, no_ngrok_on_path
    ):
        launcher = AgentLauncher(AgentConfig(), control_client)

        with pytest.raises(BinaryNotFoundError):
            launcher.ensure_running()

        assert fake_api.requests == []

    def test_authtoken_runs_before_spawn(
        self, control_client, fake_api, mock_subprocess, mock_process, monkeypatch
    ):
        fake_api.running = False
        mock_run = Mock(return_value=subprocess.CompletedProcess([], 0, b"", b""))
        monkeypatch.setattr("subprocess.run", mock_run)
        mock_subprocess.return_value = mock_process
        config = AgentConfig(binary_path="ngrok", auth_token="secret-token")

        AgentLauncher(config, control_client).ensure_running()

        assert mock_run.call_args.args[0] == ["ngrok", "authtoken", "secret-token"]
        mock_subprocess.assert_called_once()

    def test_authtoken_failure(
        self, control_client, fake_api, mock_subprocess, monkeypatch
    ):
        fake_api.running = False
        monkeypatch.setattr(
            "subprocess.run",
            Mock(return_value=subprocess.CompletedProcess([], 1, b"", b"invalid")),
        )
        config = AgentConfig(binary_path="ngrok", auth_token="bad-token")

        with pytest.raises(AuthenticationError) as exc_info:
            AgentLauncher(config, control_client).ensure_running()

        assert exc_info.value.returncode == 1
        mock_subprocess.assert_not_called()

    def test_authtoken_skipped_when_agent_running(
        self, control_client, mock_subprocess, monkeypatch
    ):
        mock_run = Mock()
        monkeypatch.setattr("subprocess.run", mock_run)
        config = AgentConfig(binary_path="ngrok", auth_token="secret-token")

        AgentLauncher(config, control_client).ensure_running()

        mock_run.assert_not_called()

    def test_output_closed_before_ready(
        self, agent_config, control_client, fake_api, mock_subprocess, mock_process
    ):
        fake_api.running = False
        mock_process.stdout = io.BytesIO(b'lvl=crit msg="command failed" err="bad"\n')
        mock_process.poll.return_value = None
        mock_subprocess.return_value = mock_process
        launcher = AgentLauncher(agent_config, control_client)

        with pytest.raises(AgentStartupError):
            launcher.ensure_running()

        mock_process.terminate.assert_called_once()
        assert launcher.spawned is False

    def test_spawn_failure(
        self, agent_config, control_client, fake_api, mock_subprocess
    ):
        fake_api.running = False
        mock_subprocess.side_effect = OSError("Exec format error")

        with pytest.raises(AgentStartupError, match="Exec format error"):
            AgentLauncher(agent_config, control_client).ensure_running()

    def test_stop_agent(
        self, agent_config, control_client, fake_api, mock_subprocess, mock_process
    ):
        fake_api.running = False
        mock_subprocess.return_value = mock_process
        launcher = AgentLauncher(agent_config, control_client)
        launcher.ensure_running()

        launcher.stop_agent()

        mock_process.terminate.assert_called_once()
        assert launcher.spawned is False

    def test_stop_agent_kills_unresponsive_process(
        self, agent_config, control_client, fake_api, mock_subprocess, mock_process
    ):
        fake_api.running = False
        mock_process.wait.side_effect = [subprocess.TimeoutExpired("ngrok", 5), 0]
        mock_subprocess.return_value = mock_process
        launcher = AgentLauncher(agent_config, control_client)
        launcher.ensure_running()

        launcher.stop_agent()

        mock_process.kill.assert_called_once()

    def test_interrupt_during_readiness_stops_agent(
        self,
        agent_config,
        control_client,
        fake_api,
        mock_subprocess,
        mock_process,
        monkeypatch,
    ):
        fake_api.running = False
        mock_subprocess.return_value = mock_process
        monkeypatch.setattr(
            "ngrok_wrapper.core.launcher.wait_for_marker",
            Mock(side_effect=KeyboardInterrupt),
        )
        launcher = AgentLauncher(agent_config, control_client)

        with pytest.raises(KeyboardInterrupt):
            launcher.ensure_running()

        mock_process.terminate.assert_called_once()
        assert mock_process.stdout.closed
        assert launcher.spawned is False

    def test_readiness_timeout_terminates_before_closing_output(
        self, control_client, fake_api, mock_subprocess, mock_process
    ):
        fake_api.running = False
        read_fd, write_fd = os.pipe()
        mock_process.stdout = os.fdopen(read_fd, "rb", buffering=0)
        exited: list[bool] = []

        def exit_agent():
            if not exited:
                os.close(write_fd)
                exited.append(True)

        mock_process.terminate.side_effect = exit_agent
        mock_subprocess.return_value = mock_process
        config = AgentConfig(binary_path="/opt/ngrok/ngrok", startup_timeout=0.2)

        with pytest.raises(AgentStartupError, match="did not become ready"):
            AgentLauncher(config, control_client).ensure_running()

        assert exited == [True]
        assert mock_process.stdout.closed
