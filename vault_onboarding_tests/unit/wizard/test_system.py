"""Tests for the docker compose and gh wrappers."""

import subprocess
from unittest.mock import patch

import pytest

from vault_onboarding.wizard.exceptions import ExternalCommandError
from vault_onboarding.wizard.system import DockerCompose, GitHubCli, run_command


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestRunCommand:
    """Test the subprocess wrapper."""

    @patch("vault_onboarding.wizard.system.subprocess.run")
    def test_failure_raises(self, mock_run):
        """Test a non-zero exit raises ExternalCommandError."""
        mock_run.return_value = completed(1, stderr="boom\n")

        with pytest.raises(ExternalCommandError) as exc_info:
            run_command(["docker", "compose", "up"])

        assert exc_info.value.returncode == 1
        assert "boom" in str(exc_info.value)

    @patch("vault_onboarding.wizard.system.subprocess.run")
    def test_unchecked_failure_returns(self, mock_run):
        """Test check=False returns the failed result."""
        mock_run.return_value = completed(3)
        assert run_command(["gh", "auth", "status"], check=False).returncode == 3

    @patch("vault_onboarding.wizard.system.subprocess.run", side_effect=FileNotFoundError("docker"))
    def test_missing_executable(self, mock_run):
        """Test a missing executable raises ExternalCommandError."""
        with pytest.raises(ExternalCommandError) as exc_info:
            run_command(["docker"])
        assert exc_info.value.returncode == 127


class TestDockerCompose:
    """Test the Docker Compose wrapper."""

    @patch("vault_onboarding.wizard.system.subprocess.run")
    def test_is_running(self, mock_run):
        """Test a running service is detected."""
        mock_run.return_value = completed(stdout="postgres\nvault-dev\n")
        compose = DockerCompose("docker-compose.yml")

        assert compose.is_running("vault-dev") is True
        assert compose.is_running("redis") is False
        assert mock_run.call_args[0][0][:4] == ["docker", "compose", "-f", "docker-compose.yml"]

    @patch("vault_onboarding.wizard.system.subprocess.run")
    def test_up(self, mock_run):
        """Test the service is started detached."""
        mock_run.return_value = completed()
        DockerCompose().up("vault-dev")
        mock_run.assert_called_once_with(
            ["docker", "compose", "up", "-d", "vault-dev"], capture_output=True, text=True
        )

    @patch("vault_onboarding.wizard.system.command_exists", return_value=False)
    def test_unavailable_without_docker(self, mock_exists):
        """Test compose is unavailable without docker."""
        assert DockerCompose().is_available() is False


class TestGitHubCli:
    """Test the GitHub CLI wrapper."""

    @patch("vault_onboarding.wizard.system.command_exists", return_value=True)
    @patch("vault_onboarding.wizard.system.subprocess.run")
    def test_auth_token(self, mock_run, mock_exists):
        """Test the token is read from gh."""
        mock_run.return_value = completed(stdout="gho_abc\n")
        assert GitHubCli().auth_token() == "gho_abc"

    @patch("vault_onboarding.wizard.system.command_exists", return_value=True)
    @patch("vault_onboarding.wizard.system.subprocess.run")
    def test_auth_token_not_logged_in(self, mock_run, mock_exists):
        """Test no token is returned when gh is not logged in."""
        mock_run.return_value = completed(1)
        assert GitHubCli().auth_token() is None
