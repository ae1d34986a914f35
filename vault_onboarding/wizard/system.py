"""Thin wrappers around the external tools the wizard drives.

Docker Compose and the GitHub CLI are invoked as subprocesses; nothing here
re-implements their behaviour.
"""

import logging
import shutil
import subprocess
from typing import Optional

from vault_onboarding.wizard.exceptions import ExternalCommandError

logger = logging.getLogger(__name__)


def command_exists(name: str) -> bool:
    """Return True if ``name`` resolves to an executable on PATH."""
    return shutil.which(name) is not None


def run_command(command: list[str], check: bool = True) -> subprocess.CompletedProcess:
    """Run ``command`` capturing text output.

    Raises:
        ExternalCommandError: If ``check`` and the command exits non-zero, or
            the executable does not exist
    """
    logger.debug("Running: %s", " ".join(command))
    try:
        result = subprocess.run(command, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise ExternalCommandError(command, 127, str(e)) from e
    if check and result.returncode != 0:
        raise ExternalCommandError(command, result.returncode, result.stderr)
    return result


class DockerCompose:
    """``docker compose`` scoped to one compose file."""

    def __init__(self, compose_file: Optional[str] = None):
        self.compose_file = compose_file

    def _base(self) -> list[str]:
        command = ["docker", "compose"]
        if self.compose_file:
            command += ["-f", self.compose_file]
        return command

    def is_available(self) -> bool:
        """Docker is installed and the compose plugin answers."""
        if not command_exists("docker"):
            return False
        return run_command(["docker", "compose", "version"], check=False).returncode == 0

    def is_running(self, service: str) -> bool:
        result = run_command(
            self._base() + ["ps", "--status", "running", "--services"],
            check=False,
        )
        if result.returncode != 0:
            return False
        return service in result.stdout.split()

    def up(self, service: str) -> None:
        logger.info("Starting %s with docker compose", service)
        run_command(self._base() + ["up", "-d", service])

    def restart(self, service: str) -> None:
        logger.info("Restarting %s with docker compose", service)
        run_command(self._base() + ["restart", service])


class GitHubCli:
    """The ``gh`` command-line client."""

    def is_available(self) -> bool:
        return command_exists("gh")

    def is_authenticated(self) -> bool:
        return run_command(["gh", "auth", "status"], check=False).returncode == 0

    def auth_token(self) -> Optional[str]:
        """Token of the logged-in ``gh`` session, or None."""
        if not self.is_available():
            return None
        result = run_command(["gh", "auth", "token"], check=False)
        token = result.stdout.strip()
        return token if result.returncode == 0 and token else None
