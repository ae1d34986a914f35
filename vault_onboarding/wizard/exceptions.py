"""Exceptions raised by the setup wizard."""

from typing import Optional


class WizardError(Exception):
    """Base exception for wizard errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class WizardCancelled(WizardError):
    """Raised when the user declines to continue. Not a failure."""

    def __init__(self, message: str = "Setup cancelled by user", details: Optional[dict] = None):
        super().__init__(message, details)


class WizardStepError(WizardError):
    """Raised when a wizard step cannot complete."""

    def __init__(self, step: str, message: str, details: Optional[dict] = None):
        super().__init__(f"Step '{step}' failed: {message}", details)
        self.step = step


class ExternalCommandError(WizardError):
    """Raised when an external tool (docker, gh) exits with an error."""

    def __init__(self, command: list[str], returncode: int, stderr: str = ""):
        super().__init__(
            f"Command failed ({returncode}): {' '.join(command)}",
            details={"stderr": stderr.strip()} if stderr.strip() else None,
        )
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
