"""Exceptions raised while migrating and validating ``.env`` secrets."""

from typing import Optional


class MigrationError(Exception):
    """Base exception for migration errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """Initialize migration error.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class PatternConfigNotFoundError(MigrationError):
    """Raised when the secret pattern configuration file does not exist."""

    def __init__(self, path: str, details: Optional[dict] = None):
        super().__init__(f"Secret pattern configuration not found: {path}", details)
        self.path = path


class PatternConfigError(MigrationError):
    """Raised when the pattern configuration is unreadable or holds an invalid regex."""


class EnvFileError(MigrationError):
    """Raised when the env file cannot be read or written."""

    def __init__(self, path: str, message: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message or f"Cannot access env file: {path}", details)
        self.path = path


class BackupError(MigrationError):
    """Raised when the env file backup cannot be created."""


class ResidualSecretError(MigrationError):
    """A secret-like variable that is still present in the env file."""

    def __init__(self, key: str, line_number: Optional[int] = None):
        location = f" (line {line_number})" if line_number else ""
        super().__init__(f"Secret variable still present in env file: {key}{location}")
        self.key = key
        self.line_number = line_number
