"""Custom exceptions for HashiCorp Vault integration.

This module defines all custom exceptions used by the Vault client
for consistent error handling.
"""

from typing import Optional


class VaultError(Exception):
    """Base exception for Vault-related errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """Initialize Vault error.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return error string representation."""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class VaultConnectionError(VaultError):
    """Raised when Vault is unreachable or its health check fails."""

    def __init__(
        self,
        message: str = "Failed to connect to Vault server",
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)


class VaultAuthenticationError(VaultError):
    """Raised when the session token is missing or invalid, or a login fails."""

    def __init__(
        self,
        message: str = "Vault authentication failed",
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)


class VaultSealedError(VaultError):
    """Raised when Vault is sealed and cannot serve requests."""

    def __init__(
        self,
        message: str = "Vault is sealed. Unseal required.",
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)


class VaultUninitializedError(VaultError):
    """Raised when Vault is not initialized."""

    def __init__(
        self,
        message: str = "Vault is not initialized. Initialization required.",
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)


class SecretStoreWriteError(VaultError):
    """Raised when a single secret fails to persist to the store."""

    def __init__(
        self,
        key: str,
        message: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        full_message = message or f"Failed to store secret: {key}"
        super().__init__(full_message, details)
        self.key = key


class SecretStoreReadError(VaultError):
    """Raised when a single secret cannot be read from the store."""

    def __init__(
        self,
        key: str,
        message: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        full_message = message or f"Failed to read secret: {key}"
        super().__init__(full_message, details)
        self.key = key


class VaultValidationError(VaultError):
    """Raised when configuration validation fails."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
